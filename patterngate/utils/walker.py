"""Deterministic, re-iterable enumeration of candidate source files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Generator, Iterable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkWarning:
    """A path the walker could not enumerate; the walk carries on without it."""

    path: str
    message: str


WarningCallback = Callable[[WalkWarning], None]


def glob_matches(glob: str, path: str) -> bool:
    """Match a POSIX relative path against a glob.

    ``*`` crosses directory separators (``fnmatch`` semantics). Globs without a
    slash are also tried against the last path component, so ``*.generated.swift``
    or ``Pods`` match at any depth.
    """

    if fnmatchcase(path, glob):
        return True
    if glob.startswith("**/") and fnmatchcase(path, glob[3:]):
        return True
    if glob.endswith("/**") and (path == glob[:-3] or fnmatchcase(path, glob[:-3])):
        return True
    if "/" not in glob:
        return fnmatchcase(path.rsplit("/", 1)[-1], glob)
    return False


class FileWalk:
    """Lazy sequence of files under ``root``.

    Each call to ``iter()`` starts an independent traversal, so a walk can be
    consumed more than once. Paths come out in lexicographic order of their
    POSIX path relative to ``root``.

    When ``root`` is a single file its path is taken relative to ``base``
    (the current directory by default), so path-scoped rules, excludes and
    suppressions see the same path a directory walk would report.
    """

    def __init__(
        self,
        root: Path,
        include_exts: Tuple[str, ...] = (),
        exclude_globs: Tuple[str, ...] = (),
        on_warning: Optional[WarningCallback] = None,
        base: Optional[Path] = None,
    ) -> None:
        self.root = root
        self.base = base
        self.include_exts = tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in include_exts)
        self.exclude_globs = tuple(exclude_globs)
        self._on_warning = on_warning

    def __iter__(self) -> Iterator[Path]:
        return self._generate()

    def relative(self, path: Path) -> str:
        """Return ``path`` relative to the walk root, POSIX style."""

        if self.root.is_file():
            return self._file_root_path()
        return path.relative_to(self.root).as_posix()

    def _file_root_path(self) -> str:
        base = (self.base or Path.cwd()).resolve()
        try:
            return self.root.resolve().relative_to(base).as_posix()
        except ValueError:
            return self.root.name

    def excluded(self, rel_path: str) -> bool:
        return any(glob_matches(glob, rel_path) for glob in self.exclude_globs)

    def included(self, rel_path: str) -> bool:
        if not self.include_exts:
            return True
        lowered = rel_path.lower()
        return any(lowered.endswith(ext) for ext in self.include_exts)

    def _warn(self, rel_path: str, message: str) -> None:
        warning = WalkWarning(path=rel_path, message=message)
        if self._on_warning is not None:
            self._on_warning(warning)
        else:
            logger.warning("Skipping %s: %s", warning.path, warning.message)

    def _generate(self) -> Generator[Path, None, None]:
        if self.root.is_file():
            rel_path = self._file_root_path()
            parts = rel_path.split("/")
            # A directory walk would have pruned excluded parents.
            pruned = any(self.excluded("/".join(parts[:depth])) for depth in range(1, len(parts) + 1))
            if not pruned and self.included(rel_path):
                yield self.root
            return
        if not self.root.is_dir():
            self._warn(self.root.as_posix(), "root does not exist or is not a directory")
            return
        yield from self._walk_dir(self.root, "")

    def _walk_dir(self, directory: Path, prefix: str) -> Generator[Path, None, None]:
        try:
            with os.scandir(directory) as handle:
                entries = list(handle)
        except OSError as exc:
            self._warn(prefix.rstrip("/") or ".", exc.strerror or str(exc))
            return

        keyed = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError as exc:
                self._warn(f"{prefix}{entry.name}", exc.strerror or str(exc))
                continue
            if not is_dir and not is_file:
                continue
            # Sorting "name/" for directories yields full-path lexicographic order.
            keyed.append((entry.name + "/" if is_dir else entry.name, entry, is_dir))
        keyed.sort(key=lambda item: item[0])

        for _, entry, is_dir in keyed:
            rel_path = f"{prefix}{entry.name}"
            if self.excluded(rel_path):
                logger.debug("Excluded %s", rel_path)
                continue
            if is_dir:
                yield from self._walk_dir(Path(entry.path), rel_path + "/")
            elif self.included(rel_path):
                if not os.access(entry.path, os.R_OK):
                    self._warn(rel_path, "permission denied")
                    continue
                yield Path(entry.path)


def walk(
    root: Path | str,
    include_exts: Iterable[str] = (),
    exclude_globs: Iterable[str] = (),
    on_warning: Optional[WarningCallback] = None,
    base: Path | str | None = None,
) -> FileWalk:
    """Return a re-iterable walk of files under ``root``.

    ``exclude_globs`` are tested before ``include_exts`` and prune whole
    directories. Unreadable entries are reported through ``on_warning`` (or the
    module logger) and skipped. ``base`` anchors the reported path of a
    single-file root.
    """

    return FileWalk(
        Path(root),
        tuple(include_exts),
        tuple(exclude_globs),
        on_warning,
        Path(base) if base is not None else None,
    )
