"""Basic file IO helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List

import yaml


class BinaryContentError(ValueError):
    """Raised by ``read_text_lines`` when a file is not text."""


def read_yaml_file(path: Path) -> Any:
    """Return the parsed YAML if the file exists, otherwise ``None``."""

    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` (tolerating ``\\r\\n``) without keeping terminators.

    ``str.splitlines()`` also breaks on form feeds and U+2028, which would
    shift line numbers away from what editors show.
    """

    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def read_text_lines(path: Path) -> List[str]:
    """Return the file's lines decoded as UTF-8, without line terminators.

    Raises ``BinaryContentError`` for content with NUL bytes or invalid UTF-8,
    and lets ``OSError`` propagate.
    """

    data = path.read_bytes()
    if b"\x00" in data:
        raise BinaryContentError("file contains NUL bytes")
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise BinaryContentError(f"not valid UTF-8 at byte {exc.start}") from exc
    return split_lines(text)
