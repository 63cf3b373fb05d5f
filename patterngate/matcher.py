"""Line-by-line evaluation of a rule catalog against one file."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, Iterable, List, Optional, Set

from .result import DIAG_DECODE_ERROR, DIAG_WALK_WARNING, Diagnostic, Finding
from .rules import Rule
from .rules.catalog import Catalog
from .utils.fileio import BinaryContentError, read_text_lines, split_lines

logger = logging.getLogger(__name__)


@dataclass
class FileScan:
    """Findings and diagnostics produced for a single file.

    ``scanned`` is only set once the file was read and matched; files that no
    rule applies to, or that could not be decoded, stay unscanned.
    """

    path: str
    findings: List[Finding] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    scanned: bool = False


def _finding(rule: Rule, path: str, line_number: int, start: int, end: int, text: str) -> Finding:
    return Finding(
        path=path,
        line=line_number,
        column=start + 1,
        end_column=end + 1,
        rule_id=rule.id,
        matched_text=text,
        severity=rule.severity,
        category=rule.category,
        message=rule.message,
        replacement=rule.replacement,
    )


def match_lines(lines: Iterable[str], rules: List[Rule], path: str) -> List[Finding]:
    """Evaluate ``rules`` over ``lines`` (1-based numbering).

    Lines are consumed as a stream; only the largest rule ``window`` worth of
    previous lines is retained for ``unless`` guards.
    """

    findings: List[Finding] = []
    lookback = max((rule.window for rule in rules), default=0)
    history: Deque[str] = deque(maxlen=lookback)
    reported_once: Set[str] = set()

    for line_number, line in enumerate(lines, start=1):
        for rule in rules:
            if rule.id in reported_once:
                continue
            for hit in rule.iter_matches(line):
                if _guarded(rule, line, history):
                    break
                findings.append(_finding(rule, path, line_number, hit.start, hit.end, hit.text))
                if rule.first_match_only:
                    reported_once.add(rule.id)
                    break
        history.append(line)
    return findings


def _guarded(rule: Rule, line: str, history: Deque[str]) -> bool:
    if rule.unless is None:
        return False
    if rule.guarded_by(line):
        return True
    if not rule.window:
        return False
    recent = list(history)[-rule.window:]
    return any(rule.guarded_by(previous) for previous in recent)


def scan_file(path: Path, catalog: Catalog, scope_path: Optional[str] = None) -> FileScan:
    """Scan one file against every rule whose scope admits it.

    ``scope_path`` is the path used for scope matching and reported on each
    finding; it defaults to ``path`` itself. Unreadable or undecodable files
    produce a diagnostic instead of findings. The file is only ever read.
    """

    display = scope_path or path.as_posix()
    result = FileScan(path=display)
    rules = catalog.rules_for(display)
    if not rules:
        return result

    try:
        lines = read_text_lines(path)
    except BinaryContentError as exc:
        logger.debug("Skipping undecodable file %s: %s", display, exc)
        result.diagnostics.append(Diagnostic(DIAG_DECODE_ERROR, display, str(exc)))
        return result
    except OSError as exc:
        logger.debug("Cannot read %s: %s", display, exc)
        result.diagnostics.append(Diagnostic(DIAG_WALK_WARNING, display, exc.strerror or str(exc)))
        return result

    result.findings.extend(match_lines(lines, rules, display))
    result.scanned = True
    return result


def scan_text(text: str, catalog: Catalog, path: str = "<memory>") -> List[Finding]:
    """Convenience wrapper for matching in-memory text."""

    return match_lines(split_lines(text), catalog.rules_for(path), path)

