"""Core result data structures, aggregation and rendering."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .policy import Policy
from .severity import CATEGORY_ORDER, SEVERITY_ORDER, Category, Severity

PASS = "pass"
FAIL = "fail"

DIAG_WALK_WARNING = "walk-warning"
DIAG_DECODE_ERROR = "decode-error"
DIAG_SUPPRESSION_EXPIRED = "suppression-expired"
DIAG_CANCELLED = "cancelled"


@dataclass(frozen=True)
class Finding:
    """One rule violation at a file/line. ``end_column`` is exclusive."""

    path: str
    line: int
    column: int
    end_column: int
    rule_id: str
    matched_text: str
    severity: Severity
    category: Category
    message: str
    replacement: Optional[str] = None

    def sort_key(self) -> Tuple[str, int, str, int]:
        return (self.path, self.line, self.rule_id, self.column)

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "end_column": self.end_column,
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "replacement": self.replacement,
            "matched_text": self.matched_text,
        }


@dataclass(frozen=True)
class Diagnostic:
    """Scan degradation (unreadable path, undecodable file), not a violation."""

    kind: str
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "path": self.path, "message": self.message}


@dataclass(frozen=True)
class Summary:
    """Aggregate finding counts by severity and by category."""

    by_severity: Tuple[Tuple[Severity, int], ...]
    by_category: Tuple[Tuple[Category, int], ...]

    @classmethod
    def count(cls, findings: Sequence[Finding]) -> "Summary":
        severities = {severity: 0 for severity in SEVERITY_ORDER}
        categories = {category: 0 for category in CATEGORY_ORDER}
        for finding in findings:
            severities[finding.severity] += 1
            categories[finding.category] += 1
        return cls(tuple(severities.items()), tuple(categories.items()))

    def severity_count(self, severity: Severity) -> int:
        return dict(self.by_severity)[severity]

    def category_count(self, category: Category) -> int:
        return dict(self.by_category)[category]

    @property
    def total(self) -> int:
        return sum(count for _, count in self.by_severity)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "severity": {severity.value: count for severity, count in self.by_severity},
            "category": {category.value: count for category, count in self.by_category},
        }


@dataclass(frozen=True)
class Report:
    """Immutable outcome of one scan: sorted findings, counts and verdict."""

    findings: Tuple[Finding, ...]
    summary: Summary
    verdict: str
    blocking_severities: Tuple[Severity, ...]
    diagnostics: Tuple[Diagnostic, ...] = ()
    files_scanned: int = 0
    complete: bool = True
    suppressed: int = 0

    @property
    def passed(self) -> bool:
        return self.verdict == PASS

    def by_severity(self) -> List[Tuple[Severity, List[Finding]]]:
        groups = []
        for severity in SEVERITY_ORDER:
            matching = [finding for finding in self.findings if finding.severity is severity]
            if matching:
                groups.append((severity, matching))
        return groups

    def to_dict(self) -> Dict[str, object]:
        return {
            "verdict": self.verdict,
            "passed": self.passed,
            "complete": self.complete,
            "files_scanned": self.files_scanned,
            "blocking_severities": [severity.value for severity in self.blocking_severities],
            "summary": self.summary.to_dict(),
            "suppressed": self.suppressed,
            "findings": [finding.to_dict() for finding in self.findings],
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }


def aggregate(
    findings: Iterable[Finding],
    policy: Policy,
    diagnostics: Iterable[Diagnostic] = (),
    files_scanned: int = 0,
    complete: bool = True,
    today: Optional[date] = None,
) -> Report:
    """Build the report for a run.

    Active suppressions drop the findings they cover; expired ones are ignored
    and surfaced as diagnostics. The verdict fails iff a remaining finding has a
    blocking severity.
    """

    today = today or date.today()
    active = [item for item in policy.suppressions if not item.is_expired(today)]
    expired = [item for item in policy.suppressions if item.is_expired(today)]

    kept: List[Finding] = []
    suppressed = 0
    for finding in findings:
        if any(item.covers(finding.rule_id, finding.path) for item in active):
            suppressed += 1
            continue
        kept.append(finding)
    kept.sort(key=Finding.sort_key)

    notes = list(diagnostics)
    notes.extend(Diagnostic(DIAG_SUPPRESSION_EXPIRED, item.path, item.describe()) for item in expired)
    notes.sort(key=lambda diagnostic: (diagnostic.path, diagnostic.kind, diagnostic.message))

    verdict = FAIL if any(policy.blocks(finding.severity) for finding in kept) else PASS
    return Report(
        findings=tuple(kept),
        summary=Summary.count(kept),
        verdict=verdict,
        blocking_severities=policy.ordered_blocking,
        diagnostics=tuple(notes),
        files_scanned=files_scanned,
        complete=complete,
        suppressed=suppressed,
    )


def render_json(report: Report) -> str:
    """Machine-readable form of the report."""

    return json.dumps(report.to_dict(), indent=2)


def format_report_table(report: Report) -> str:
    """Create a human-readable report for console output, grouped by severity."""

    lines: List[str] = []
    lines.append("Scan Summary")
    lines.append("=" * 40)
    header = f"{'Severity':<10} | {'Count':>5} | Blocking"
    lines.append(header)
    lines.append("-" * len(header))
    for severity, count in report.summary.by_severity:
        blocking = "yes" if severity in report.blocking_severities else "no"
        lines.append(f"{severity.value.upper():<10} | {count:>5} | {blocking}")
    lines.append("-" * len(header))
    lines.append(f"Status    : {'PASS' if report.passed else 'FAIL'}")
    lines.append(f"Files     : {report.files_scanned}")
    lines.append(f"Findings  : {report.summary.total}")
    if report.suppressed:
        lines.append(f"Suppressed: {report.suppressed}")

    categories = [(category, count) for category, count in report.summary.by_category if count]
    if categories:
        lines.append("By category: " + ", ".join(f"{category.value}={count}" for category, count in categories))

    for severity, findings in report.by_severity():
        lines.append("")
        lines.append(f"{severity.value.upper()} ({len(findings)})")
        lines.append("-" * 40)
        for finding in findings:
            lines.append(f"{finding.path}:{finding.line}  {finding.rule_id} [{finding.category.value}]")
            lines.append(f"  {finding.message}")
            if finding.replacement:
                lines.append(f"  Suggested: {finding.replacement}")

    if report.diagnostics:
        lines.append("")
        lines.append(f"Diagnostics ({len(report.diagnostics)})")
        lines.append("-" * 40)
        for diagnostic in report.diagnostics:
            lines.append(f"[{diagnostic.kind}] {diagnostic.path}: {diagnostic.message}")
    if not report.complete:
        lines.append("")
        lines.append("WARNING: scan did not complete; the verdict covers scanned files only.")
    return "\n".join(lines)
