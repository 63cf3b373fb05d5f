import json
from datetime import date

from patterngate.policy import Policy, Suppression
from patterngate.result import (
    DIAG_DECODE_ERROR,
    DIAG_SUPPRESSION_EXPIRED,
    Diagnostic,
    Finding,
    aggregate,
    format_report_table,
    render_json,
)
from patterngate.severity import Category, Severity


def make_finding(path="View.swift", line=1, rule_id="rule", severity=Severity.HIGH, column=1, replacement=None):
    return Finding(
        path=path,
        line=line,
        column=column,
        end_column=column + 3,
        rule_id=rule_id,
        matched_text="foo",
        severity=severity,
        category=Category.STYLE,
        message=f"{rule_id} is not allowed",
        replacement=replacement,
    )


def test_empty_findings_pass():
    report = aggregate([], Policy())

    assert report.passed
    assert report.summary.total == 0


def test_findings_are_sorted_by_path_line_rule():
    findings = [
        make_finding("b.swift", 1, "a"),
        make_finding("a.swift", 2, "a"),
        make_finding("a.swift", 1, "z"),
        make_finding("a.swift", 1, "b"),
    ]

    report = aggregate(findings, Policy())

    assert [(f.path, f.line, f.rule_id) for f in report.findings] == [
        ("a.swift", 1, "b"),
        ("a.swift", 1, "z"),
        ("a.swift", 2, "a"),
        ("b.swift", 1, "a"),
    ]


def test_verdict_depends_on_blocking_severities():
    findings = [make_finding(severity=Severity.HIGH)]

    assert not aggregate(findings, Policy()).passed
    relaxed = aggregate(findings, Policy(blocking_severities=frozenset({Severity.CRITICAL})))
    assert relaxed.passed
    assert len(relaxed.findings) == 1


def test_counts_per_severity_and_category():
    findings = [
        make_finding(severity=Severity.LOW),
        make_finding(line=2, severity=Severity.LOW),
        make_finding(line=3, severity=Severity.MEDIUM),
    ]

    report = aggregate(findings, Policy())

    assert report.summary.severity_count(Severity.LOW) == 2
    assert report.summary.severity_count(Severity.MEDIUM) == 1
    assert report.summary.category_count(Category.STYLE) == 3
    assert report.passed


def test_active_suppression_drops_findings_and_expired_one_is_reported():
    policy = Policy(
        suppressions=(
            Suppression(rule="rule", path="Legacy/*", expires=date(2030, 1, 1)),
            Suppression(rule="rule", path="Old/*", expires=date(2020, 1, 1)),
        )
    )
    findings = [make_finding("Legacy/A.swift"), make_finding("Old/B.swift")]

    report = aggregate(findings, policy, today=date(2026, 1, 1))

    assert [f.path for f in report.findings] == ["Old/B.swift"]
    assert report.suppressed == 1
    assert not report.passed
    assert [d.kind for d in report.diagnostics] == [DIAG_SUPPRESSION_EXPIRED]


def test_renderers_share_report_content():
    findings = [make_finding(replacement="use bar"), make_finding(severity=Severity.LOW, rule_id="minor")]
    diagnostics = [Diagnostic(DIAG_DECODE_ERROR, "icon.swift", "file contains NUL bytes")]
    report = aggregate(findings, Policy(), diagnostics, files_scanned=2)

    data = json.loads(render_json(report))
    table = format_report_table(report)

    assert data["verdict"] == "fail"
    assert data["summary"]["severity"] == {"critical": 0, "high": 1, "medium": 0, "low": 1}
    assert data["diagnostics"][0]["kind"] == DIAG_DECODE_ERROR
    assert "Status    : FAIL" in table
    assert "View.swift:1  rule [style]" in table
    assert "Suggested: use bar" in table
    assert "[decode-error] icon.swift" in table
    assert table.index("HIGH (1)") < table.index("LOW (1)")


def test_identical_inputs_render_identically():
    findings = [make_finding("b.swift"), make_finding("a.swift")]

    first = render_json(aggregate(findings, Policy()))
    second = render_json(aggregate(list(reversed(findings)), Policy()))

    assert first == second
