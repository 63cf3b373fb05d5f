import json
from pathlib import Path

from patterngate import cli

SAMPLES = Path(__file__).resolve().parents[1] / "samples"


def test_cli_generates_json_report(tmp_path, capsys):
    output_path = tmp_path / "scan.json"

    exit_code = cli.main(
        [
            str(SAMPLES / "vulnerable"),
            "--out",
            str(output_path),
        ]
    )

    captured = capsys.readouterr()
    assert "Scan Summary" in captured.out
    assert exit_code == cli.EXIT_FAIL
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["summary"]["severity"]["critical"] == 1
    assert data["summary"]["severity"]["high"] == 2
    assert data["passed"] is False
    assert data["verdict"] == "fail"
    rule_ids = {finding["rule_id"] for finding in data["findings"]}
    assert {"no-foreground-color", "no-navigation-view", "no-unique-attribute"} <= rule_ids


def test_cli_passes_on_clean_sources(tmp_path, capsys):
    output_path = tmp_path / "clean.json"
    exit_code = cli.main([str(SAMPLES / "safe"), "--out", str(output_path)])

    captured = capsys.readouterr()
    assert "Status    : PASS" in captured.out
    assert exit_code == cli.EXIT_PASS
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["findings"] == []
    assert data["passed"] is True


def test_cli_json_format_prints_report(capsys):
    exit_code = cli.main([str(SAMPLES / "safe"), "--format", "json"])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert data["files_scanned"] == 1


def test_cli_relaxed_policy_passes_high_findings(tmp_path, capsys):
    source = tmp_path / "src"
    source.mkdir()
    (source / "View.swift").write_text('Text("a").foregroundColor(.red)\n', encoding="utf-8")
    policy = tmp_path / "policy.yaml"
    policy.write_text("blocking_severities: [critical]\n", encoding="utf-8")

    exit_code = cli.main([str(source), "--policy", str(policy)])

    captured = capsys.readouterr()
    assert exit_code == cli.EXIT_PASS
    assert "no-foreground-color" in captured.out


def test_cli_reports_catalog_error(tmp_path, capsys):
    catalog = tmp_path / "rules.yaml"
    catalog.write_text(
        """
rules:
  - id: dup
    pattern: foo
    category: style
    severity: low
    message: first
  - id: dup
    pattern: bar
    category: style
    severity: low
    message: second
""",
        encoding="utf-8",
    )

    exit_code = cli.main([str(tmp_path), "--catalog", str(catalog)])

    assert exit_code == cli.EXIT_CATALOG_ERROR
    assert "Duplicate rule id 'dup'" in capsys.readouterr().err


def test_cli_reports_policy_error(tmp_path, capsys):
    policy = tmp_path / "policy.yaml"
    policy.write_text("blocking_severities: [blocker]\n", encoding="utf-8")

    exit_code = cli.main([str(tmp_path), "--policy", str(policy)])

    assert exit_code == cli.EXIT_POLICY_ERROR
    assert "blocker" in capsys.readouterr().err


def test_cli_missing_root(tmp_path, capsys):
    exit_code = cli.main([str(tmp_path / "missing")])

    assert exit_code == cli.EXIT_ROOT_NOT_FOUND
    assert "not found" in capsys.readouterr().err


def test_cli_extend_overrides_bundled_rule(tmp_path, capsys, monkeypatch):
    overrides = tmp_path / "overrides.yaml"
    overrides.write_text(
        """
- id: no-foreground-color
  pattern: ".foregroundColor("
  category: deprecated-api
  severity: low
  message: Tolerated in this project for now.
""",
        encoding="utf-8",
    )
    source = tmp_path / "View.swift"
    source.write_text('Text("a").foregroundColor(.red)\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    exit_code = cli.main([str(source), "--extend", str(overrides), "--format", "json"])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == cli.EXIT_PASS
    assert data["findings"][0]["severity"] == "low"
    assert data["findings"][0]["path"] == "View.swift"


def test_cli_list_rules(capsys):
    exit_code = cli.main(["--list-rules"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "no-foreground-color" in out
    assert "no-unique-attribute" in out
