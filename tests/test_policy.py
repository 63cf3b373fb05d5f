from datetime import date

import pytest

from patterngate.errors import PolicyError
from patterngate.policy import Policy, load_policy
from patterngate.severity import Severity


def test_default_policy_blocks_critical_and_high():
    policy = load_policy(None)

    assert policy.blocks(Severity.CRITICAL)
    assert policy.blocks(Severity.HIGH)
    assert not policy.blocks(Severity.MEDIUM)
    assert not policy.blocks(Severity.LOW)


def test_critical_always_blocks():
    policy = Policy(blocking_severities=frozenset({Severity.MEDIUM}))

    assert policy.ordered_blocking == (Severity.CRITICAL, Severity.MEDIUM)


def test_load_policy_from_yaml(tmp_path):
    source = tmp_path / "policy.yaml"
    source.write_text(
        """
blocking_severities: [CRITICAL, medium]
exclude: ["Pods", "*.generated.swift"]
include_extensions: [swift]
workers: 2
suppressions:
  - rule: no-force-try
    path: "Tests/*"
    expires: 2030-01-31
    reason: legacy fixtures
""",
        encoding="utf-8",
    )

    policy = load_policy(source)

    assert policy.ordered_blocking == (Severity.CRITICAL, Severity.MEDIUM)
    assert policy.exclude == ("Pods", "*.generated.swift")
    assert policy.include_extensions == (".swift",)
    assert policy.workers == 2
    suppression = policy.suppressions[0]
    assert suppression.expires == date(2030, 1, 31)
    assert suppression.covers("no-force-try", "Tests/FooTests.swift")
    assert not suppression.covers("no-force-try", "App/Foo.swift")


@pytest.mark.parametrize(
    "text",
    [
        "blocking_severities: [blocker]\n",
        "blocking_severities: 3\n",
        "workers: 0\n",
        "workers: many\n",
        "colour: blue\n",
        "suppressions:\n  - path: '*'\n",
        "suppressions:\n  - rule: x\n    expires: someday\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_policy_raises(tmp_path, text):
    source = tmp_path / "policy.yaml"
    source.write_text(text, encoding="utf-8")

    with pytest.raises(PolicyError):
        load_policy(source)


def test_missing_policy_file_raises(tmp_path):
    with pytest.raises(PolicyError):
        load_policy(tmp_path / "nope.yaml")
