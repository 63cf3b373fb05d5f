"""Exception hierarchy for fatal scanner errors.

Catalog and policy errors abort a run before any file is scanned. Per-file
problems are never raised; they become diagnostics on the report.
"""

from __future__ import annotations


class PatternGateError(Exception):
    """Base class for all fatal scanner errors."""


class CatalogError(PatternGateError):
    """The rule catalog could not be loaded."""


class UnreadableSource(CatalogError):
    """A catalog file is missing, unreadable or not valid YAML."""


class DuplicateRuleId(CatalogError):
    def __init__(self, rule_id: str, source: str | None = None) -> None:
        self.rule_id = rule_id
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Duplicate rule id {rule_id!r}{where}")


class InvalidPattern(CatalogError):
    def __init__(self, rule_id: str, pattern: str, reason: str) -> None:
        self.rule_id = rule_id
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Rule {rule_id!r}: invalid pattern {pattern!r}: {reason}")


class InvalidRule(CatalogError):
    """A catalog entry is missing a field or carries an unknown value."""


class PolicyError(PatternGateError):
    """The gate policy is malformed or references an unknown severity."""


class GateStateError(PatternGateError):
    """A gate controller was asked to run while a scan is in progress."""
