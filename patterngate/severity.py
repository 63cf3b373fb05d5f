"""Severity and category definitions for rules and findings."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Enumerate the supported severity levels, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: object) -> "Severity":
        """Accept ``"HIGH"``, ``"high"`` or a ``Severity`` member."""

        if isinstance(value, Severity):
            return value
        return cls(str(value).strip().lower())


class Category(str, Enum):
    """Enumerate the rule categories."""

    COMPATIBILITY = "compatibility"
    DEPRECATED_API = "deprecated-api"
    ACCESSIBILITY = "accessibility"
    STYLE = "style"
    ARCHITECTURE = "architecture"

    @classmethod
    def parse(cls, value: object) -> "Category":
        if isinstance(value, Category):
            return value
        return cls(str(value).strip().lower())


SEVERITY_ORDER = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)

CATEGORY_ORDER = tuple(Category)
