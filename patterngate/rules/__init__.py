"""Rule model: one forbidden pattern and its suggested replacement."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from patterngate.errors import InvalidPattern, InvalidRule
from patterngate.severity import Category, Severity
from patterngate.utils.walker import glob_matches

REQUIRED_FIELDS = ("id", "pattern", "category", "severity", "message")
OPTIONAL_FIELDS = (
    "kind",
    "replacement",
    "scope",
    "first_match_only",
    "window",
    "unless",
    "ignore_case",
)
MAX_WINDOW = 50


class PatternKind(str, Enum):
    """How a rule's ``pattern`` text is interpreted."""

    LITERAL = "literal"
    REGEX = "regex"
    TOKENS = "tokens"


def _token_regex(pattern: str) -> str:
    parts = []
    for token in pattern.split():
        part = re.escape(token)
        if re.match(r"\w", token):
            part = r"\b" + part
        if re.search(r"\w$", token):
            part = part + r"\b"
        parts.append(part)
    return r"\s*".join(parts)


def compile_pattern(rule_id: str, pattern: str, kind: PatternKind, ignore_case: bool = False) -> re.Pattern[str]:
    """Compile ``pattern`` into a regular expression, or raise ``InvalidPattern``.

    Every kind compiles to a regex so the matcher has a single code path. A
    pattern that can match the empty string is rejected: it would flag every
    line of every file.
    """

    if not isinstance(pattern, str) or not pattern.strip():
        raise InvalidPattern(rule_id, str(pattern), "pattern is empty")
    if kind is PatternKind.LITERAL:
        source = re.escape(pattern)
    elif kind is PatternKind.TOKENS:
        source = _token_regex(pattern)
    else:
        source = pattern
    flags = re.IGNORECASE if ignore_case else 0
    try:
        compiled = re.compile(source, flags)
    except re.error as exc:
        raise InvalidPattern(rule_id, pattern, str(exc)) from exc
    if compiled.search("") is not None:
        raise InvalidPattern(rule_id, pattern, "pattern matches the empty string")
    return compiled


@dataclass(frozen=True)
class Scope:
    """Restrict a rule to files by extension and/or path glob."""

    extensions: Tuple[str, ...] = ()
    paths: Tuple[str, ...] = ()

    def matches(self, path: str) -> bool:
        posix = path.replace("\\", "/")
        if self.extensions:
            lowered = posix.lower()
            if not any(lowered.endswith(ext) for ext in self.extensions):
                return False
        if self.paths:
            return any(glob_matches(glob, posix) for glob in self.paths)
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.extensions:
            data["extensions"] = list(self.extensions)
        if self.paths:
            data["paths"] = list(self.paths)
        return data

    @classmethod
    def from_value(cls, rule_id: str, value: Any) -> Optional["Scope"]:
        if value is None:
            return None
        if not isinstance(value, Mapping):
            raise InvalidRule(f"Rule {rule_id!r}: scope must be a mapping with 'extensions' and/or 'paths'")
        unknown = set(value) - {"extensions", "paths"}
        if unknown:
            raise InvalidRule(f"Rule {rule_id!r}: unknown scope keys {sorted(unknown)}")
        extensions = tuple(normalize_extension(ext) for ext in _as_str_list(rule_id, "scope.extensions", value.get("extensions")))
        paths = tuple(_as_str_list(rule_id, "scope.paths", value.get("paths")))
        if not extensions and not paths:
            return None
        return cls(extensions=extensions, paths=paths)


def normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def _as_str_list(rule_id: str, name: str, value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise InvalidRule(f"Rule {rule_id!r}: {name} must be a string or a list of strings")


@dataclass(frozen=True)
class Match:
    """A single pattern hit inside one line; columns are 0-based offsets."""

    start: int
    end: int
    text: str


@dataclass(frozen=True)
class Rule:
    """Immutable description of one forbidden pattern.

    The compiled matcher is built once at construction, so an existing ``Rule``
    always holds a valid pattern.
    """

    id: str
    pattern: str
    category: Category
    severity: Severity
    message: str
    replacement: Optional[str] = None
    scope: Optional[Scope] = None
    kind: PatternKind = PatternKind.LITERAL
    first_match_only: bool = False
    window: int = 0
    unless: Optional[str] = None
    ignore_case: bool = False
    _compiled: re.Pattern = field(init=False, repr=False, compare=False)
    _guard: Optional[re.Pattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.window < 0 or self.window > MAX_WINDOW:
            raise InvalidRule(f"Rule {self.id!r}: window must be between 0 and {MAX_WINDOW}")
        compiled = compile_pattern(self.id, self.pattern, self.kind, self.ignore_case)
        guard = None
        if self.unless is not None:
            guard = compile_pattern(self.id, self.unless, self.kind, self.ignore_case)
        object.__setattr__(self, "_compiled", compiled)
        object.__setattr__(self, "_guard", guard)

    def applies_to(self, path: str) -> bool:
        return self.scope is None or self.scope.matches(path)

    def iter_matches(self, line: str) -> Iterator[Match]:
        for match in self._compiled.finditer(line):
            if match.end() > match.start():
                yield Match(match.start(), match.end(), match.group(0))

    def guarded_by(self, line: str) -> bool:
        """Return ``True`` when the ``unless`` pattern occurs in ``line``."""

        return self._guard is not None and self._guard.search(line) is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "pattern": self.pattern,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.kind is not PatternKind.LITERAL:
            data["kind"] = self.kind.value
        if self.replacement is not None:
            data["replacement"] = self.replacement
        if self.scope is not None:
            data["scope"] = self.scope.to_dict()
        if self.first_match_only:
            data["first_match_only"] = True
        if self.window:
            data["window"] = self.window
        if self.unless is not None:
            data["unless"] = self.unless
        if self.ignore_case:
            data["ignore_case"] = True
        return data

    @classmethod
    def from_dict(cls, entry: Any, position: int = 0) -> "Rule":
        """Validate one declarative catalog entry and build a ``Rule``."""

        if not isinstance(entry, Mapping):
            raise InvalidRule(f"Catalog entry #{position + 1} is not a mapping")
        rule_id = entry.get("id")
        if not isinstance(rule_id, str) or not rule_id.strip():
            raise InvalidRule(f"Catalog entry #{position + 1} has no 'id'")
        missing = [name for name in REQUIRED_FIELDS if entry.get(name) in (None, "")]
        if missing:
            raise InvalidRule(f"Rule {rule_id!r} is missing required fields: {', '.join(missing)}")
        unknown = set(entry) - set(REQUIRED_FIELDS) - set(OPTIONAL_FIELDS)
        if unknown:
            raise InvalidRule(f"Rule {rule_id!r} has unknown fields: {', '.join(sorted(unknown))}")

        try:
            category = Category.parse(entry["category"])
        except ValueError:
            raise InvalidRule(f"Rule {rule_id!r}: unknown category {entry['category']!r}") from None
        try:
            severity = Severity.parse(entry["severity"])
        except ValueError:
            raise InvalidRule(f"Rule {rule_id!r}: unknown severity {entry['severity']!r}") from None
        try:
            kind = PatternKind(str(entry.get("kind", PatternKind.LITERAL.value)).lower())
        except ValueError:
            raise InvalidRule(f"Rule {rule_id!r}: unknown pattern kind {entry.get('kind')!r}") from None

        window = entry.get("window", 0)
        if isinstance(window, bool) or not isinstance(window, int):
            raise InvalidRule(f"Rule {rule_id!r}: window must be an integer")
        unless = entry.get("unless")
        if window and unless is None:
            raise InvalidRule(f"Rule {rule_id!r}: window requires an 'unless' pattern")
        replacement = entry.get("replacement")

        return cls(
            id=rule_id,
            pattern=entry["pattern"],
            category=category,
            severity=severity,
            message=str(entry["message"]),
            replacement=str(replacement) if replacement is not None else None,
            scope=Scope.from_value(rule_id, entry.get("scope")),
            kind=kind,
            first_match_only=_flag(rule_id, entry, "first_match_only"),
            window=window,
            unless=str(unless) if unless is not None else None,
            ignore_case=_flag(rule_id, entry, "ignore_case"),
        )


def _flag(rule_id: str, entry: Mapping[str, Any], name: str) -> bool:
    value = entry.get(name, False)
    if not isinstance(value, bool):
        raise InvalidRule(f"Rule {rule_id!r}: {name} must be true or false, got {value!r}")
    return value
