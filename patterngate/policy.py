"""Gate policy: which severities block, which paths are skipped."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

import yaml

from .errors import PolicyError
from .severity import SEVERITY_ORDER, Severity
from .utils.fileio import read_yaml_file
from .utils.walker import glob_matches

logger = logging.getLogger(__name__)

DEFAULT_BLOCKING = frozenset({Severity.CRITICAL, Severity.HIGH})
DEFAULT_EXCLUDES = (".git", ".build", "DerivedData", "Pods", "Carthage")
POLICY_KEYS = {"blocking_severities", "exclude", "include_extensions", "workers", "suppressions"}


@dataclass(frozen=True)
class Suppression:
    """Accepted exception for one rule on matching paths, optionally expiring."""

    rule: str
    path: str = "*"
    expires: Optional[date] = None
    reason: Optional[str] = None

    def is_expired(self, today: date) -> bool:
        return self.expires is not None and self.expires < today

    def covers(self, rule_id: str, path: str) -> bool:
        return (self.rule == "*" or self.rule == rule_id) and glob_matches(self.path, path)

    def describe(self) -> str:
        expiry = f" (expired {self.expires.isoformat()})" if self.expires else ""
        return f"suppression for {self.rule} on {self.path}{expiry}"


@dataclass(frozen=True)
class Policy:
    """Caller-supplied gating configuration for a single run.

    ``critical`` always blocks, whatever ``blocking_severities`` lists.
    """

    blocking_severities: FrozenSet[Severity] = DEFAULT_BLOCKING
    exclude: Tuple[str, ...] = DEFAULT_EXCLUDES
    include_extensions: Tuple[str, ...] = ()
    workers: Optional[int] = None
    suppressions: Tuple[Suppression, ...] = field(default=())

    def __post_init__(self) -> None:
        blocking = frozenset(self.blocking_severities) | {Severity.CRITICAL}
        object.__setattr__(self, "blocking_severities", blocking)
        if self.workers is not None and self.workers < 1:
            raise PolicyError("workers must be a positive integer")

    def blocks(self, severity: Severity) -> bool:
        return severity in self.blocking_severities

    @property
    def ordered_blocking(self) -> Tuple[Severity, ...]:
        return tuple(severity for severity in SEVERITY_ORDER if severity in self.blocking_severities)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Policy":
        unknown = set(data) - POLICY_KEYS
        if unknown:
            raise PolicyError(f"Unknown policy keys: {', '.join(sorted(unknown))}")
        kwargs: dict = {}
        if "blocking_severities" in data:
            kwargs["blocking_severities"] = parse_severities(data["blocking_severities"])
        if "exclude" in data:
            kwargs["exclude"] = tuple(_str_list("exclude", data["exclude"]))
        if "include_extensions" in data:
            kwargs["include_extensions"] = tuple(
                ext if ext.startswith(".") else f".{ext}" for ext in _str_list("include_extensions", data["include_extensions"])
            )
        workers = data.get("workers")
        if workers is not None:
            if isinstance(workers, bool) or not isinstance(workers, int):
                raise PolicyError("workers must be a positive integer")
            kwargs["workers"] = workers
        if data.get("suppressions"):
            kwargs["suppressions"] = tuple(_parse_suppressions(data["suppressions"]))
        return cls(**kwargs)


def parse_severities(values: Any) -> FrozenSet[Severity]:
    """Parse a list of severity names, rejecting unknown ones."""

    names = _str_list("blocking_severities", values)
    severities = set()
    for name in names:
        try:
            severities.add(Severity.parse(name))
        except ValueError:
            allowed = ", ".join(severity.value for severity in SEVERITY_ORDER)
            raise PolicyError(f"Unknown severity {name!r} in blocking_severities (expected one of: {allowed})") from None
    return frozenset(severities)


def _str_list(name: str, value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return list(value)
    raise PolicyError(f"{name} must be a string or a list of strings")


def _parse_date(value: Any, rule: str) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise PolicyError(f"Suppression for {rule!r}: invalid expiry {value!r}, expected YYYY-MM-DD") from None


def _parse_suppressions(entries: Iterable[Any]) -> Iterable[Suppression]:
    if not isinstance(entries, list):
        raise PolicyError("suppressions must be a list")
    for entry in entries:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("rule"), str):
            raise PolicyError("Each suppression needs a 'rule' id")
        rule = entry["rule"]
        path = entry.get("path", "*")
        if not isinstance(path, str):
            raise PolicyError(f"Suppression for {rule!r}: path must be a glob string")
        reason = entry.get("reason")
        yield Suppression(
            rule=rule,
            path=path,
            expires=_parse_date(entry.get("expires"), rule),
            reason=str(reason) if reason is not None else None,
        )


def load_policy(source: Union[str, Path, None]) -> Policy:
    """Read a YAML policy file; ``None`` gives the default policy."""

    if source is None:
        return Policy()
    path = Path(source)
    if not path.is_file():
        raise PolicyError(f"Policy file not found: {path}")
    try:
        data = read_yaml_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise PolicyError(f"Cannot read policy {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise PolicyError(f"Policy {path} is not valid YAML: {exc}") from exc
    if data is None:
        return Policy()
    if not isinstance(data, Mapping):
        raise PolicyError(f"Policy {path} must be a mapping")
    policy = Policy.from_mapping(data)
    logger.debug("Loaded policy from %s: blocking=%s", path, [s.value for s in policy.ordered_blocking])
    return policy
