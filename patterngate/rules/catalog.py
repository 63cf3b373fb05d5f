"""Load, merge and dump declarative rule catalogs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml

from patterngate.errors import DuplicateRuleId, UnreadableSource
from patterngate.utils.fileio import read_yaml_file

from . import Rule

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_RESOURCE = "swiftui.yaml"


@dataclass(frozen=True)
class Catalog:
    """Ordered, read-only collection of rules with unique ids."""

    rules: Tuple[Rule, ...] = ()
    source: Optional[str] = None

    def __post_init__(self) -> None:
        seen = set()
        for rule in self.rules:
            if rule.id in seen:
                raise DuplicateRuleId(rule.id, self.source)
            seen.add(rule.id)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.id == rule_id for rule in self.rules)

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    @property
    def ids(self) -> List[str]:
        return [rule.id for rule in self.rules]

    def rules_for(self, path: str) -> List[Rule]:
        """Return the rules whose scope admits ``path``, in catalog order."""

        return [rule for rule in self.rules if rule.applies_to(path)]

    def to_dict(self) -> Dict[str, Any]:
        return {"rules": [rule.to_dict() for rule in self.rules]}

    @classmethod
    def from_entries(cls, entries: Iterable[Any], source: Optional[str] = None) -> "Catalog":
        rules = [Rule.from_dict(entry, position) for position, entry in enumerate(entries)]
        return cls(rules=tuple(rules), source=source)


def parse_catalog_document(document: Any, source: Optional[str] = None) -> Catalog:
    """Build a catalog from a parsed YAML document.

    Accepts a top-level list of rules or a mapping holding a ``rules`` list.
    An empty document is an empty catalog.
    """

    if document is None:
        return Catalog(source=source)
    if isinstance(document, dict):
        if "rules" not in document:
            raise UnreadableSource(f"Catalog {source or '<memory>'} has no 'rules' list")
        document = document["rules"] or []
    if not isinstance(document, list):
        raise UnreadableSource(f"Catalog {source or '<memory>'} must be a list of rules")
    return Catalog.from_entries(document, source=source)


def load_catalog(source: Union[str, Path]) -> Catalog:
    """Read a YAML/JSON catalog file, or raise a ``CatalogError``."""

    path = Path(source)
    if not path.is_file():
        raise UnreadableSource(f"Catalog file not found: {path}")
    try:
        document = read_yaml_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise UnreadableSource(f"Cannot read catalog {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise UnreadableSource(f"Catalog {path} is not valid YAML: {exc}") from exc
    catalog = parse_catalog_document(document, source=str(path))
    logger.debug("Loaded %d rules from %s", len(catalog), path)
    return catalog


def default_catalog() -> Catalog:
    """Return the bundled SwiftUI rule catalog."""

    text = resources.files("patterngate.rules").joinpath(DEFAULT_CATALOG_RESOURCE).read_text(encoding="utf-8")
    return parse_catalog_document(yaml.safe_load(text), source=f"<builtin:{DEFAULT_CATALOG_RESOURCE}>")


def merge(base: Catalog, overrides: Catalog) -> Catalog:
    """Overlay ``overrides`` on ``base``.

    A rule whose id already exists in ``base`` replaces the base entry as a
    whole, in the base position. New ids are appended in override order.
    """

    replacements = {rule.id: rule for rule in overrides}
    merged = [replacements.pop(rule.id, rule) for rule in base]
    merged.extend(rule for rule in overrides if rule.id in replacements)
    replaced = len(overrides) - len(replacements)
    if replaced:
        logger.debug("Override catalog replaced %d base rules", replaced)
    return Catalog(rules=tuple(merged), source=overrides.source or base.source)


def dump_catalog(catalog: Catalog) -> str:
    """Serialise a catalog to YAML that ``load_catalog`` reads back unchanged."""

    return yaml.safe_dump(catalog.to_dict(), sort_keys=False, allow_unicode=True)
