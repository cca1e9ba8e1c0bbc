"""
Field Normalizer - Turns field configuration into an ordered list of FieldSpec.

Accepted configuration shapes:

    # Structured form
    {"fields": ["name", "email"], "rules": {"email": ["required", "email"]}}

    # Plain list of names
    ["name", "email", "company"]

    # List of per-field entries (plain names may be mixed in)
    [{"name": "email", "rules": "required|email", "label": "Email"}, "company"]
    [["email", "required|email", "Email"], ["company"]]

Positional entries are [name, rules, label, description], trailing items
optional. The order of the configuration is the asking order. Names are never
sorted, merged or deduplicated; a duplicate name is a configuration error.
Unrecognised keys in per-field mappings are rejected rather than ignored.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models.field import FieldSpec
from ..validation.rules import RuleEngine, parse_rule
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

NAME_KEYS = ("name", "key", "field")
RULE_KEYS = ("rules", "validation", "validation_rules")
ENTRY_KEYS = set(NAME_KEYS) | set(RULE_KEYS) | {"label", "description", "required"}
MAX_POSITIONAL_ITEMS = 4


def _first_present(data: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"Field names must be non-empty strings, got {name!r}")
    return name.strip()


def _optional_text(value: Any, what: str, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"Field '{name}' {what} must be a string")
    return value


def _mapping_or_empty(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' must be a mapping of field name to value")
    return value


def _with_required(rules: List[str], required: Any, name: str) -> List[str]:
    """Apply a per-field "required" flag by adding the required rule."""
    if required is None:
        return rules
    if not isinstance(required, bool):
        raise ConfigError(f"Field '{name}' required must be true or false")
    if required and not any(parse_rule(r).name == "required" for r in rules):
        return ["required"] + rules
    return rules


def _from_structured(config: Mapping[str, Any], engine: RuleEngine) -> List[FieldSpec]:
    names = config["fields"]
    if isinstance(names, (str, bytes)) or not isinstance(names, (list, tuple)):
        raise ConfigError("'fields' must be a list of field names")

    rules = _mapping_or_empty(config, "rules")
    labels = _mapping_or_empty(config, "labels")
    descriptions = _mapping_or_empty(config, "descriptions")

    declared = [_check_name(name) for name in names]
    for extra in (rules, labels, descriptions):
        for key in extra:
            if key not in declared:
                raise ConfigError(f"Configuration references undeclared field '{key}'")

    return [
        FieldSpec(
            name=name,
            rules=engine.parse(name, rules.get(name)),
            label=_optional_text(labels.get(name), "label", name),
            description=_optional_text(descriptions.get(name), "description", name),
        )
        for name in declared
    ]


def _from_positional(entry: Sequence[Any], engine: RuleEngine) -> FieldSpec:
    if not entry or len(entry) > MAX_POSITIONAL_ITEMS:
        raise ConfigError(
            f"Positional field entries take 1 to {MAX_POSITIONAL_ITEMS} items "
            f"(name, rules, label, description), got {len(entry)}"
        )
    items = list(entry) + [None] * (MAX_POSITIONAL_ITEMS - len(entry))
    name = _check_name(items[0])
    return FieldSpec(
        name=name,
        rules=engine.parse(name, items[1]),
        label=_optional_text(items[2], "label", name),
        description=_optional_text(items[3], "description", name),
    )


def _from_mapping(entry: Mapping[str, Any], engine: RuleEngine) -> FieldSpec:
    name = _check_name(_first_present(entry, NAME_KEYS))
    unknown = sorted(str(key) for key in entry if key not in ENTRY_KEYS)
    if unknown:
        raise ConfigError(f"Field '{name}' has unsupported keys: {', '.join(unknown)}")

    rules = engine.parse(name, _first_present(entry, RULE_KEYS))
    return FieldSpec(
        name=name,
        rules=_with_required(rules, entry.get("required"), name),
        label=_optional_text(entry.get("label"), "label", name),
        description=_optional_text(entry.get("description"), "description", name),
    )


def _from_entry(entry: Any, engine: RuleEngine) -> FieldSpec:
    if isinstance(entry, str):
        return FieldSpec(name=_check_name(entry))

    if isinstance(entry, FieldSpec):
        return FieldSpec(
            name=_check_name(entry.name),
            rules=engine.parse(entry.name, entry.rules),
            label=entry.label,
            description=entry.description,
        )

    if isinstance(entry, Mapping):
        return _from_mapping(entry, engine)

    if isinstance(entry, (list, tuple)):
        return _from_positional(entry, engine)

    raise ConfigError(
        f"Invalid field format: {type(entry).__name__}. "
        f"Fields must be strings, mappings or [name, rules, label, description] lists."
    )


def normalize_fields(config: Any, rule_engine: Optional[RuleEngine] = None) -> List[FieldSpec]:
    """
    Normalize field configuration into an ordered list of FieldSpec.

    Args:
        config: Structured mapping, list of names, or list of per-field entries
        rule_engine: Engine used to validate rule definitions

    Returns:
        List[FieldSpec] in asking order (possibly empty)

    Raises:
        ConfigError: on malformed configuration or duplicate field names
    """
    engine = rule_engine or RuleEngine()

    if isinstance(config, Mapping):
        if "fields" not in config:
            raise ConfigError("Structured field configuration must contain a 'fields' key")
        specs = _from_structured(config, engine)
    elif isinstance(config, (list, tuple)):
        specs = [_from_entry(entry, engine) for entry in config]
    else:
        raise ConfigError(
            f"Field configuration must be a mapping or a list, got {type(config).__name__}"
        )

    seen: Dict[str, int] = {}
    for position, spec in enumerate(specs):
        if spec.name in seen:
            raise ConfigError(
                f"Duplicate field name '{spec.name}' at positions {seen[spec.name]} and {position}"
            )
        seen[spec.name] = position

    logger.debug(f"Normalized {len(specs)} fields: {[s.name for s in specs]}")
    return specs
