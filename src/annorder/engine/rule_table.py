"""Ordering rule table: annotation precedence constraints, built-ins, and YAML config."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})
DEFAULT_CONFIG_NAME = "annotation-order.yml"

_MATCHER_KEYS: frozenset[str] = frozenset({"name", "prefix", "suffix", "exclude", "any"})
_RULE_KEYS: frozenset[str] = frozenset({"name", "description", "before", "after"})

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NameMatcher:
    """Matches annotation names exactly, by prefix, and/or by suffix.

    A matcher with none of ``name``, ``prefix`` or ``suffix`` set is a
    wildcard: it matches every name that is not listed in ``exclude``.
    """

    name: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    exclude: tuple[str, ...] = ()

    def matches(self, annotation_name: str) -> bool:
        """Return True if *annotation_name* satisfies every criterion that is set."""
        if annotation_name in self.exclude:
            return False
        if self.name is not None and self.name != annotation_name:
            return False
        if self.prefix is not None and not annotation_name.startswith(self.prefix):
            return False
        return not (self.suffix is not None and not annotation_name.endswith(self.suffix))

    @property
    def is_exact(self) -> bool:
        return self.name is not None and self.prefix is None and self.suffix is None

    def describe(self) -> str:
        """Human-readable form, e.g. ``@Json*`` or ``@*Res``."""
        if self.is_exact:
            return f"@{self.name}"
        if self.name is None and self.prefix is None and self.suffix is None:
            text = "@*"
        else:
            text = f"@{self.name or ''}{self.prefix or ''}*{self.suffix or ''}"
        if self.exclude:
            text += f" (except {', '.join('@' + e for e in self.exclude)})"
        return text


@dataclass(frozen=True)
class OrderConstraint:
    """An annotation matching ``first`` must precede one matching ``second``."""

    name: str
    description: str
    first: NameMatcher
    second: NameMatcher


@dataclass(frozen=True)
class Ordered:
    """Required relative order of two concrete annotation names."""

    first: str
    second: str
    constraint: OrderConstraint


@dataclass(frozen=True)
class RuleTable:
    """Immutable set of ordering constraints.

    Lookups are pure functions of the two names; constraints are consulted
    in table order and the first one that governs the pair wins.
    """

    constraints: tuple[OrderConstraint, ...] = ()

    def constraint_between(self, a: str, b: str) -> Ordered | None:
        """Return the required order of *a* and *b*, or ``None`` when unconstrained."""
        if a == b:
            return None
        for constraint in self.constraints:
            if constraint.first.matches(a) and constraint.second.matches(b):
                return Ordered(first=a, second=b, constraint=constraint)
            if constraint.first.matches(b) and constraint.second.matches(a):
                return Ordered(first=b, second=a, constraint=constraint)
        return None

    def with_overrides(self, constraints: Iterable[OrderConstraint]) -> RuleTable:
        """Return a new table with *constraints* consulted ahead of the existing ones."""
        return RuleTable(constraints=tuple(constraints) + self.constraints)

    def __len__(self) -> int:
        return len(self.constraints)


@dataclass(frozen=True)
class RuleConfig:
    """Parsed contents of an ``annotation-order.yml`` file."""

    constraints: tuple[OrderConstraint, ...] = ()
    use_defaults: bool = True
    exclude: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Built-in rules
# ---------------------------------------------------------------------------


def _pair(name: str, first: str, second: str, description: str) -> OrderConstraint:
    return OrderConstraint(
        name=name,
        description=description,
        first=NameMatcher(name=first),
        second=NameMatcher(name=second),
    )


DEFAULT_CONSTRAINTS: tuple[OrderConstraint, ...] = (
    _pair("override-before-test", "Override", "Test", "@Override comes before @Test"),
    OrderConstraint(
        name="inject-first",
        description="@Inject comes before every other annotation",
        first=NameMatcher(name="Inject"),
        second=NameMatcher(exclude=("Inject",)),
    ),
    _pair(
        "nullable-before-nonnull", "Nullable", "NonNull", "@Nullable comes before @NonNull"
    ),
    OrderConstraint(
        name="nullable-before-resource",
        description="@Nullable comes before resource type annotations",
        first=NameMatcher(name="Nullable"),
        second=NameMatcher(suffix="Res"),
    ),
    OrderConstraint(
        name="nonnull-before-resource",
        description="@NonNull comes before resource type annotations",
        first=NameMatcher(name="NonNull"),
        second=NameMatcher(suffix="Res"),
    ),
    _pair(
        "checkresult-before-checkreturnvalue",
        "CheckResult",
        "CheckReturnValue",
        "@CheckResult comes before @CheckReturnValue",
    ),
    OrderConstraint(
        name="json-before-json-family",
        description="@Json comes before the other @Json* annotations",
        first=NameMatcher(name="Json"),
        second=NameMatcher(prefix="Json", exclude=("Json",)),
    ),
    _pair(
        "documented-before-retention",
        "Documented",
        "Retention",
        "@Documented comes before @Retention",
    ),
    OrderConstraint(
        name="retention-before-typedef",
        description="@Retention comes before typedef annotations such as @IntDef",
        first=NameMatcher(name="Retention"),
        second=NameMatcher(suffix="Def"),
    ),
    _pair(
        "suppress-before-suppresslint",
        "Suppress",
        "SuppressLint",
        "@Suppress comes before @SuppressLint",
    ),
    _pair(
        "suppresslint-before-suppresswarnings",
        "SuppressLint",
        "SuppressWarnings",
        "@SuppressLint comes before @SuppressWarnings",
    ),
    _pair("keep-before-restrictto", "Keep", "RestrictTo", "@Keep comes before @RestrictTo"),
    _pair(
        "restrictto-before-targetapi",
        "RestrictTo",
        "TargetApi",
        "@RestrictTo comes before @TargetApi",
    ),
)

_DEFAULT_TABLE = RuleTable(constraints=DEFAULT_CONSTRAINTS)


def default_rule_table() -> RuleTable:
    """Return the built-in rule table (shared, immutable)."""
    return _DEFAULT_TABLE


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _parse_name_matcher(data: dict[str, object], context: str) -> NameMatcher:
    """Parse a matcher mapping such as ``{ suffix: Res, exclude: [Res] }``.

    A wildcard has to be spelled out as ``{ any: true }`` so that an empty
    mapping left behind by a typo does not silently match everything.
    """
    unknown = set(data) - _MATCHER_KEYS
    if unknown:
        msg = f"{context}: unknown matcher keys {sorted(unknown)}"
        raise ValueError(msg)

    values: dict[str, str | None] = {}
    for key in ("name", "prefix", "suffix"):
        raw = data.get(key)
        if raw is not None and (not isinstance(raw, str) or not raw.strip()):
            msg = f"{context}: '{key}' must be a non-empty string"
            raise ValueError(msg)
        values[key] = raw if isinstance(raw, str) else None

    is_any = data.get("any", False)
    if not isinstance(is_any, bool):
        msg = f"{context}: 'any' must be true or false"
        raise ValueError(msg)
    has_criteria = any(v is not None for v in values.values())
    if not has_criteria and not is_any:
        msg = f"{context}: matcher must have one of 'name', 'prefix', 'suffix', or 'any: true'"
        raise ValueError(msg)
    if has_criteria and is_any:
        msg = f"{context}: 'any' cannot be combined with 'name', 'prefix', or 'suffix'"
        raise ValueError(msg)

    exclude_raw = data.get("exclude", [])
    if isinstance(exclude_raw, str):
        exclude_raw = [exclude_raw]
    if not isinstance(exclude_raw, list):
        msg = f"{context}: 'exclude' must be a string or a list of strings"
        raise ValueError(msg)

    return NameMatcher(
        name=values["name"],
        prefix=values["prefix"],
        suffix=values["suffix"],
        exclude=tuple(str(item) for item in exclude_raw),
    )


def _parse_constraint(idx: int, rule_data: object, seen_names: set[str]) -> OrderConstraint:
    if not isinstance(rule_data, dict):
        msg = f"rules: rule at index {idx} must be a mapping"
        raise ValueError(msg)

    name = rule_data.get("name")
    if name is None or not isinstance(name, str) or not name.strip():
        msg = f"rules: rule at index {idx} missing required 'name' field"
        raise ValueError(msg)
    if name in seen_names:
        msg = f"rules: Duplicate rule name '{name}'"
        raise ValueError(msg)
    seen_names.add(name)

    unknown = set(rule_data) - _RULE_KEYS
    if unknown:
        msg = f"Rule '{name}': unknown keys {sorted(unknown)}"
        raise ValueError(msg)

    before = rule_data.get("before")
    after = rule_data.get("after")
    if not isinstance(before, dict):
        msg = f"Rule '{name}': 'before' must be a mapping"
        raise ValueError(msg)
    if not isinstance(after, dict):
        msg = f"Rule '{name}': 'after' must be a mapping"
        raise ValueError(msg)

    return OrderConstraint(
        name=name,
        description=str(rule_data.get("description", "")),
        first=_parse_name_matcher(before, f"Rule '{name}' before"),
        second=_parse_name_matcher(after, f"Rule '{name}' after"),
    )


def load_rules(rules_path: Path) -> RuleConfig:
    """Parse an ``annotation-order.yml`` file.

    Raises ``ValueError`` on schema errors (missing version, malformed
    matchers, duplicate rule names, etc.).
    """
    with rules_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        msg = f"{rules_path.name} must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = f"{rules_path.name}: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"{rules_path.name}: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    rules_data = data.get("rules", [])
    if rules_data is None:
        rules_data = []
    if not isinstance(rules_data, list):
        msg = f"{rules_path.name}: 'rules' must be a list"
        raise ValueError(msg)

    exclude_raw = data.get("exclude", [])
    if exclude_raw is None:
        exclude_raw = []
    if not isinstance(exclude_raw, list):
        msg = f"{rules_path.name}: 'exclude' must be a list of glob patterns"
        raise ValueError(msg)

    use_defaults = data.get("defaults", True)
    if not isinstance(use_defaults, bool):
        msg = f"{rules_path.name}: 'defaults' must be true or false"
        raise ValueError(msg)

    seen_names: set[str] = {c.name for c in DEFAULT_CONSTRAINTS}
    constraints = [
        _parse_constraint(idx, rule_data, seen_names) for idx, rule_data in enumerate(rules_data)
    ]

    return RuleConfig(
        constraints=tuple(constraints),
        use_defaults=use_defaults,
        exclude=tuple(str(pattern) for pattern in exclude_raw),
    )


def load_rule_table(rules_path: Path | None = None) -> tuple[RuleTable, RuleConfig]:
    """Build the effective rule table from the built-ins and an optional config file.

    When *rules_path* is ``None`` or does not exist, the built-in table is
    returned with an empty config.
    """
    if rules_path is None or not rules_path.is_file():
        return _DEFAULT_TABLE, RuleConfig()

    config = load_rules(rules_path)
    base = _DEFAULT_TABLE if config.use_defaults else RuleTable()
    # Custom rules win over built-ins that govern the same pair.
    table = base.with_overrides(config.constraints)
    logger.debug(
        "Loaded %d custom rules from %s (defaults=%s)",
        len(config.constraints),
        rules_path,
        config.use_defaults,
    )
    return table, config


# ---------------------------------------------------------------------------
# Validation (warnings, not errors)
# ---------------------------------------------------------------------------


def validate_rules(table: RuleTable) -> list[str]:
    """Check exact-name constraints for contradictions and repeats.

    Returns a list of warning strings (empty if all is well). Pattern rules
    are not cross-checked since their overlap depends on the names in use.
    """
    warnings: list[str] = []
    seen: dict[tuple[str, str], str] = {}

    for constraint in table.constraints:
        if not (constraint.first.is_exact and constraint.second.is_exact):
            continue
        pair = (str(constraint.first.name), str(constraint.second.name))
        if pair in seen:
            warnings.append(
                f"Rule '{constraint.name}' repeats rule '{seen[pair]}' "
                f"(@{pair[0]} before @{pair[1]})"
            )
            continue
        reverse = (pair[1], pair[0])
        if reverse in seen:
            warnings.append(
                f"Rule '{constraint.name}' contradicts rule '{seen[reverse]}' "
                f"(@{pair[0]} before @{pair[1]})"
            )
        seen[pair] = constraint.name

    return warnings
