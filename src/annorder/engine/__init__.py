"""Ordering-rule engine — rule table, YAML rule config, and order checker."""

from annorder.engine.checker import (
    MESSAGE_PREFIX,
    Annotation,
    Violation,
    check_annotations,
    check_names,
    expected_order,
    format_message,
)
from annorder.engine.rule_table import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_CONSTRAINTS,
    NameMatcher,
    OrderConstraint,
    Ordered,
    RuleConfig,
    RuleTable,
    default_rule_table,
    load_rule_table,
    load_rules,
    validate_rules,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONSTRAINTS",
    "MESSAGE_PREFIX",
    "Annotation",
    "NameMatcher",
    "OrderConstraint",
    "Ordered",
    "RuleConfig",
    "RuleTable",
    "Violation",
    "check_annotations",
    "check_names",
    "default_rule_table",
    "expected_order",
    "format_message",
    "load_rule_table",
    "load_rules",
    "validate_rules",
]
