"""Validation module - structural rules and the dual (semantic + structural) validator."""

from .rules import RuleEngine, RuleCheckResult, Rule, parse_rule, split_rules
from .dual_validator import DualValidator, SEMANTIC_FAILURE_MESSAGE

__all__ = [
    'RuleEngine', 'RuleCheckResult', 'Rule', 'parse_rule', 'split_rules',
    'DualValidator', 'SEMANTIC_FAILURE_MESSAGE'
]
