"""
Structural Rule Engine - Checks a single answer against declarative rules.

Rules are Laravel-style strings such as "required", "email", "min:3",
"in:small,medium,large" or "regex:/^[A-Z]{2}\\d+$/". A pipe-separated
string ("required|email") is accepted wherever a rule list is.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydantic import AnyHttpUrl, EmailStr, TypeAdapter, ValidationError

from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_URL_ADAPTER = TypeAdapter(AnyHttpUrl)

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_ALPHA_RE = re.compile(r"^[^\W\d_]+$")
_ALPHA_NUM_RE = re.compile(r"^[^\W_]+$")
_ALPHA_DASH_RE = re.compile(r"^[\w-]+$")

# Rules that need at least this many parameters
_PARAM_COUNTS = {
    "after": 1,
    "before": 1,
    "min": 1,
    "max": 1,
    "size": 1,
    "digits": 1,
    "between": 2,
    "in": 1,
    "not_in": 1,
    "regex": 1,
}
_NUMERIC_PARAM_RULES = {"min", "max", "size", "digits", "between"}

RuleList = Union[str, Sequence[str]]


@dataclass(frozen=True)
class Rule:
    """A parsed rule: its name and positional parameters."""
    name: str
    params: List[str] = field(default_factory=list)


@dataclass
class RuleCheckResult:
    """Result of checking one value: valid flag and ordered violation messages."""
    valid: bool
    errors: List[str] = field(default_factory=list)


def split_rules(rules: Optional[RuleList]) -> List[str]:
    """Turn a rule list or a pipe-separated rule string into a list of rule strings."""
    if rules is None:
        return []
    if isinstance(rules, str):
        return [part.strip() for part in rules.split("|") if part.strip()]
    result = []
    for rule in rules:
        if not isinstance(rule, str):
            raise ConfigError(f"Validation rules must be strings, got {type(rule).__name__}")
        rule = rule.strip()
        if rule:
            result.append(rule)
    return result


def parse_rule(rule: str) -> Rule:
    """Parse "name:param1,param2" into a Rule. Regex patterns are kept whole."""
    name, _, raw_params = rule.partition(":")
    name = name.strip().lower()
    if not raw_params:
        return Rule(name)
    if name == "regex":
        return Rule(name, [raw_params])
    return Rule(name, [p.strip() for p in raw_params.split(",")])


def _compile_regex(expression: str) -> "re.Pattern[str]":
    """Compile a "/pattern/flags" expression (delimiters optional)."""
    flags = 0
    pattern = expression
    if len(expression) >= 2 and expression[0] == "/" and expression.rfind("/") > 0:
        end = expression.rfind("/")
        pattern = expression[1:end]
        for flag in expression[end + 1:]:
            if flag == "i":
                flags |= re.IGNORECASE
            elif flag == "m":
                flags |= re.MULTILINE
            elif flag == "s":
                flags |= re.DOTALL
            elif flag == "u":
                continue
            else:
                raise re.error(f"unsupported regex flag '{flag}'")
    return re.compile(pattern, flags)


def _parse_date(text: str) -> date:
    relative = {
        "today": 0,
        "tomorrow": 1,
        "yesterday": -1,
    }
    key = text.strip().lower()
    if key in relative:
        return date.today() + timedelta(days=relative[key])
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        return datetime.fromisoformat(text.strip()).date()


def _to_number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _format_number(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


class RuleEngine:
    """
    Evaluates a value against a rule list.

    An empty value fails "required" and skips every other rule. Size rules
    (min, max, between, size) compare numerically when the list also contains
    "numeric" or "integer", and compare string length otherwise.
    """

    def __init__(self):
        self._checks: Dict[str, Callable[[str, Rule, str, bool], Optional[str]]] = {
            "required": self._check_required,
            "nullable": self._check_noop,
            "string": self._check_noop,
            "email": self._check_email,
            "url": self._check_url,
            "numeric": self._check_numeric,
            "integer": self._check_integer,
            "boolean": self._check_boolean,
            "alpha": self._check_alpha,
            "alpha_num": self._check_alpha_num,
            "alpha_dash": self._check_alpha_dash,
            "date": self._check_date,
            "after": self._check_after,
            "before": self._check_before,
            "min": self._check_min,
            "max": self._check_max,
            "between": self._check_between,
            "size": self._check_size,
            "digits": self._check_digits,
            "in": self._check_in,
            "not_in": self._check_not_in,
            "regex": self._check_regex,
        }

    @property
    def supported_rules(self) -> List[str]:
        return sorted(self._checks)

    def parse(self, field_name: str, rules: Optional[RuleList]) -> List[str]:
        """
        Validate a rule definition and return it as a list of rule strings.

        Raises:
            ConfigError: unknown rule, missing parameters, bad numeric parameter or bad regex
        """
        rule_strings = split_rules(rules)
        for rule_string in rule_strings:
            rule = parse_rule(rule_string)
            if rule.name not in self._checks:
                raise ConfigError(f"Unknown validation rule '{rule.name}' for field '{field_name}'")
            needed = _PARAM_COUNTS.get(rule.name, 0)
            if len([p for p in rule.params if p]) < needed:
                raise ConfigError(
                    f"Validation rule '{rule.name}' for field '{field_name}' needs {needed} parameter(s)"
                )
            if rule.name in _NUMERIC_PARAM_RULES and any(_to_number(p) is None for p in rule.params):
                raise ConfigError(
                    f"Validation rule '{rule.name}' for field '{field_name}' needs numeric parameters"
                )
            if rule.name in ("after", "before"):
                try:
                    _parse_date(rule.params[0])
                except ValueError:
                    raise ConfigError(
                        f"Validation rule '{rule.name}' for field '{field_name}' has an invalid date"
                    )
            if rule.name == "regex":
                try:
                    _compile_regex(rule.params[0])
                except re.error as e:
                    raise ConfigError(f"Invalid regex for field '{field_name}': {e}")
        return rule_strings

    def check(self, field_name: str, value: str, rules: Optional[RuleList]) -> RuleCheckResult:
        """
        Check a single field/value pair against its rules.

        Args:
            field_name: Field name, used in error messages
            value: Raw answer text
            rules: Rule list or pipe-separated rule string

        Returns:
            RuleCheckResult with every violated rule's message, in rule order
        """
        parsed = [parse_rule(r) for r in split_rules(rules)]
        names = {rule.name for rule in parsed}
        attribute = field_name.replace("_", " ")
        text = value.strip()

        if not text:
            if "required" in names:
                return RuleCheckResult(False, [f"The {attribute} field is required."])
            return RuleCheckResult(True)

        numeric = bool(names & {"numeric", "integer"})
        errors = []
        for rule in parsed:
            check = self._checks.get(rule.name)
            if check is None:
                raise ConfigError(f"Unknown validation rule '{rule.name}' for field '{field_name}'")
            error = check(text, rule, attribute, numeric)
            if error:
                errors.append(error)

        if errors and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Rule check failed for field {field_name}: {errors}")

        return RuleCheckResult(not errors, errors)

    # Individual rules. Each returns an error message or None.

    def _check_noop(self, value, rule, attribute, numeric):
        return None

    def _check_required(self, value, rule, attribute, numeric):
        return None if value else f"The {attribute} field is required."

    def _check_email(self, value, rule, attribute, numeric):
        try:
            _EMAIL_ADAPTER.validate_python(value)
        except ValidationError:
            return f"The {attribute} field must be a valid email address."
        return None

    def _check_url(self, value, rule, attribute, numeric):
        try:
            _URL_ADAPTER.validate_python(value)
        except ValidationError:
            return f"The {attribute} field must be a valid URL."
        return None

    def _check_numeric(self, value, rule, attribute, numeric):
        return None if _to_number(value) is not None else f"The {attribute} field must be a number."

    def _check_integer(self, value, rule, attribute, numeric):
        return None if _INTEGER_RE.match(value) else f"The {attribute} field must be an integer."

    def _check_boolean(self, value, rule, attribute, numeric):
        if value.lower() in ("true", "false", "1", "0"):
            return None
        return f"The {attribute} field must be true or false."

    def _check_alpha(self, value, rule, attribute, numeric):
        return None if _ALPHA_RE.match(value) else f"The {attribute} field must only contain letters."

    def _check_alpha_num(self, value, rule, attribute, numeric):
        if _ALPHA_NUM_RE.match(value):
            return None
        return f"The {attribute} field must only contain letters and numbers."

    def _check_alpha_dash(self, value, rule, attribute, numeric):
        if _ALPHA_DASH_RE.match(value):
            return None
        return f"The {attribute} field must only contain letters, numbers, dashes, and underscores."

    def _check_date(self, value, rule, attribute, numeric):
        try:
            _parse_date(value)
        except ValueError:
            return f"The {attribute} field must be a valid date."
        return None

    def _check_after(self, value, rule, attribute, numeric):
        try:
            if _parse_date(value) > _parse_date(rule.params[0]):
                return None
        except ValueError:
            pass
        return f"The {attribute} field must be a date after {rule.params[0]}."

    def _check_before(self, value, rule, attribute, numeric):
        try:
            if _parse_date(value) < _parse_date(rule.params[0]):
                return None
        except ValueError:
            pass
        return f"The {attribute} field must be a date before {rule.params[0]}."

    def _measure(self, value: str, numeric: bool) -> Optional[float]:
        if numeric:
            return _to_number(value)
        return float(len(value))

    def _check_min(self, value, rule, attribute, numeric):
        bound = float(rule.params[0])
        size = self._measure(value, numeric)
        if size is not None and size >= bound:
            return None
        if numeric:
            return f"The {attribute} field must be at least {_format_number(bound)}."
        return f"The {attribute} field must be at least {_format_number(bound)} characters."

    def _check_max(self, value, rule, attribute, numeric):
        bound = float(rule.params[0])
        size = self._measure(value, numeric)
        if size is not None and size <= bound:
            return None
        if numeric:
            return f"The {attribute} field must not be greater than {_format_number(bound)}."
        return f"The {attribute} field must not be greater than {_format_number(bound)} characters."

    def _check_between(self, value, rule, attribute, numeric):
        low, high = float(rule.params[0]), float(rule.params[1])
        size = self._measure(value, numeric)
        if size is not None and low <= size <= high:
            return None
        suffix = "" if numeric else " characters"
        return (
            f"The {attribute} field must be between {_format_number(low)} "
            f"and {_format_number(high)}{suffix}."
        )

    def _check_size(self, value, rule, attribute, numeric):
        expected = float(rule.params[0])
        if self._measure(value, numeric) == expected:
            return None
        if numeric:
            return f"The {attribute} field must be {_format_number(expected)}."
        return f"The {attribute} field must be {_format_number(expected)} characters."

    def _check_digits(self, value, rule, attribute, numeric):
        length = int(float(rule.params[0]))
        if value.isdigit() and len(value) == length:
            return None
        return f"The {attribute} field must be {length} digits."

    def _check_in(self, value, rule, attribute, numeric):
        return None if value in rule.params else f"The selected {attribute} is invalid."

    def _check_not_in(self, value, rule, attribute, numeric):
        return None if value not in rule.params else f"The selected {attribute} is invalid."

    def _check_regex(self, value, rule, attribute, numeric):
        if _compile_regex(rule.params[0]).search(value):
            return None
        return f"The {attribute} field format is invalid."
