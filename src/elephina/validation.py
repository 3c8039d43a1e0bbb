"""
=============================================================================
INPUT VALIDATION
=============================================================================

Rule strings, one per field, checked left to right:

    rules = {
        "username": "required|alphanumeric|min:3|max:50",
        "email":    "required|email|max:255",
        "password": "required|min:6",
    }

    validator = Validator()
    if not validator.validate(ctx.body, rules):
        response.error("Validation failed.", 422, validator.errors()).send()

    errors() →  {"username": ["The username field must be at least 3 characters."],
                 "email":    ["The email field must be a valid email address."]}

A field stops at its FIRST failing rule, so each field reports at most one
message per validate() call.

    ┌──────────────┬────────────────────────────────────────────────────────┐
    │ Rule         │ Passes when                                            │
    ├──────────────┼────────────────────────────────────────────────────────┤
    │ required     │ present and not empty ("  " is empty, 0 is not)        │
    │ email        │ looks like local@domain.tld                            │
    │ min:n        │ len(str) >= n, or number >= n                          │
    │ max:n        │ len(str) <= n, or number <= n                          │
    │ numeric      │ a number, or a string that parses as one               │
    │ alpha        │ letters only                                           │
    │ alphanumeric │ letters and digits only                                │
    │ equals:x     │ equal to data[x] if x is a field, else to "x"          │
    └──────────────┴────────────────────────────────────────────────────────┘

Unknown rules and min/max without a numeric parameter are logged and
skipped; they never fail a field.

=============================================================================
"""

from typing import Any, Dict, List, Mapping, Optional
import logging
import re


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")
ALPHA_PATTERN = re.compile(r"^[A-Za-z]+$")
ALPHANUMERIC_PATTERN = re.compile(r"^[A-Za-z0-9]+$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_numeric(value: Any) -> bool:
    if _is_number(value):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return bool(value.strip())
    return False


def _parse_limit(rule: str, param: Optional[str]) -> Optional[int]:
    if param is None or not _is_numeric(param):
        logger.warning(f"Validation rule '{rule}' requires a numeric parameter.")
        return None
    return int(float(param))


class Validator:
    """Checks a mapping against per-field rule strings."""

    def __init__(self):
        self._errors: Dict[str, List[str]] = {}

    def validate(self, data: Mapping[str, Any], rules: Mapping[str, str]) -> bool:
        """
        Run every field's rules; True when nothing failed.

        Errors from a previous call are discarded.
        """
        self._errors = {}
        data = data or {}

        for field_name, field_rules in rules.items():
            value = data.get(field_name)

            for rule in str(field_rules).split("|"):
                rule = rule.strip()
                if not rule:
                    continue
                name, sep, param = rule.partition(":")
                check = getattr(self, f"_rule_{name}", None)
                if check is None:
                    logger.warning(f"Validation rule '{name}' not found.")
                    continue
                if not check(field_name, value, param if sep else None, data):
                    break

        return not self._errors

    def errors(self) -> Dict[str, List[str]]:
        return {name: list(messages) for name, messages in self._errors.items()}

    def _add_error(self, field_name: str, message: str) -> bool:
        self._errors.setdefault(field_name, []).append(message)
        return False

    # -------------------------------------------------------------------------
    # Rules: (field, value, param, data) -> bool
    # -------------------------------------------------------------------------

    def _rule_required(self, field_name, value, param, data) -> bool:
        if isinstance(value, str):
            value = value.strip()
        if value is None or value is False or (hasattr(value, "__len__") and len(value) == 0):
            return self._add_error(field_name, f"The {field_name} field is required.")
        return True

    def _rule_email(self, field_name, value, param, data) -> bool:
        if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
            return self._add_error(field_name, f"The {field_name} field must be a valid email address.")
        return True

    def _rule_min(self, field_name, value, param, data) -> bool:
        limit = _parse_limit("min", param)
        if limit is None:
            return True
        if isinstance(value, str) and len(value) < limit:
            return self._add_error(field_name, f"The {field_name} field must be at least {limit} characters.")
        if _is_number(value) and value < limit:
            return self._add_error(field_name, f"The {field_name} field must be at least {limit}.")
        return True

    def _rule_max(self, field_name, value, param, data) -> bool:
        limit = _parse_limit("max", param)
        if limit is None:
            return True
        if isinstance(value, str) and len(value) > limit:
            return self._add_error(field_name, f"The {field_name} field must not exceed {limit} characters.")
        if _is_number(value) and value > limit:
            return self._add_error(field_name, f"The {field_name} field must not exceed {limit}.")
        return True

    def _rule_numeric(self, field_name, value, param, data) -> bool:
        if not _is_numeric(value):
            return self._add_error(field_name, f"The {field_name} field must be a number.")
        return True

    def _rule_alpha(self, field_name, value, param, data) -> bool:
        if not isinstance(value, str) or not ALPHA_PATTERN.match(value):
            return self._add_error(field_name, f"The {field_name} field may only contain letters.")
        return True

    def _rule_alphanumeric(self, field_name, value, param, data) -> bool:
        if not isinstance(value, str) or not ALPHANUMERIC_PATTERN.match(value):
            return self._add_error(
                field_name, f"The {field_name} field may only contain letters and numbers."
            )
        return True

    def _rule_equals(self, field_name, value, param, data) -> bool:
        if param is not None and param in data:
            if value != data[param]:
                return self._add_error(field_name, f"The {field_name} field must match the {param} field.")
        elif value != param:
            return self._add_error(field_name, f"The {field_name} field must be equal to '{param}'.")
        return True
