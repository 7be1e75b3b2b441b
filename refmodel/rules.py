"""
Named validation rules for refmodel.

A rule is a predicate called as ``rule(value, *args)`` that returns True when
the value is acceptable. Schemas refer to rules by name, optionally with
arguments:

    class Account(Model):
        __schema__ = {
            "email": "is_email",
            "homepage": ["is_url", ["http", "https"]],
            "pin": ["is_length", 4, 4],
            "role": ["is_in", ["admin", "user"]],
        }

Extra rules are added with ``register_rule``:

    @register_rule("is_even")
    def is_even(value):
        return isinstance(value, int) and value % 2 == 0
"""

import re
import uuid
import base64
import binascii
import ipaddress
import json as json_module
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

Rule = Callable[..., bool]

_RULES: Dict[str, Rule] = {}


def register_rule(name: str) -> Callable[[Rule], Rule]:
    """Decorator registering a rule under ``name`` in the global library."""
    def decorator(func: Rule) -> Rule:
        _RULES[name] = func
        return func
    return decorator


def get_rule(name: str, library: Optional[Dict[str, Rule]] = None) -> Optional[Rule]:
    """Return the rule called ``name``, looking in ``library`` first."""
    if library and name in library:
        return library[name]
    return _RULES.get(name)


def rule_names() -> Sequence[str]:
    return sorted(_RULES)


# ============================================================
# Network rules
# ============================================================

_EMAIL_REGEX = re.compile(
    r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}'
    r'[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
)

_URL_REGEX = re.compile(
    r'^(?:([a-zA-Z][a-zA-Z0-9+.-]*):)?'  # scheme
    r'(?://)?'  # authority indicator
    r'([^/?#]*)'  # authority (host:port)
    r'([^?#]*)'  # path
    r'(?:\?([^#]*))?'  # query
    r'(?:#(.*))?$'  # fragment
)


@register_rule("is_email")
def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if not _EMAIL_REGEX.match(value):
        return False
    # Must have at least one dot in domain
    _, domain = value.rsplit('@', 1)
    return '.' in domain


@register_rule("is_url")
def is_url(value: Any, schemes: Optional[Iterable[str]] = None, max_length: int = 2083) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if len(value) > max_length:
        return False
    match = _URL_REGEX.match(value)
    if not match:
        return False
    scheme, authority = match.group(1), match.group(2)
    allowed = [s.lower() for s in schemes] if schemes else ['http', 'https', 'ftp']
    if not scheme or scheme.lower() not in allowed:
        return False
    return bool(authority)


@register_rule("is_ip")
def is_ip(value: Any, version: Optional[int] = None) -> bool:
    if not isinstance(value, str):
        return False
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return version is None or address.version == int(version)


# ============================================================
# String format rules
# ============================================================

@register_rule("is_uuid")
def is_uuid(value: Any, version: Optional[int] = None) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return version is None or parsed.version == int(version)


@register_rule("is_json")
def is_json(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        json_module.loads(value)
    except json_module.JSONDecodeError:
        return False
    return True


@register_rule("is_base64")
def is_base64(value: Any, url_safe: bool = False) -> bool:
    if not isinstance(value, str) or not value or len(value) % 4:
        return False
    try:
        if url_safe:
            if not re.fullmatch(r'[A-Za-z0-9_-]+={0,2}', value):
                return False
            base64.urlsafe_b64decode(value.encode('ascii'))
        else:
            base64.b64decode(value.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        return False
    return True


@register_rule("is_iso8601")
def is_iso8601(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    candidate = value[:-1] + '+00:00' if value.endswith('Z') else value
    try:
        datetime.fromisoformat(candidate)
    except ValueError:
        return False
    return True


@register_rule("is_hex_color")
def is_hex_color(value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(r'#?([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})', value) is not None


@register_rule("is_alpha")
def is_alpha(value: Any) -> bool:
    return isinstance(value, str) and value.isalpha()


@register_rule("is_alphanumeric")
def is_alphanumeric(value: Any) -> bool:
    return isinstance(value, str) and value.isalnum()


@register_rule("is_numeric")
def is_numeric(value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(r'[+-]?([0-9]*[.])?[0-9]+', value) is not None


@register_rule("is_lowercase")
def is_lowercase(value: Any) -> bool:
    return isinstance(value, str) and value == value.lower()


@register_rule("is_uppercase")
def is_uppercase(value: Any) -> bool:
    return isinstance(value, str) and value == value.upper()


@register_rule("is_empty")
def is_empty(value: Any, ignore_whitespace: bool = False) -> bool:
    if not isinstance(value, str):
        return False
    return (value.strip() if ignore_whitespace else value) == ''


# ============================================================
# Length and range rules
# ============================================================

@register_rule("is_length")
def is_length(value: Any, min: int = 0, max: Optional[int] = None) -> bool:
    if not isinstance(value, str):
        return False
    length = len(value)
    return length >= min and (max is None or length <= max)


@register_rule("is_int")
def is_int(value: Any, min: Optional[int] = None, max: Optional[int] = None) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        if not re.fullmatch(r'[+-]?[0-9]+', value):
            return False
        value = int(value)
    elif not isinstance(value, int):
        return False
    return (min is None or value >= min) and (max is None or value <= max)


@register_rule("is_float")
def is_float(value: Any, min: Optional[float] = None, max: Optional[float] = None) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return False
    elif not isinstance(value, (int, float)):
        return False
    return (min is None or value >= min) and (max is None or value <= max)


# ============================================================
# Comparison rules
# ============================================================

@register_rule("is_in")
def is_in(value: Any, choices: Iterable[Any]) -> bool:
    return value in list(choices)


@register_rule("matches")
def matches(value: Any, pattern: str, flags: int = 0) -> bool:
    return isinstance(value, str) and re.search(pattern, value, flags) is not None


@register_rule("contains")
def contains(value: Any, substring: str) -> bool:
    return isinstance(value, str) and substring in value


@register_rule("equals")
def equals(value: Any, other: Any) -> bool:
    return value == other


__all__ = [
    "Rule",
    "register_rule",
    "get_rule",
    "rule_names",
    "is_email", "is_url", "is_ip",
    "is_uuid", "is_json", "is_base64", "is_iso8601", "is_hex_color",
    "is_alpha", "is_alphanumeric", "is_numeric", "is_lowercase", "is_uppercase",
    "is_empty", "is_length", "is_int", "is_float",
    "is_in", "matches", "contains", "equals",
]
