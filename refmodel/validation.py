"""
Schema validation for refmodel.

``validate`` checks one attribute value against the directive the model's
schema declares for it. It only raises; it never transforms the value.
Checks run in a fixed order and the first matching directive decides.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from .config import get_config_value
from .directives import (
    AnyDirective,
    DateDirective,
    Directive,
    NamedRuleDirective,
    PrimitiveDirective,
    SubModelDirective,
)
from .errors import (
    TypeMismatchError,
    UnknownAttributeError,
    UnknownValidatorError,
    ValidationError,
)
from .rules import get_rule

logger = logging.getLogger(__name__)

_PRIMITIVE_CHECKS = {
    "boolean": lambda v: isinstance(v, bool),
    # bool is an int subclass; True is not a number here
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "string": lambda v: isinstance(v, str),
}


def get_directive(model: type, attr_name: str) -> Optional[Directive]:
    """Return the resolved directive for ``attr_name``, or None when the model has no schema."""
    directives = model.__directives__
    if directives is None:
        return None
    try:
        return directives[attr_name]
    except KeyError:
        logger.debug("Unknown attribute %s.%s", model.__name__, attr_name)
        raise UnknownAttributeError("does not exist", model.__name__, attr_name) from None


def validate(model: type, attr_name: str, value: Any) -> None:
    """Validate ``value`` for ``attr_name`` against ``model``'s schema.

    Raises:
        UnknownAttributeError: attribute not declared in the schema.
        TypeMismatchError: value type disagrees with a primitive/date directive,
            or value is None for a non-nullable attribute.
        UnknownValidatorError: named rule not in the rule library.
        ValidationError: named rule returned False.
    """
    directive = get_directive(model, attr_name)
    if directive is None:
        return

    name = model.__name__

    if value is None:
        if directive.nullable:
            return
        logger.debug("None rejected for %s.%s", name, attr_name)
        raise TypeMismatchError("must not be None", name, attr_name)

    if isinstance(directive, AnyDirective):
        return

    # Checked when the sub-model itself is constructed
    if isinstance(directive, SubModelDirective):
        return

    if isinstance(directive, DateDirective):
        if not isinstance(value, date):
            logger.debug("Non-date %r for %s.%s", value, name, attr_name)
            raise TypeMismatchError("must be date object", name, attr_name)
        return

    if isinstance(directive, PrimitiveDirective):
        if not _PRIMITIVE_CHECKS[directive.kind](value):
            logger.debug("Expected %s for %s.%s, got %r", directive.kind, name, attr_name, value)
            raise TypeMismatchError(
                f"must be '{directive.kind}', got {type(value).__name__}", name, attr_name
            )
        return

    if isinstance(directive, NamedRuleDirective):
        library = get_config_value(model.model_config, 'rules', None)
        rule = get_rule(directive.name, library)
        if rule is None:
            logger.debug("Unknown rule %s for %s.%s", directive.name, name, attr_name)
            raise UnknownValidatorError(directive.name, name, attr_name)
        try:
            ok = rule(value, *directive.args)
        except (TypeError, ValueError) as e:
            logger.debug("Rule %s raised on %s.%s: %s", directive.name, name, attr_name, e)
            ok = False
        if not ok:
            logger.debug("Rule %s rejected %s.%s=%r", directive.name, name, attr_name, value)
            raise ValidationError(directive.name, directive.args, name, attr_name)
        return

    raise TypeError(f"Unhandled directive {directive!r}")


def parse_date(model: type, attr_name: str, value: Any) -> Any:
    """Parse an ISO-8601 string into a datetime; other values pass through.

    A trailing ``Z`` is read as UTC. Date-only strings produce a ``date``.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith(('Z', 'z')):
            return datetime.fromisoformat(text[:-1]).replace(tzinfo=timezone.utc)
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable date %r for %s.%s", value, model.__name__, attr_name)
        raise TypeMismatchError(
            f"must be an ISO-8601 date, got {value!r}", model.__name__, attr_name
        ) from None


__all__ = ["validate", "get_directive", "parse_date"]
