"""
Error types for refmodel.

Every error raised while validating or materializing a model derives from
``ModelError``. Each one also inherits the closest built-in exception so
callers that only know about ``TypeError``/``ValueError`` still catch them.

Example:
    from refmodel import Model, TypeMismatchError

    class User(Model):
        __schema__ = {"name": "string"}

    try:
        User.construct({"name": 42})
    except TypeMismatchError as e:
        print(e.attr, e.message)
"""

from typing import Any, Optional, Sequence


class ModelError(Exception):
    """Base class for all refmodel errors."""

    def __init__(self, message: str, model: Optional[str] = None, attr: Optional[str] = None):
        self.message = message
        self.model = model
        self.attr = attr
        super().__init__(self._format())

    def _format(self) -> str:
        if self.model and self.attr:
            return f"In model '{self.model}', property '{self.attr}': {self.message}"
        if self.model:
            return f"In model '{self.model}': {self.message}"
        return self.message


class InvalidArgumentError(ModelError, ValueError):
    """Malformed call: missing data, wrong shape, list where a mapping is expected."""


class UnknownAttributeError(ModelError, AttributeError):
    """Input attribute has no entry in the model schema."""


class UnknownSubModelError(ModelError, TypeError):
    """Mapping or list value for an attribute that declares no sub-model."""


class TypeMismatchError(ModelError, TypeError):
    """Runtime type of a value disagrees with its directive."""


class UnknownValidatorError(ModelError, LookupError):
    """Named rule not found in the rule library."""

    def __init__(self, rule: str, model: Optional[str] = None, attr: Optional[str] = None):
        self.rule = rule
        super().__init__(f"validator '{rule}' does not exist", model, attr)


class ValidationError(ModelError, ValueError):
    """A named rule rejected the value."""

    def __init__(
        self,
        rule: str,
        args: Sequence[Any] = (),
        model: Optional[str] = None,
        attr: Optional[str] = None,
    ):
        # Exception.args is taken, hence rule_args
        self.rule = rule
        self.rule_args = tuple(args)
        message = f"is invalid '{rule}'"
        if self.rule_args:
            message += f". Rules: {list(self.rule_args)!r}"
        super().__init__(message, model, attr)


class NotImplementedMethodError(ModelError, NotImplementedError):
    """An extension point (fetch, save, delete) was called without an override."""


__all__ = [
    "ModelError",
    "InvalidArgumentError",
    "UnknownAttributeError",
    "UnknownSubModelError",
    "TypeMismatchError",
    "UnknownValidatorError",
    "ValidationError",
    "NotImplementedMethodError",
]
