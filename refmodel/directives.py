"""
Schema directives for refmodel.

A model schema maps attribute names to raw directives written as plain data
(strings, lists, model classes). ``resolve_directive`` turns each raw directive
into one of the tagged variants below, once per class.

Example:
    from refmodel import Model, nullable

    class Address(Model):
        __schema__ = {"city": "string"}

    class User(Model):
        __schema__ = {
            "id": "number",
            "name": "string",
            "active": "boolean",
            "email": ["is_email"],
            "nick": nullable(["is_length", 2, 20]),
            "born": "date",
            "address": Address,
            "extra": "any",
        }
"""

from typing import Any, Optional, Tuple

from .errors import InvalidArgumentError

PRIMITIVE_KINDS = ("boolean", "number", "string")


class Nullable:
    """Marker produced by ``nullable()``; lets ``None`` through validation."""
    __slots__ = ('directive',)

    def __init__(self, directive: Any):
        object.__setattr__(self, 'directive', directive)

    def __repr__(self) -> str:
        return f"nullable({self.directive!r})"


def nullable(directive: Any) -> Nullable:
    """Allow ``None`` for an attribute in addition to what ``directive`` accepts."""
    return Nullable(directive)


# --- Directive variants ---

class Directive:
    """Base class for resolved directives."""
    __slots__ = ('nullable',)

    def __init__(self, nullable: bool = False):
        object.__setattr__(self, 'nullable', nullable)

    def _key(self) -> Tuple[Any, ...]:
        return (type(self).__name__, self.nullable)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")


class AnyDirective(Directive):
    """Accepts any value, including None."""
    __slots__ = ()

    def __init__(self):
        super().__init__(True)

    def __repr__(self) -> str:
        return "AnyDirective()"


class PrimitiveDirective(Directive):
    """Exact runtime-type match: boolean, number or string."""
    __slots__ = ('kind',)

    def __init__(self, kind: str, nullable: bool = False):
        super().__init__(nullable)
        object.__setattr__(self, 'kind', kind)

    def _key(self) -> Tuple[Any, ...]:
        return super()._key() + (self.kind,)

    def __repr__(self) -> str:
        return f"PrimitiveDirective(kind={self.kind!r}, nullable={self.nullable!r})"


class DateDirective(Directive):
    """Date or datetime value; ISO-8601 strings are parsed on assignment."""
    __slots__ = ()

    def __repr__(self) -> str:
        return f"DateDirective(nullable={self.nullable!r})"


class SubModelDirective(Directive):
    """Nested model (or list of models) constructed from raw mappings."""
    __slots__ = ('model',)

    def __init__(self, model: type, nullable: bool = False):
        super().__init__(nullable)
        object.__setattr__(self, 'model', model)

    def _key(self) -> Tuple[Any, ...]:
        return super()._key() + (self.model,)

    def __repr__(self) -> str:
        return f"SubModelDirective(model={self.model.__name__}, nullable={self.nullable!r})"


class NamedRuleDirective(Directive):
    """Named rule from the rule library, called as ``rule(value, *args)``."""
    __slots__ = ('name', 'args')

    def __init__(self, name: str, args: Tuple[Any, ...] = (), nullable: bool = False):
        super().__init__(nullable)
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'args', tuple(args))

    def _key(self) -> Tuple[Any, ...]:
        return super()._key() + (self.name, repr(self.args))

    def __repr__(self) -> str:
        return f"NamedRuleDirective(name={self.name!r}, args={self.args!r}, nullable={self.nullable!r})"


def _is_model_class(raw: Any) -> bool:
    return isinstance(raw, type) and hasattr(raw, '__directives__')


def resolve_directive(raw: Any, attr_name: Optional[str] = None) -> Directive:
    """Resolve a raw schema entry into a ``Directive``.

    Handles:
    - ``"any"``
    - ``"boolean"``, ``"number"``, ``"string"``
    - ``"date"``
    - a Model subclass
    - a rule name, or a list/tuple ``[rule_name, *rule_args]``
    - any of the above wrapped in ``nullable()``
    """
    is_nullable = False
    if isinstance(raw, Nullable):
        is_nullable = True
        raw = raw.directive

    if isinstance(raw, (list, tuple)):
        if not raw or not isinstance(raw[0], str):
            raise InvalidArgumentError(
                f"Rule directive must start with a rule name, got {raw!r}", attr=attr_name
            )
        name, *args = raw
        if name in ("any", "date") or name in PRIMITIVE_KINDS:
            if args:
                raise InvalidArgumentError(
                    f"Directive '{name}' does not take arguments", attr=attr_name
                )
            return resolve_directive(nullable(name) if is_nullable else name, attr_name)
        return NamedRuleDirective(name, tuple(args), nullable=is_nullable)

    if isinstance(raw, str):
        if raw == "any":
            return AnyDirective()
        if raw == "date":
            return DateDirective(nullable=is_nullable)
        if raw in PRIMITIVE_KINDS:
            return PrimitiveDirective(raw, nullable=is_nullable)
        return NamedRuleDirective(raw, (), nullable=is_nullable)

    if _is_model_class(raw):
        return SubModelDirective(raw, nullable=is_nullable)

    raise InvalidArgumentError(
        f"Unsupported schema directive {raw!r}", attr=attr_name
    )


__all__ = [
    "Directive",
    "AnyDirective",
    "PrimitiveDirective",
    "DateDirective",
    "SubModelDirective",
    "NamedRuleDirective",
    "Nullable",
    "nullable",
    "resolve_directive",
    "PRIMITIVE_KINDS",
]
