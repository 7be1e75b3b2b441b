"""
Model implementation for refmodel.

A ``Model`` subclass declares a ``__schema__`` mapping attribute names to
directives. Plain data (mappings and lists of mappings, typically decoded
JSON from a backend) is validated against the schema and materialized into
instances, with nested sub-models constructed recursively. ``create`` and
``create_collection`` wrap the result in a reactive handle for a UI layer.

Subclasses override ``_fetch``, ``_fetch_collection``, ``save`` and
``delete`` to talk to their backend.

Example:
    from refmodel import Model, nullable

    class Address(Model):
        __schema__ = {"city": "string", "zip": ["matches", r"^\\d{5}$"]}

    class User(Model):
        __schema__ = {
            "id": "number",
            "name": "string",
            "email": "is_email",
            "address": Address,
            "tags": "any",
            "nickname": nullable("string"),
        }

        @property
        def label(self) -> str:
            return f"{self.name} <{self.email}>"

        @classmethod
        async def _fetch(cls, id):
            payload = await http_get(f"/users/{id}")
            return cls.create(payload)

    user = User.construct({"id": 1, "name": "Ann", "email": "ann@example.com",
                           "address": {"city": "Porto", "zip": "40000"}})
    assert isinstance(user.address, Address)
    assert user.model_dump()["label"] == "Ann <ann@example.com>"

    result = await User.fetch(1)
    await result.refresh()
"""

import copy
import inspect
import json as _json
import logging
from typing import (
    Any, Awaitable, Callable, ClassVar, Dict, Iterator, List, Literal, Mapping,
    Optional, Tuple, Type, TypeVar,
)

from .config import ConfigDict, get_config_value
from .directives import (
    AnyDirective,
    DateDirective,
    Directive,
    SubModelDirective,
    resolve_directive,
)
from .errors import (
    InvalidArgumentError,
    NotImplementedMethodError,
    TypeMismatchError,
    UnknownSubModelError,
)
from .reactive import Ref
from .validation import get_directive, parse_date, validate

logger = logging.getLogger(__name__)

# Type variable for model methods returning an instance of the subclass
_T = TypeVar('_T', bound='Model')


class _Unset:
    """Marker for "no value": keys mapped to UNSET are skipped by set_values."""
    __slots__ = ()

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

# Filled in once Model exists; schema keys may not shadow its public API
_RESERVED_NAMES: frozenset = frozenset()


def _collect_computed_fields(cls: type) -> Tuple[str, ...]:
    """Names of properties declared on ``cls`` and its bases, base-first."""
    names: Dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        if klass is object or klass.__name__ == 'Model' and klass.__module__ == __name__:
            continue
        for attr_name, attr_value in vars(klass).items():
            if isinstance(attr_value, property) and not attr_name.startswith('_'):
                names[attr_name] = None
    return tuple(names)


class _ModelMeta(type):
    """Metaclass for Model that resolves the schema at class creation."""

    def __new__(mcs, name: str, bases: tuple, namespace: dict) -> type:
        cls = super().__new__(mcs, name, bases, namespace)

        if name == 'Model' and namespace.get('__module__') == __name__:
            # Set default values for the base class
            cls.__directives__ = None
            cls.model_computed_fields = ()
            return cls

        # Get model_config from class or inherit from parent
        model_config: Optional[ConfigDict] = namespace.get('model_config')
        if model_config is None:
            for base in bases:
                if getattr(base, 'model_config', None) is not None:
                    model_config = base.model_config
                    break
        cls.model_config = model_config

        schema = getattr(cls, '__schema__', None)
        if schema is None:
            cls.__directives__ = None
        else:
            if not isinstance(schema, Mapping):
                raise InvalidArgumentError(
                    f"__schema__ must be a mapping, got {type(schema).__name__}", name
                )
            directives: Dict[str, Directive] = {}
            for attr_name, raw in schema.items():
                if attr_name in _RESERVED_NAMES or attr_name.startswith('_'):
                    raise InvalidArgumentError(
                        f"'{attr_name}' is reserved and cannot be a schema attribute", name
                    )
                directives[attr_name] = resolve_directive(raw, attr_name)
            cls.__directives__ = directives

        cls.model_computed_fields = _collect_computed_fields(cls)

        logger.debug(
            "Compiled model %s: %s schema attribute(s), computed fields %s",
            name,
            'no' if cls.__directives__ is None else len(cls.__directives__),
            cls.model_computed_fields,
        )
        return cls


class FetchResult:
    """Reactive data returned by ``Model.fetch_and_refresh`` plus its reload."""
    __slots__ = ('data', '_loader')

    def __init__(self, data: Any, loader: Callable[[], Awaitable[Any]]):
        self.data = data
        self._loader = loader

    async def refresh(self) -> None:
        """Call the fetch method again and replace ``data.value`` in place.

        Concurrent refreshes are not sequenced; the last one to finish wins.
        """
        fresh = await self._loader()
        self.data.value = fresh.value

    def __repr__(self) -> str:
        return f"FetchResult(data={self.data!r})"


class Model(metaclass=_ModelMeta):
    """Schema-validated model with nested sub-models and reactive wrappers.

    Declare ``__schema__`` as a mapping of attribute name to directive:

    - ``"any"``: no validation
    - ``"boolean"``, ``"number"``, ``"string"``: exact type match
    - ``"date"``: date/datetime, ISO-8601 strings are parsed
    - a Model subclass: nested mapping (or list of mappings) built as sub-models
    - a rule name or ``[rule_name, *args]``: named rule from ``refmodel.rules``
    - ``nullable(directive)``: also accept None

    Without a schema every attribute is accepted as-is.

    Properties declared on the class are computed fields; they are listed
    by ``keys()`` and included by ``model_dump()``.
    """

    __schema__: ClassVar[Optional[Dict[str, Any]]] = None
    __directives__: ClassVar[Optional[Dict[str, Directive]]]

    model_config: ClassVar[Optional[ConfigDict]] = None
    model_computed_fields: ClassVar[Tuple[str, ...]]

    # Instance attributes
    __model_fields_set__: Dict[str, None]
    __model_frozen__: bool

    def __init__(self, **data: Any) -> None:
        self._init_state()
        self.set_values(data)
        self._seal()

    def _init_state(self) -> None:
        object.__setattr__(self, '__model_fields_set__', {})
        object.__setattr__(self, '__model_frozen__', False)

    def _seal(self) -> None:
        if get_config_value(type(self).model_config, 'frozen', False):
            object.__setattr__(self, '__model_frozen__', True)

    def _check_frozen(self) -> None:
        if self.__dict__.get('__model_frozen__', False):
            raise TypeError(f"{type(self).__name__} is frozen and does not support item assignment")

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    @classmethod
    def construct(cls: Type[_T], data: Mapping[str, Any]) -> _T:
        """Validate ``data`` and build an instance without reactive wrapping.

        Nested mappings for sub-model attributes become sub-model instances,
        lists become lists of sub-model instances. Scalars are deep-copied.

        Raises:
            InvalidArgumentError: ``data`` is None, a list, or not a mapping.
            ModelError: any validation failure; nothing is returned on error.
        """
        if data is None:
            raise InvalidArgumentError("The argument 'data' was not provided or is None.", cls.__name__)
        if isinstance(data, (list, tuple)):
            raise InvalidArgumentError(
                "Array is not allowed. To create collections use construct_collection.", cls.__name__
            )
        if not isinstance(data, Mapping):
            raise InvalidArgumentError(
                f"The 'data' argument must be a mapping. Received: {type(data).__name__}", cls.__name__
            )

        logger.debug("Constructing %s from %d key(s)", cls.__name__, len(data))
        instance = cls.__new__(cls)
        instance._init_state()
        instance.set_values(data)
        instance._seal()
        return instance

    @classmethod
    def construct_collection(cls: Type[_T], items: Any) -> List[_T]:
        """Build one instance per mapping in ``items``, preserving order."""
        if not isinstance(items, (list, tuple)):
            raise InvalidArgumentError(
                f"Collection data must be a list, got {type(items).__name__}", cls.__name__
            )
        logger.debug("Constructing collection of %d %s", len(items), cls.__name__)
        return [cls.construct(item) for item in items]

    # ------------------------------------------------------------------
    # Reactive wrappers
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, data: Mapping[str, Any]) -> Any:
        """Construct an instance and wrap it in the configured reactive handle."""
        factory = get_config_value(cls.model_config, 'reactive_factory')
        return factory(cls.construct(data))

    @classmethod
    def create_collection(cls, items: Any) -> Any:
        """Construct a list of instances wrapped in a collection handle (with ``find_by_id``)."""
        factory = get_config_value(cls.model_config, 'collection_factory')
        return factory(cls.construct_collection(items))

    @classmethod
    def _as_handle(cls, result: Any) -> Any:
        if isinstance(result, Ref):
            return result
        if isinstance(result, Model):
            return get_config_value(cls.model_config, 'reactive_factory')(result)
        if isinstance(result, Mapping):
            return cls.create(result)
        if isinstance(result, (list, tuple)):
            return cls.create_collection(result)
        if hasattr(result, 'value'):
            return result
        raise InvalidArgumentError(
            f"Fetch method must return a handle, a mapping or a list, got {type(result).__name__}",
            cls.__name__,
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    @classmethod
    async def fetch_and_refresh(cls, method_name: str, *args: Any) -> FetchResult:
        """Call ``method_name(*args)`` and return its data with a ``refresh()``.

        ``refresh()`` repeats the call with the same arguments and replaces the
        contents of the original handle, so anything holding the handle sees
        the new data.
        """
        method = getattr(cls, method_name, None)
        if method is None or not callable(method):
            raise InvalidArgumentError(f"method '{method_name}' does not exist", cls.__name__)

        async def load() -> Any:
            logger.debug("Fetching %s.%s%r", cls.__name__, method_name, args)
            result = method(*args)
            if inspect.isawaitable(result):
                result = await result
            return cls._as_handle(result)

        data = await load()
        return FetchResult(data, load)

    @classmethod
    async def _fetch(cls, id: Any) -> Any:
        """Retrieve one record from the backend. Override in subclasses.

        Return a handle from ``cls.create(...)`` or the raw mapping.
        """
        raise NotImplementedMethodError("Static method _fetch() not implemented yet", cls.__name__)

    @classmethod
    async def fetch(cls, id: Any) -> FetchResult:
        return await cls.fetch_and_refresh('_fetch', id)

    @classmethod
    async def _fetch_collection(cls) -> Any:
        """Retrieve all records from the backend. Override in subclasses."""
        raise NotImplementedMethodError(
            "Static method _fetch_collection() not implemented yet", cls.__name__
        )

    @classmethod
    async def fetch_collection(cls) -> FetchResult:
        return await cls.fetch_and_refresh('_fetch_collection')

    async def save(self) -> Any:
        """Persist this record (create or update). Override in subclasses."""
        raise NotImplementedMethodError("Method save() not implemented yet", type(self).__name__)

    async def delete(self) -> Any:
        """Remove this record from the backend. Override in subclasses."""
        raise NotImplementedMethodError("Method delete() not implemented yet", type(self).__name__)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def set_value(self, attr_name: str, value: Any) -> None:
        """Validate and assign a single attribute.

        Mappings become sub-model instances and lists become lists of
        sub-model instances. Existing instances are deep-copied, as are
        other values.
        """
        self._check_frozen()
        cls = type(self)
        directive = get_directive(cls, attr_name)

        if isinstance(directive, DateDirective):
            value = parse_date(cls, attr_name, value)

        validate(cls, attr_name, value)

        if value is None:
            pass
        elif isinstance(directive, SubModelDirective):
            if isinstance(value, (list, tuple)):
                value = [self._materialize(directive.model, attr_name, item) for item in value]
            else:
                value = self._materialize(directive.model, attr_name, value)
        elif isinstance(value, (Mapping, list, tuple)) and not (
            directive is None or isinstance(directive, AnyDirective)
        ):
            logger.debug("No sub-model for %s.%s", cls.__name__, attr_name)
            raise UnknownSubModelError(f"Model \"{attr_name}\" not exists.", cls.__name__, attr_name)
        else:
            value = copy.deepcopy(value)

        object.__setattr__(self, attr_name, value)
        self.__model_fields_set__[attr_name] = None

    def _materialize(self, model: type, attr_name: str, item: Any) -> Any:
        # instances are copied, never shared with the caller
        if isinstance(item, model):
            return copy.deepcopy(item)
        if isinstance(item, Mapping):
            return model.construct(item)
        logger.debug("Rejected %s for sub-model %s.%s", type(item).__name__, type(self).__name__, attr_name)
        raise TypeMismatchError(
            f"must be a mapping or list for sub-model '{model.__name__}', "
            f"got {type(item).__name__}",
            type(self).__name__, attr_name,
        )

    def set_values(self, data: Mapping[str, Any]) -> None:
        """Assign every key of ``data``; keys mapped to ``UNSET`` are skipped.

        Existing attributes not present in ``data`` are left alone.
        """
        if data is None:
            raise InvalidArgumentError("The argument 'data' was not provided or is None.", type(self).__name__)
        if isinstance(data, (list, tuple)):
            raise InvalidArgumentError(
                "Array is not allowed. To create collections use create_collection.", type(self).__name__
            )
        if not isinstance(data, Mapping):
            raise InvalidArgumentError(
                f"The 'data' argument must be a mapping. Received: {data!r}", type(self).__name__
            )

        for attr_name, value in data.items():
            if value is UNSET:
                continue
            self.set_value(attr_name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        """Set attribute with frozen/validate_assignment support."""
        cls = type(self)
        self._check_frozen()

        if name.startswith('_') or name in cls.model_computed_fields:
            object.__setattr__(self, name, value)
            return

        if get_config_value(cls.model_config, 'validate_assignment', False):
            self.set_value(name, value)
            return

        object.__setattr__(self, name, value)
        self.__model_fields_set__[name] = None

    def __delattr__(self, name: str) -> None:
        """Delete attribute (blocked if frozen)."""
        self._check_frozen()
        object.__delattr__(self, name)
        self.__model_fields_set__.pop(name, None)

    # ------------------------------------------------------------------
    # Introspection and serialization
    # ------------------------------------------------------------------

    def keys(self) -> List[str]:
        """Assigned data attributes in assignment order, then computed fields."""
        return list(self.__model_fields_set__) + [
            name for name in type(self).model_computed_fields
            if name not in self.__model_fields_set__
        ]

    @property
    def model_fields_set(self) -> List[str]:
        """Data attributes assigned so far, in order."""
        return list(self.__model_fields_set__)

    def model_dump(
        self,
        *,
        mode: Literal['json', 'python'] = 'python',
        exclude_none: bool = False,
    ) -> Dict[str, Any]:
        """Convert the instance (and nested sub-models) to a dictionary.

        Args:
            mode: 'python' keeps Python objects, 'json' converts dates to ISO-8601.
            exclude_none: Leave out attributes whose value is None.
        """
        result: Dict[str, Any] = {}
        for name in self.keys():
            value = getattr(self, name)
            if exclude_none and value is None:
                continue
            if isinstance(value, Model):
                value = value.model_dump(mode=mode, exclude_none=exclude_none)
            elif isinstance(value, list):
                value = [
                    v.model_dump(mode=mode, exclude_none=exclude_none) if isinstance(v, Model) else v
                    for v in value
                ]
            if mode == 'json':
                value = self._serialize_for_json(value)
            result[name] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def _serialize_for_json(self, value: Any) -> Any:
        """Convert a value to JSON-compatible types."""
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, bytes):
            return value.decode('utf-8', errors='replace')
        if isinstance(value, (list, tuple)):
            return [self._serialize_for_json(v) for v in value]
        if isinstance(value, dict):
            return {k: self._serialize_for_json(v) for k, v in value.items()}
        if isinstance(value, set):
            return list(value)
        if hasattr(value, 'isoformat'):  # datetime, date
            return value.isoformat()
        return str(value)

    def model_dump_json(self, *, indent: Optional[int] = None, exclude_none: bool = False) -> str:
        data = self.model_dump(mode='json', exclude_none=exclude_none)
        return _json.dumps(data, indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        parts = [f"{name}={getattr(self, name)!r}" for name in self.__model_fields_set__]
        return f"{type(self).__name__}({', '.join(parts)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    __hash__ = None  # mutable

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __getitem__(self, key: str) -> Any:
        """Get attribute value by name (dict-like access)."""
        if key in self.keys():
            return getattr(self, key)
        raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return key in self.keys()


_RESERVED_NAMES = frozenset(name for name in vars(Model) if not name.startswith('_'))


__all__ = ["Model", "FetchResult", "UNSET"]
