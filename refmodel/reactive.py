"""
Reactive handles for refmodel.

A ``Ref`` holds a value and notifies watchers whenever ``.value`` is
reassigned. UI layers subscribe with ``watch`` and re-render on change.

Example:
    from refmodel import Ref

    count = Ref(0)
    stop = count.watch(lambda new, old: print(f"{old} -> {new}"))
    count.value = 1   # prints "0 -> 1"
    stop()
"""

from typing import Any, Callable, Generic, List, Optional, TypeVar

T = TypeVar('T')
Watcher = Callable[[Any, Any], None]

_NO_ID = object()


class Ref(Generic[T]):
    """Observable container for a single value."""
    __slots__ = ('_value', '_watchers')

    def __init__(self, value: T):
        self._value = value
        self._watchers: List[Watcher] = []

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new: T) -> None:
        old = self._value
        self._value = new
        self.trigger(old)

    def watch(self, callback: Watcher) -> Callable[[], None]:
        """Call ``callback(new, old)`` on every assignment to ``.value``.

        Returns a function that removes the watcher.
        """
        self._watchers.append(callback)

        def stop() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return stop

    def trigger(self, old: Any = None) -> None:
        """Notify watchers without reassigning, e.g. after an in-place mutation."""
        for callback in list(self._watchers):
            callback(self._value, old)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class CollectionRef(Ref[List[T]]):
    """Ref holding a list of model instances."""
    __slots__ = ()

    def find_by_id(self, id: Any) -> Optional[T]:
        """Return the first item whose ``id`` equals ``id``, or None."""
        for item in self._value or ():
            if isinstance(item, dict):
                item_id = item.get('id', _NO_ID)
            else:
                item_id = getattr(item, 'id', _NO_ID)
            if item_id is not _NO_ID and item_id == id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._value or ())

    def __iter__(self):
        return iter(self._value or ())


def ref(value: T) -> Ref[T]:
    return Ref(value)


__all__ = ["Ref", "CollectionRef", "ref", "Watcher"]
