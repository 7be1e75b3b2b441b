"""
Tests for reactive handles, create()/create_collection() and fetch/refresh.
"""

import asyncio

import pytest

from refmodel import (
    Model, Ref, CollectionRef, ref, ConfigDict, FetchResult,
    InvalidArgumentError, NotImplementedMethodError, TypeMismatchError,
)


class Todo(Model):
    __schema__ = {"id": "number", "title": "string", "done": "boolean"}


class Backend:
    """In-memory stand-in for an HTTP API."""

    def __init__(self):
        self.rows = {1: {"id": 1, "title": "write", "done": False}}
        self.calls = []

    async def get(self, id):
        self.calls.append(("get", id))
        await asyncio.sleep(0)
        return dict(self.rows[id])

    async def list(self):
        self.calls.append(("list",))
        await asyncio.sleep(0)
        return [dict(row) for row in self.rows.values()]


backend = Backend()


class RemoteTodo(Todo):
    @classmethod
    async def _fetch(cls, id):
        return cls.create(await backend.get(id))

    @classmethod
    async def _fetch_collection(cls):
        return cls.create_collection(await backend.list())

    @classmethod
    async def _fetch_raw(cls, id):
        return await backend.get(id)

    @classmethod
    def _fetch_sync(cls):
        return [{"id": 9, "title": "sync", "done": True}]

    @classmethod
    async def _fetch_nothing(cls):
        return 42

    async def save(self):
        backend.rows[self.id] = self.model_dump()
        return self


@pytest.fixture(autouse=True)
def reset_backend():
    backend.rows = {1: {"id": 1, "title": "write", "done": False}}
    backend.calls = []


# ============================================================
# Test: Ref
# ============================================================

class TestRef:
    """Ref notifies watchers on assignment."""

    def test_value(self):
        r = ref(1)
        assert isinstance(r, Ref)
        assert r.value == 1

    def test_watch(self):
        r = Ref(0)
        seen = []
        stop = r.watch(lambda new, old: seen.append((new, old)))
        r.value = 1
        r.value = 2
        stop()
        r.value = 3
        assert seen == [(1, 0), (2, 1)]

    def test_stop_twice(self):
        r = Ref(0)
        stop = r.watch(lambda new, old: None)
        stop()
        stop()

    def test_trigger(self):
        r = Ref([1])
        seen = []
        r.watch(lambda new, old: seen.append(list(new)))
        r.value.append(2)
        r.trigger()
        assert seen == [[1, 2]]

    def test_repr(self):
        assert repr(Ref(1)) == "Ref(1)"


class TestCollectionRef:
    """CollectionRef adds find_by_id."""

    def test_find_by_id(self):
        todos = Todo.create_collection([
            {"id": 1, "title": "a"},
            {"id": 2, "title": "b"},
            {"id": 2, "title": "c"},
        ])
        assert isinstance(todos, CollectionRef)
        assert todos.find_by_id(2).title == "b"
        assert todos.find_by_id(3) is None

    def test_find_by_id_follows_current_value(self):
        todos = Todo.create_collection([{"id": 1}])
        todos.value = Todo.construct_collection([{"id": 5, "title": "new"}])
        assert todos.find_by_id(1) is None
        assert todos.find_by_id(5).title == "new"

    def test_find_by_id_on_dicts(self):
        assert CollectionRef([{"id": "x"}]).find_by_id("x") == {"id": "x"}

    def test_find_by_id_skips_items_without_id(self):
        todos = Todo.create_collection([{"title": "no id"}, {"id": 1}])
        assert todos.find_by_id(None) is None
        assert CollectionRef([{"title": "x"}, {"id": None}]).find_by_id(None) == {"id": None}
        assert CollectionRef([{"title": "x"}, object()]).find_by_id(None) is None

    def test_find_by_id_not_reassignable(self):
        todos = CollectionRef([])
        with pytest.raises(AttributeError):
            todos.find_by_id = lambda id: None

    def test_len_and_iter(self):
        todos = Todo.create_collection([{"id": 1}, {"id": 2}])
        assert len(todos) == 2
        assert [t.id for t in todos] == [1, 2]


# ============================================================
# Test: create / create_collection
# ============================================================

class TestCreate:
    """create() wraps constructed instances."""

    def test_create(self):
        todo = Todo.create({"id": 1, "title": "a", "done": False})
        assert isinstance(todo, Ref)
        assert isinstance(todo.value, Todo)
        assert todo.value.title == "a"

    def test_create_validates(self):
        with pytest.raises(TypeMismatchError):
            Todo.create({"id": "1"})

    def test_create_collection_validates_shape(self):
        with pytest.raises(InvalidArgumentError):
            Todo.create_collection({"id": 1})

    def test_custom_factories(self):
        class Box:
            def __init__(self, value):
                self.value = value

        class Boxed(Todo):
            model_config = ConfigDict(reactive_factory=Box, collection_factory=Box)

        assert isinstance(Boxed.create({"id": 1}), Box)
        assert isinstance(Boxed.create_collection([]), Box)


# ============================================================
# Test: fetch / refresh
# ============================================================

class TestFetchAndRefresh:
    """fetch_and_refresh() keeps the handle and swaps its value."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        result = await RemoteTodo.fetch(1)
        assert isinstance(result, FetchResult)
        assert result.data.value.title == "write"
        assert backend.calls == [("get", 1)]

    @pytest.mark.asyncio
    async def test_refresh_keeps_handle(self):
        result = await RemoteTodo.fetch(1)
        handle = result.data
        seen = []
        handle.watch(lambda new, old: seen.append(new.title))

        backend.rows[1]["title"] = "rewrite"
        await result.refresh()

        assert result.data is handle
        assert handle.value.title == "rewrite"
        assert seen == ["rewrite"]
        assert backend.calls == [("get", 1), ("get", 1)]

    @pytest.mark.asyncio
    async def test_fetch_collection(self):
        result = await RemoteTodo.fetch_collection()
        assert isinstance(result.data, CollectionRef)
        assert result.data.find_by_id(1).title == "write"

        backend.rows[2] = {"id": 2, "title": "test", "done": True}
        await result.refresh()
        assert len(result.data.value) == 2
        assert result.data.find_by_id(2).done is True

    @pytest.mark.asyncio
    async def test_raw_mapping_is_materialized(self):
        result = await RemoteTodo.fetch_and_refresh("_fetch_raw", 1)
        assert isinstance(result.data, Ref)
        assert isinstance(result.data.value, RemoteTodo)

    @pytest.mark.asyncio
    async def test_sync_method(self):
        result = await RemoteTodo.fetch_and_refresh("_fetch_sync")
        assert result.data.find_by_id(9).title == "sync"

    @pytest.mark.asyncio
    async def test_unusable_result(self):
        with pytest.raises(InvalidArgumentError):
            await RemoteTodo.fetch_and_refresh("_fetch_nothing")

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        with pytest.raises(InvalidArgumentError):
            await RemoteTodo.fetch_and_refresh("_no_such_method")

    @pytest.mark.asyncio
    async def test_save_override(self):
        todo = RemoteTodo.construct({"id": 3, "title": "new", "done": False})
        await todo.save()
        assert backend.rows[3] == {"id": 3, "title": "new", "done": False}


class TestNotImplemented:
    """Extension points raise until a subclass overrides them."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        with pytest.raises(NotImplementedMethodError):
            await Todo.fetch(1)

    @pytest.mark.asyncio
    async def test_fetch_collection(self):
        with pytest.raises(NotImplementedMethodError):
            await Todo.fetch_collection()

    @pytest.mark.asyncio
    async def test_save_and_delete(self):
        todo = Todo.construct({"id": 1})
        with pytest.raises(NotImplementedError):
            await todo.save()
        with pytest.raises(NotImplementedError):
            await todo.delete()
