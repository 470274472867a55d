"""
Tests for Interception Engine and Wrappers
"""

import pytest

from deepproxy.proxy.deep_proxy import DeepProxy
from deepproxy.proxy.models import ProxyHandler, ProxyOperationType, ProxyOptions
from deepproxy.proxy.wrappers import (
    CallableProxy,
    MappingProxy,
    ObjectProxy,
    SequenceProxy,
    unwrap,
)


class Stats:
    def __init__(self, hp):
        self.hp = hp


class Player:
    def __init__(self):
        self.name = "hero"
        self.stats = Stats(10)

    def heal(self, amount):
        self.stats.hp += amount
        return self.stats.hp


def double(value):
    return value * 2


class TestSequenceProxy:
    """Test suite for list wrapping."""

    @pytest.fixture
    def data(self):
        return {"items": [{"id": 1}, {"id": 2}]}

    @pytest.fixture
    def proxy(self, data):
        return DeepProxy(data, options=ProxyOptions(proxy_arrays=True))

    @pytest.fixture
    def items(self, proxy):
        return proxy.create()["items"]

    def test_list_is_wrapped(self, proxy, items, data):
        """Test that lists get a wrapper with proxy_arrays on."""
        assert isinstance(items, SequenceProxy)
        assert unwrap(items) is data["items"]
        assert proxy.get_path(items) == ["items"]
        assert len(items) == 2

    def test_index_paths(self, proxy, items):
        """Test that element paths record the position."""
        assert proxy.get_path(items[0]) == ["items", "0"]
        assert proxy.get_path(items[-1]) == ["items", "1"]
        assert items[-1] is items[1]

    def test_append_attaches_element(self, proxy, items, data):
        """Test that appended composites are tracked immediately."""
        element = {"id": 3}
        items.append(element)

        assert data["items"][2] is element
        assert proxy.is_proxied(element)
        assert proxy.get_path(element) == ["items", "2"]

    def test_insert_goes_through_write_handler(self, data):
        """Test that inserts can be vetoed."""
        proxy = DeepProxy(
            data,
            ProxyHandler(on_write=lambda target, key, value: False),
            ProxyOptions(proxy_arrays=True),
        )
        items = proxy.create()["items"]

        items.insert(0, {"id": 0})

        assert len(data["items"]) == 2

    def test_delete_element(self, proxy, items, data):
        """Test deleting by index."""
        first = items[0]
        del items[0]

        assert data["items"] == [{"id": 2}]
        assert proxy.is_proxied(first) is False

    def test_iteration_yields_wrappers(self, items):
        """Test that iterating reads through the proxy."""
        elements = list(items)

        assert all(isinstance(e, MappingProxy) for e in elements)
        assert [e["id"] for e in elements] == [1, 2]

    def test_slices(self, items):
        """Test slice reads and rejected slice writes."""
        assert [e["id"] for e in items[0:2]] == [1, 2]

        with pytest.raises(TypeError):
            items[0:1] = []
        with pytest.raises(TypeError):
            del items[0:1]

    def test_contains_and_equality(self, items, data):
        """Test membership and comparison against plain lists."""
        assert {"id": 2} in items
        assert items[0] in items
        assert items == [{"id": 1}, {"id": 2}]

    def test_out_of_range(self, items):
        """Test that index errors come from the list."""
        with pytest.raises(IndexError):
            items[5]

    def test_negative_index_past_start(self, proxy, items, data):
        """Test that indexes below -len raise instead of wrapping around twice."""
        with pytest.raises(IndexError):
            items[-3]
        with pytest.raises(IndexError):
            items[-3] = {"id": 9}
        with pytest.raises(IndexError):
            del items[-3]

        assert data["items"] == [{"id": 1}, {"id": 2}]
        # Only the fixture's read of "items" reached the engine
        assert proxy.stats["operation_count"] == 1

    def test_write_past_end(self, items, data):
        """Test that assigning one past the end raises like the list."""
        with pytest.raises(IndexError):
            items[2] = {"id": 3}

        assert len(data["items"]) == 2

    def test_insert_clamps_index(self, items, data):
        """Test that insert positions are clamped like list.insert."""
        items.insert(-10, {"id": 0})
        items.insert(10, {"id": 3})

        assert [e["id"] for e in data["items"]] == [0, 1, 2, 3]

    def test_failed_store_leaves_nothing_attached(self):
        """Test that a store rejected by the target does not track the value."""
        data = {"pair": ({"x": 1},)}
        proxy = DeepProxy(data, options={"proxy_arrays": True})
        pair = proxy.create()["pair"]
        fresh = {"y": 2}

        with pytest.raises(TypeError):
            pair[0] = fresh

        assert data["pair"][0] == {"x": 1}
        assert proxy.is_proxied(fresh) is False

    def test_tuple_is_read_only(self):
        """Test that tuple wrappers surface the tuple's own error on write."""
        data = {"pair": ({"x": 1}, {"y": 2})}
        root = DeepProxy(data, options={"proxy_arrays": True}).create()
        pair = root["pair"]

        assert isinstance(pair[0], MappingProxy)
        with pytest.raises(TypeError):
            pair[0] = {}


class TestObjectProxy:
    """Test suite for attribute interception."""

    @pytest.fixture
    def player(self):
        return Player()

    @pytest.fixture
    def proxy(self, player):
        return DeepProxy(player)

    @pytest.fixture
    def root(self, proxy):
        return proxy.create()

    def test_object_is_wrapped(self, root, player):
        """Test attribute reads through an object wrapper."""
        assert isinstance(root, ObjectProxy)
        assert isinstance(root, Player)
        assert root.name == "hero"
        assert root.stats.hp == 10

    def test_nested_attribute_wrapper(self, proxy, root):
        """Test path bookkeeping for attribute access."""
        stats = root.stats

        assert isinstance(stats, ObjectProxy)
        assert stats is root.stats
        assert proxy.get_path(stats) == ["stats"]

    def test_attribute_write(self, root, player):
        """Test attribute assignment."""
        root.stats.hp = 3
        root.level = 2

        assert player.stats.hp == 3
        assert player.level == 2

    def test_attribute_write_veto(self, player):
        """Test that the write handler can reject attribute assignment."""
        root = DeepProxy(player, ProxyHandler(on_write=lambda target, key, value: False)).create()

        root.stats.hp = 0

        assert player.stats.hp == 10

    def test_attribute_delete(self, proxy, root, player):
        """Test attribute deletion retires the child wrapper."""
        stats = root.stats
        del root.stats

        assert not hasattr(player, "stats")
        assert proxy.is_proxied(stats) is False

    def test_failed_attribute_store(self):
        """Test that a slotted target rejecting a new attribute tracks nothing."""
        class Slotted:
            __slots__ = ("hp",)

        target = Slotted()
        proxy = DeepProxy(target)
        root = proxy.create()
        extra = {"a": 1}

        with pytest.raises(AttributeError):
            root.extra = extra

        assert proxy.is_proxied(extra) is False
        assert proxy.stats["live_wrappers"] == 1

    def test_missing_attribute(self, root):
        """Test that missing attributes raise AttributeError."""
        assert hasattr(root, "missing") is False
        with pytest.raises(AttributeError):
            root.missing

    def test_methods_are_not_wrapped(self, root, player):
        """Test that bound methods are returned as is by default."""
        assert root.heal(5) == 15
        assert player.stats.hp == 15

    def test_forwarded_dunders(self, root, player):
        """Test equality, hashing and repr."""
        assert root == player
        assert hash(root) == hash(player)
        assert "Player" in repr(root)


class TestCallableProxy:
    """Test suite for callable wrapping."""

    def test_callables_plain_by_default(self):
        """Test that functions are not wrapped unless enabled."""
        data = {"fn": double}
        root = DeepProxy(data).create()

        assert root["fn"] is double

    def test_callables_wrapped_when_enabled(self):
        """Test calls through a callable wrapper."""
        data = {"fn": double}
        proxy = DeepProxy(data, options=ProxyOptions(proxy_functions=True))
        fn = proxy.create()["fn"]

        assert isinstance(fn, CallableProxy)
        assert fn(21) == 42
        assert fn.__name__ == "double"
        assert proxy.get_path(fn) == ["fn"]


class TestEngineEvents:
    """Test suite for engine events and statistics."""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def proxy(self, events):
        data = {"a": {"b": {"c": 1}}}
        return DeepProxy(
            data,
            ProxyHandler(on_delete=lambda target, key: key != "locked"),
            event_callback=events.append,
        )

    def test_read_events(self, proxy, events):
        """Test one event per read."""
        proxy.create()["a"]["b"]["c"]

        assert [e.operation for e in events] == [ProxyOperationType.READ] * 3
        assert [e.path for e in events] == [["a"], ["a", "b"], ["a", "b", "c"]]
        assert [e.wrapped for e in events] == [True, True, False]
        assert events[2].value_type == "int"
        assert all(e.proxy_id == proxy.engine.proxy_id for e in events)

    def test_write_and_delete_events(self, proxy, events):
        """Test vetoes are reported in events and stats."""
        root = proxy.create()
        root["locked"] = {"x": 1}
        del root["locked"]
        del root["a"]

        writes = [e for e in events if e.operation == ProxyOperationType.WRITE]
        deletes = [e for e in events if e.operation == ProxyOperationType.DELETE]

        assert writes[0].wrapped is True
        assert [d.allowed for d in deletes] == [False, True]
        assert deletes[0].metadata["retired"] is True

        stats = proxy.stats
        assert stats["operation_count"] == 3
        assert stats["blocked_count"] == 1
        assert stats["wrap_count"] == 2
