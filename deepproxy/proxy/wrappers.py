"""
Proxy Wrappers

Interception surfaces bound to one underlying object each. Every data
access goes through the owning InterceptionEngine, which decides about
nested wrapping, path bookkeeping and handler mediation.

- MappingProxy: dicts and other mappings, item access
- SequenceProxy: lists and tuples, index access
- ObjectProxy: arbitrary instances, attribute access
- CallableProxy: callables, attribute access plus calls
"""

import operator
from collections.abc import Mapping, MutableMapping, MutableSequence
from typing import Any

_get = object.__getattribute__
_set = object.__setattr__


class BaseProxy:
    """Common state of all wrappers."""

    __slots__ = (
        "_proxy_engine",
        "_proxy_target",
        "_proxy_path",
        "_proxy_children",
        "__weakref__",
    )

    def __init__(self, engine: Any, target: Any, path: tuple[str, ...]):
        _set(self, "_proxy_engine", engine)
        _set(self, "_proxy_target", target)
        _set(self, "_proxy_path", path)
        # Child wrappers handed out by this wrapper, keyed by id(original);
        # released once no key of the target still holds that original
        _set(self, "_proxy_children", {})


def proxy_engine(proxy: BaseProxy) -> Any:
    return _get(proxy, "_proxy_engine")


def proxy_target(proxy: BaseProxy) -> Any:
    return _get(proxy, "_proxy_target")


def proxy_path(proxy: BaseProxy) -> tuple[str, ...]:
    """Path the wrapper was created at; children extend this path."""
    return _get(proxy, "_proxy_path")


def proxy_children(proxy: BaseProxy) -> dict[int, BaseProxy]:
    return _get(proxy, "_proxy_children")


def unwrap(obj: Any) -> Any:
    """Return the underlying object of a wrapper, or obj itself."""
    if isinstance(obj, BaseProxy):
        return _get(obj, "_proxy_target")
    return obj


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


class MappingProxy(BaseProxy, MutableMapping):
    """Wrapper for mappings; get, items, values, pop, update are intercepted."""

    __slots__ = ()

    def __getitem__(self, key):
        return proxy_engine(self).read(self, key, operator.getitem)

    def __setitem__(self, key, value):
        proxy_engine(self).write(self, key, value, operator.setitem, operator.getitem)

    def __delitem__(self, key):
        proxy_engine(self).delete(self, key, operator.getitem, operator.delitem)

    def __iter__(self):
        return iter(proxy_target(self))

    def __len__(self):
        return len(proxy_target(self))

    def __contains__(self, key):
        return key in proxy_target(self)

    def __eq__(self, other):
        other = unwrap(other)
        if not isinstance(other, Mapping):
            return NotImplemented
        return proxy_target(self) == other

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({proxy_target(self)!r})"


def _insert(target, index, value):
    target.insert(index, value)


class SequenceProxy(BaseProxy, MutableSequence):
    """
    Wrapper for lists and tuples.

    Negative indexes are normalised so paths always record the position.
    Slices read as a list of intercepted element reads; slice assignment
    and deletion are not supported.
    """

    __slots__ = ()

    def _position(self, index, clamp: bool = False) -> int:
        index = operator.index(index)
        size = len(proxy_target(self))
        if index < 0:
            index += size
        if clamp:
            return min(max(index, 0), size)
        if not 0 <= index < size:
            raise IndexError("list index out of range")
        return index

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        return proxy_engine(self).read(self, self._position(index), operator.getitem)

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            raise TypeError("slice assignment is not supported through a proxy")
        proxy_engine(self).write(
            self, self._position(index), value, operator.setitem, operator.getitem
        )

    def __delitem__(self, index):
        if isinstance(index, slice):
            raise TypeError("slice deletion is not supported through a proxy")
        proxy_engine(self).delete(
            self, self._position(index), operator.getitem, operator.delitem
        )

    def insert(self, index, value):
        proxy_engine(self).write(self, self._position(index, clamp=True), value, _insert)

    def __len__(self):
        return len(proxy_target(self))

    def __contains__(self, value):
        return unwrap(value) in proxy_target(self)

    def __eq__(self, other):
        return proxy_target(self) == unwrap(other)

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({proxy_target(self)!r})"


class ObjectProxy(BaseProxy):
    """
    Wrapper for arbitrary objects; attribute access is intercepted.

    Dunder attributes go straight to the target so the wrapper reports the
    target's class and behaves like it in isinstance checks.
    """

    __slots__ = ()

    def __getattribute__(self, name):
        if _is_dunder(name):
            return getattr(proxy_target(self), name)
        return proxy_engine(self).read(self, name, getattr)

    def __setattr__(self, name, value):
        if _is_dunder(name):
            setattr(proxy_target(self), name, value)
            return
        proxy_engine(self).write(self, name, value, setattr, getattr)

    def __delattr__(self, name):
        if _is_dunder(name):
            delattr(proxy_target(self), name)
            return
        proxy_engine(self).delete(self, name, getattr, delattr)

    def __repr__(self):
        return f"{type(self).__name__}({proxy_target(self)!r})"

    def __str__(self):
        return str(proxy_target(self))

    def __eq__(self, other):
        return proxy_target(self) == unwrap(other)

    def __hash__(self):
        return hash(proxy_target(self))

    def __bool__(self):
        return bool(proxy_target(self))

    def __len__(self):
        return len(proxy_target(self))

    def __iter__(self):
        return iter(proxy_target(self))

    def __contains__(self, item):
        return unwrap(item) in proxy_target(self)


class CallableProxy(ObjectProxy):
    """Wrapper for callables."""

    __slots__ = ()

    def __call__(self, *args, **kwargs):
        return proxy_target(self)(*args, **kwargs)


def proxy_class_for(original: Any) -> type[BaseProxy]:
    """Pick the wrapper type matching the shape of an object."""
    if isinstance(original, Mapping):
        return MappingProxy
    if isinstance(original, (list, tuple)):
        return SequenceProxy
    if callable(original):
        return CallableProxy
    return ObjectProxy
