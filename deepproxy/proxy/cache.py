"""
Identity and Path Caches

Non-owning bookkeeping for deep proxies: which wrapper stands for which
original object, and which path last reached each wrapper.

Built-in containers such as dict and list cannot be weakly referenced,
so entries are keyed by id() and only the wrappers are held, weakly. A
live wrapper keeps its original alive, which keeps the id key valid.
"""

import weakref
from typing import Any, Sequence


class ProxyStateError(RuntimeError):
    """Bookkeeping invariant violated."""
    pass


class IdentityCache:
    """
    Bidirectional 1:1 association between originals and wrappers.

    Wrappers must be weakly referenceable and must keep their original
    alive for as long as they live.
    """

    def __init__(self):
        self._by_original: dict[int, weakref.ReferenceType] = {}
        self._by_wrapper: dict[int, weakref.ReferenceType] = {}

    def get(self, original: Any) -> Any | None:
        ref = self._by_original.get(id(original))
        if ref is None:
            return None
        return ref()

    def put(self, original: Any, wrapper: Any) -> None:
        """
        Associate a wrapper with its original.

        Raises:
            ProxyStateError: If the original already has a live wrapper.
        """
        if self.get(original) is not None:
            raise ProxyStateError(
                f"{type(original).__name__} object at {id(original):#x} is already wrapped"
            )

        original_key = id(original)
        wrapper_key = id(wrapper)

        def _purge(ref: weakref.ReferenceType) -> None:
            if self._by_original.get(original_key) is ref:
                del self._by_original[original_key]
            if self._by_wrapper.get(wrapper_key) is ref:
                del self._by_wrapper[wrapper_key]

        ref = weakref.ref(wrapper, _purge)
        self._by_original[original_key] = ref
        self._by_wrapper[wrapper_key] = ref

    def remove(self, original: Any) -> None:
        """Break the association in both directions."""
        ref = self._by_original.pop(id(original), None)
        if ref is None:
            return
        wrapper = ref()
        if wrapper is not None and self._by_wrapper.get(id(wrapper)) is ref:
            del self._by_wrapper[id(wrapper)]

    def has_wrapper(self, original: Any) -> bool:
        return self.get(original) is not None

    def has_original(self, wrapper: Any) -> bool:
        ref = self._by_wrapper.get(id(wrapper))
        return ref is not None and ref() is wrapper

    def clear(self) -> None:
        self._by_original.clear()
        self._by_wrapper.clear()

    def __len__(self) -> int:
        return sum(1 for ref in self._by_original.values() if ref() is not None)


class PathTracker:
    """
    Last observed path for each live wrapper.

    Paths are stored as tuples and handed out as new lists.
    """

    def __init__(self):
        self._paths: dict[int, tuple[weakref.ReferenceType, tuple[str, ...]]] = {}

    def set_path(self, wrapper: Any, path: Sequence[str]) -> None:
        key = id(wrapper)
        entry = self._paths.get(key)
        if entry is not None and entry[0]() is wrapper:
            ref = entry[0]
        else:
            def _purge(dead: weakref.ReferenceType) -> None:
                current = self._paths.get(key)
                if current is not None and current[0] is dead:
                    del self._paths[key]

            ref = weakref.ref(wrapper, _purge)
        self._paths[key] = (ref, tuple(path))

    def get_path(self, wrapper: Any) -> list[str] | None:
        entry = self._paths.get(id(wrapper))
        if entry is None or entry[0]() is not wrapper:
            return None
        return list(entry[1])

    def clear_path(self, wrapper: Any) -> None:
        entry = self._paths.get(id(wrapper))
        if entry is not None and entry[0]() is wrapper:
            del self._paths[id(wrapper)]

    def clear(self) -> None:
        self._paths.clear()

    def __len__(self) -> int:
        return sum(1 for ref, _ in self._paths.values() if ref() is not None)
