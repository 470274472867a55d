"""
Interception Engine

Lazily wraps the objects of a graph as they are reached through
wrappers, keeps one wrapper per original, records the path each wrapper
was last reached by, and mediates writes and deletes through the
caller's handlers.
"""

from collections.abc import Mapping
from typing import Any, Callable, Sequence
from uuid import UUID, uuid4

from structlog import get_logger

from deepproxy.proxy.cache import IdentityCache, PathTracker
from deepproxy.proxy.models import ProxyEvent, ProxyHandler, ProxyOperationType
from deepproxy.proxy.policy_engine import PolicyEvaluator
from deepproxy.proxy.wrappers import (
    BaseProxy,
    proxy_children,
    proxy_class_for,
    proxy_path,
    proxy_target,
    unwrap,
)

logger = get_logger(__name__)

_MISSING = object()

Fetch = Callable[[Any, Any], Any]
Store = Callable[[Any, Any, Any], None]
Discard = Callable[[Any, Any], None]


def _holds(target: Any, original: Any) -> bool:
    """Whether any key, index or attribute of target refers to original."""
    if isinstance(target, Mapping):
        values = target.values()
    elif isinstance(target, (list, tuple)):
        values = target
    else:
        values = getattr(target, "__dict__", {}).values()
    return any(value is original for value in values)


class InterceptionEngine:
    """
    Core recursive wrapping algorithm.

    Wrappers call read/write/delete with the accessor functions matching
    their shape (item or attribute access); the engine does the rest:
    - Wrap qualifying nested values on read, eagerly on write
    - Reuse the cached wrapper of an already wrapped original
    - Keep path bookkeeping current
    - Let handlers transform reads and veto writes and deletes

    Usage:
        engine = InterceptionEngine(PolicyEvaluator(options), handler)
        root = engine.wrap(data, ())
        root["player"]["hp"] = 10
    """

    def __init__(
        self,
        evaluator: PolicyEvaluator,
        handler: ProxyHandler | None = None,
        event_callback: Callable[[ProxyEvent], None] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            evaluator: Policy deciding which values get wrappers.
            handler: Read/write/delete callbacks.
            event_callback: Receives a ProxyEvent per intercepted operation.
        """
        self.proxy_id: UUID = uuid4()
        self.evaluator = evaluator
        self.handler = handler or ProxyHandler()
        self.event_callback = event_callback
        self.identity = IdentityCache()
        self.paths = PathTracker()

        self._operation_count = 0
        self._blocked_count = 0
        self._wrap_count = 0

    # =========================================================================
    # Wrapping
    # =========================================================================

    def wrap(self, original: Any, path: Sequence[str]) -> Any:
        """
        Return the wrapper for an object, creating it if needed.

        Args:
            original: Object to wrap. Wrappers are unwrapped first.
            path: Keys leading from the root to the object.

        Returns:
            The wrapper, or original unchanged when it does not qualify.
        """
        path = tuple(path)
        if not self.evaluator.within_depth(path):
            return original

        raw = unwrap(original)
        if not self.evaluator.should_wrap(raw, path):
            return original

        wrapper = self.identity.get(raw)
        if wrapper is not None:
            return wrapper

        wrapper = proxy_class_for(raw)(self, raw, path)
        # Registered before returning so re-entrant access sees this wrapper
        self.identity.put(raw, wrapper)
        self.paths.set_path(wrapper, path)
        self._wrap_count += 1

        logger.debug(
            "proxy_wrapped",
            path=list(path),
            target_type=type(raw).__name__,
            wrapper_type=type(wrapper).__name__,
        )
        return wrapper

    def _adopt(self, parent: BaseProxy, value: Any, path: tuple[str, ...]) -> BaseProxy | None:
        """Wrap a child reached through parent and record the path it was reached by."""
        wrapper = self.wrap(value, path)
        if not isinstance(wrapper, BaseProxy):
            return None
        self.paths.set_path(wrapper, path)
        proxy_children(parent)[id(unwrap(wrapper))] = wrapper
        return wrapper

    def _release(self, parent: BaseProxy, original: Any) -> None:
        """Drop the parent's hold on a child no key of the parent still holds."""
        if not _holds(proxy_target(parent), original):
            proxy_children(parent).pop(id(original), None)

    def _detach(self, parent: BaseProxy, raw: Any, wrapper: BaseProxy, created: bool) -> None:
        """Undo the eager attachment of a value that was not stored."""
        self._release(parent, raw)
        if created and not _holds(proxy_target(parent), raw):
            self.identity.remove(raw)
            self.paths.clear_path(wrapper)

    # =========================================================================
    # Intercepted Operations
    # =========================================================================

    def read(self, proxy: BaseProxy, key: Any, fetch: Fetch) -> Any:
        """
        Read a key through a wrapper.

        Args:
            proxy: Wrapper being read.
            key: Item key, index or attribute name.
            fetch: Accessor returning target[key] or getattr(target, key).

        Returns:
            The nested wrapper, the read handler's result, or the raw value.
        """
        target = proxy_target(proxy)
        self._operation_count += 1

        value = fetch(target, key)
        child_path = proxy_path(proxy) + (str(key),)

        wrapper = self._adopt(proxy, value, child_path)
        if wrapper is not None:
            self._emit(ProxyOperationType.READ, child_path, value, wrapped=True)
            return wrapper

        if self.handler.on_read is not None:
            value = self.handler.on_read(target, key)

        self._emit(ProxyOperationType.READ, child_path, value)
        return value

    def write(
        self,
        proxy: BaseProxy,
        key: Any,
        value: Any,
        store: Store,
        fetch: Fetch | None = None,
    ) -> bool:
        """
        Write a key through a wrapper.

        Args:
            proxy: Wrapper being written.
            key: Item key, index or attribute name.
            value: New value. Wrappers are stored as their originals.
            store: Accessor applying the write to the target.
            fetch: Accessor for the value being replaced, if any.

        Returns:
            Whether the write was applied.
        """
        target = proxy_target(proxy)
        self._operation_count += 1

        raw = unwrap(value)
        child_path = proxy_path(proxy) + (str(key),)
        previous = self._current(target, key, fetch)

        # Attach the new subtree now so it is observable before the next read
        wrapper = self.identity.get(raw)
        created = wrapper is None
        if created:
            wrapper = self.wrap(raw, child_path)
        attached = isinstance(wrapper, BaseProxy)
        if attached:
            proxy_children(proxy)[id(raw)] = wrapper

        try:
            if self.handler.on_write is not None:
                allowed = bool(self.handler.on_write(target, key, raw))
            else:
                allowed = True
            if allowed:
                store(target, key, raw)
        except Exception:
            if attached:
                self._detach(proxy, raw, wrapper, created)
            raise

        if allowed:
            if previous is not _MISSING and previous is not raw:
                self._release(proxy, previous)
        else:
            self._blocked_count += 1
            if attached:
                self._detach(proxy, raw, wrapper, created)

        log_method = logger.debug if allowed else logger.info
        log_method(
            "proxy_write",
            path=list(child_path),
            value_type=type(raw).__name__,
            allowed=allowed,
        )
        self._emit(
            ProxyOperationType.WRITE, child_path, raw,
            wrapped=attached, allowed=allowed,
        )
        return allowed

    def delete(self, proxy: BaseProxy, key: Any, fetch: Fetch, discard: Discard) -> bool:
        """
        Delete a key through a wrapper.

        The wrapper of the deleted value is retired from the caches before
        the delete handler runs, even if the handler then vetoes.

        Args:
            proxy: Wrapper being modified.
            key: Item key, index or attribute name.
            fetch: Accessor for the current value.
            discard: Accessor applying the delete to the target.

        Returns:
            Whether the delete was applied.
        """
        target = proxy_target(proxy)
        self._operation_count += 1

        child_path = proxy_path(proxy) + (str(key),)
        current = self._current(target, key, fetch)
        retired = False

        if current is not _MISSING:
            wrapper = self.identity.get(current)
            if wrapper is not None:
                self.identity.remove(current)
                self.paths.clear_path(wrapper)
                proxy_children(proxy).pop(id(current), None)
                retired = True
                logger.debug("proxy_retired", path=list(child_path))

        if self.handler.on_delete is not None:
            allowed = bool(self.handler.on_delete(target, key))
        else:
            allowed = True

        if allowed:
            discard(target, key)
        else:
            self._blocked_count += 1

        log_method = logger.debug if allowed else logger.info
        log_method("proxy_delete", path=list(child_path), allowed=allowed)
        self._emit(
            ProxyOperationType.DELETE, child_path,
            None if current is _MISSING else current,
            allowed=allowed, retired=retired,
        )
        return allowed

    # =========================================================================
    # Queries
    # =========================================================================

    def path_of(self, obj: Any) -> list[str] | None:
        """Path of a wrapper, or of the wrapper of a tracked original."""
        if self.identity.has_original(obj):
            return self.paths.get_path(obj)
        wrapper = self.identity.get(obj)
        if wrapper is not None:
            return self.paths.get_path(wrapper)
        return None

    def is_tracked(self, obj: Any) -> bool:
        """Whether obj is a wrapper or an original known to this engine."""
        return self.identity.has_wrapper(obj) or self.identity.has_original(obj)

    @property
    def stats(self) -> dict:
        """Get engine statistics."""
        return {
            "operation_count": self._operation_count,
            "blocked_count": self._blocked_count,
            "wrap_count": self._wrap_count,
            "live_wrappers": len(self.identity),
        }

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @staticmethod
    def _current(target: Any, key: Any, fetch: Fetch | None) -> Any:
        """Current value at key, or _MISSING when absent."""
        if fetch is None:
            return _MISSING
        try:
            return fetch(target, key)
        except (LookupError, AttributeError, TypeError):
            return _MISSING

    def _emit(
        self,
        operation: ProxyOperationType,
        path: tuple[str, ...],
        value: Any,
        wrapped: bool = False,
        allowed: bool = True,
        **metadata: Any,
    ) -> None:
        """Send an event to the callback, if one is configured."""
        if self.event_callback is None:
            return

        event = ProxyEvent(
            event_id=uuid4(),
            proxy_id=self.proxy_id,
            operation=operation,
            path=list(path),
            key=path[-1] if path else "",
            value_type=type(value).__name__ if value is not None else None,
            wrapped=wrapped,
            allowed=allowed,
            metadata=metadata,
        )
        self.event_callback(event)
