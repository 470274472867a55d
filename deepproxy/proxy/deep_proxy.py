"""
Deep Proxy

Public entry point: observe an object graph through lazily created
wrappers and query the bookkeeping behind them.
"""

from typing import Any, Callable, Generic, NamedTuple, TypeVar

from structlog import get_logger

from deepproxy.proxy.interceptor import InterceptionEngine
from deepproxy.proxy.models import ProxyEvent, ProxyHandler, ProxyOptions
from deepproxy.proxy.policy_engine import PolicyEvaluator

logger = get_logger(__name__)

T = TypeVar("T")


class DeepProxy(Generic[T]):
    """
    Recursive proxy over an object graph.

    Nested composites are wrapped on first access, each original gets a
    single wrapper, and every wrapper remembers the path it was last
    reached by.

    Usage:
        state = {"player": {"stats": {"hp": 10}}}
        proxy = DeepProxy(state, ProxyHandler(on_write=audit))
        root = proxy.create()
        stats = root["player"]["stats"]
        proxy.get_path(stats)  # ["player", "stats"]
    """

    def __init__(
        self,
        target: T,
        handler: ProxyHandler | None = None,
        options: ProxyOptions | dict[str, Any] | None = None,
        event_callback: Callable[[ProxyEvent], None] | None = None,
    ):
        """
        Initialize the deep proxy.

        Args:
            target: Root of the object graph.
            handler: Read/write/delete callbacks.
            options: Wrapping policy, as ProxyOptions or a dictionary.
            event_callback: Receives a ProxyEvent per intercepted operation.
        """
        if isinstance(options, dict):
            options = ProxyOptions(**options)

        self._target = target
        self._root: Any = None
        self.engine = InterceptionEngine(
            PolicyEvaluator(options),
            handler=handler,
            event_callback=event_callback,
        )

        logger.info(
            "deep_proxy_created",
            proxy_id=str(self.engine.proxy_id),
            target_type=type(target).__name__,
        )

    @property
    def options(self) -> ProxyOptions:
        return self.engine.evaluator.options

    def create(self) -> T:
        """
        Wrap the root object at the empty path.

        Returns:
            The root wrapper, or the target itself if it does not qualify.
        """
        if self._root is None:
            self._root = self.engine.wrap(self._target, ())
        return self._root

    def get_path(self, obj: Any) -> list[str] | None:
        """
        Path by which a wrapped object was last reached.

        Args:
            obj: A wrapper, or an original that currently has one.

        Returns:
            List of keys from the root, or None if obj is not tracked.
        """
        return self.engine.path_of(obj)

    def is_proxied(self, obj: Any) -> bool:
        """Whether obj is a wrapper or a wrapped original of this proxy."""
        return self.engine.is_tracked(obj)

    @property
    def stats(self) -> dict:
        return self.engine.stats


class ProxyPair(NamedTuple):
    """A deep proxy together with its root wrapper."""

    proxy: DeepProxy
    proxied: Any


def create_proxy(
    target: Any,
    handler: ProxyHandler | None = None,
    options: ProxyOptions | dict[str, Any] | None = None,
) -> ProxyPair:
    """Build a DeepProxy over target and wrap its root in one step."""
    proxy = DeepProxy(target, handler, options)
    return ProxyPair(proxy, proxy.create())
