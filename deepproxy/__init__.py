"""
deepproxy

Deep interception of mutable object graphs: lazily created wrappers,
stable wrapper identity, path bookkeeping and handler-mediated writes.
"""

__version__ = "0.1.0"

from deepproxy.proxy import (
    DeepProxy,
    ProxyEvent,
    ProxyHandler,
    ProxyOperationType,
    ProxyOptions,
    ProxyPair,
    create_proxy,
    unwrap,
)

__all__ = [
    "__version__",
    "DeepProxy",
    "ProxyEvent",
    "ProxyHandler",
    "ProxyOperationType",
    "ProxyOptions",
    "ProxyPair",
    "create_proxy",
    "unwrap",
]
