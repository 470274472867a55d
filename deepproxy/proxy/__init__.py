"""
Deep Proxy

Lazily wraps every object reachable from a root so that reads, writes
and deletions anywhere in the graph can be observed and mediated.
"""

from deepproxy.proxy.deep_proxy import DeepProxy, ProxyPair, create_proxy
from deepproxy.proxy.models import (
    ProxyEvent,
    ProxyHandler,
    ProxyOperationType,
    ProxyOptions,
)
from deepproxy.proxy.wrappers import (
    BaseProxy,
    CallableProxy,
    MappingProxy,
    ObjectProxy,
    SequenceProxy,
    unwrap,
)

__all__ = [
    "DeepProxy",
    "ProxyPair",
    "create_proxy",
    "ProxyEvent",
    "ProxyHandler",
    "ProxyOperationType",
    "ProxyOptions",
    "BaseProxy",
    "CallableProxy",
    "MappingProxy",
    "ObjectProxy",
    "SequenceProxy",
    "unwrap",
]
