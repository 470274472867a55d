"""
Deep Proxy Models

Pydantic models for proxy options and intercepted operation events,
plus the handler record callers use to mediate reads, writes and deletes.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable
from uuid import UUID

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from deepproxy.config import Settings


class ProxyOperationType(str, Enum):
    """Operations intercepted by a wrapper."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class ProxyOptions(BaseModel):
    """
    Policy configuration for a deep proxy.

    Example YAML:
    ```yaml
    name: player_state
    max_depth: 4
    proxy_arrays: true
    exclude_paths:
      - "cache.*"
      - "*.internal"
    ```
    """

    name: str = Field(
        default="default",
        description="Name of this policy"
    )

    description: str = Field(
        default="",
        description="Human-readable description"
    )

    proxy_arrays: bool = Field(
        default=False,
        description="Whether lists and tuples are wrapped"
    )

    proxy_functions: bool = Field(
        default=False,
        description="Whether callables are wrapped"
    )

    max_depth: int = Field(
        default=10,
        ge=0,
        description="Objects at or beyond this path length are returned unwrapped"
    )

    exclude_paths: list[str] = Field(
        default_factory=list,
        description="Glob patterns over dotted paths that are never wrapped"
    )

    filter: Callable[[Any, list[str]], bool] | None = Field(
        default=None,
        exclude=True,
        description="Custom predicate; values it rejects are not wrapped"
    )

    @classmethod
    def from_settings(cls, settings: "Settings", **overrides: Any) -> "ProxyOptions":
        """Build options from the environment-driven settings."""
        data: dict[str, Any] = {
            "max_depth": settings.max_depth,
            "proxy_arrays": settings.proxy_arrays,
            "proxy_functions": settings.proxy_functions,
        }
        data.update(overrides)
        return cls(**data)


@dataclass
class ProxyHandler:
    """
    Caller-supplied callbacks mediating wrapper operations.

    - on_read(target, key) -> value: called for reads that are not wrapped.
    - on_write(target, key, value) -> bool: truthy applies the write.
    - on_delete(target, key) -> bool: truthy applies the delete.
    """

    on_read: Callable[[Any, Any], Any] | None = None
    on_write: Callable[[Any, Any, Any], bool] | None = None
    on_delete: Callable[[Any, Any], bool] | None = None


class ProxyEvent(BaseModel):
    """
    Event representing one intercepted operation.

    Emitted to the engine's event callback when one is configured.
    """

    event_id: UUID = Field(
        description="Unique identifier for this event"
    )

    proxy_id: UUID = Field(
        description="Engine that intercepted the operation"
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the operation occurred"
    )

    operation: ProxyOperationType = Field(
        description="Type of intercepted operation"
    )

    path: list[str] = Field(
        description="Path from the root to the touched key"
    )

    key: str = Field(
        description="Key that was read, written or deleted"
    )

    value_type: str | None = Field(
        default=None,
        description="Type name of the value involved"
    )

    wrapped: bool = Field(
        default=False,
        description="Whether the value was handed out or attached as a wrapper"
    )

    allowed: bool = Field(
        default=True,
        description="False when a handler vetoed the operation"
    )

    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional operation-specific metadata"
    )
