"""
Deep Proxy Policy Engine

Decides which values of an object graph qualify for wrapping.
Supports shape opt-outs, path exclusion patterns and a custom filter.
"""

import fnmatch
from enum import Enum
from numbers import Number
from pathlib import Path
from typing import Any, Sequence

import yaml
from structlog import get_logger

from deepproxy.proxy.models import ProxyOptions

logger = get_logger(__name__)

# Values that are never composites
PRIMITIVE_TYPES: tuple[type, ...] = (
    type(None),
    Number,
    str,
    bytes,
    bytearray,
    Enum,
)

ARRAY_TYPES: tuple[type, ...] = (list, tuple)


def is_composite(value: Any) -> bool:
    """Whether a value is a composite that can carry nested state."""
    return not isinstance(value, PRIMITIVE_TYPES)


def is_array(value: Any) -> bool:
    return isinstance(value, ARRAY_TYPES)


class PolicyEvaluator:
    """
    Evaluates graph values against proxy options.

    Rules, in order:
    - Primitives are never wrapped
    - Arrays only when proxy_arrays is enabled
    - Callables only when proxy_functions is enabled
    - Paths matching an exclude pattern are not wrapped
    - The custom filter has the last word

    Depth is not part of should_wrap; the engine checks within_depth first.

    Usage:
        evaluator = PolicyEvaluator.from_file("policies/player.yaml")
        if evaluator.within_depth(path) and evaluator.should_wrap(value, path):
            ...
    """

    def __init__(self, options: ProxyOptions | None = None):
        """
        Initialize the evaluator.

        Args:
            options: Proxy options to enforce. Defaults apply when omitted.
        """
        self.options = options or ProxyOptions()

        logger.info(
            "policy_evaluator_initialized",
            policy_name=self.options.name,
            max_depth=self.options.max_depth,
            proxy_arrays=self.options.proxy_arrays,
            proxy_functions=self.options.proxy_functions,
            exclude_pattern_count=len(self.options.exclude_paths),
        )

    @classmethod
    def from_file(cls, path: Path | str) -> "PolicyEvaluator":
        """
        Load options from a YAML file.

        Args:
            path: Path to the policy YAML file.

        Returns:
            PolicyEvaluator: Configured evaluator.

        Raises:
            FileNotFoundError: If the policy file doesn't exist.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(ProxyOptions(**data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyEvaluator":
        """Create an evaluator from a dictionary."""
        return cls(ProxyOptions(**data))

    def within_depth(self, path: Sequence[str]) -> bool:
        """Whether a value at this path may still be wrapped."""
        return len(path) < self.options.max_depth

    def should_wrap(self, value: Any, path: Sequence[str]) -> bool:
        """
        Decide whether a value qualifies for wrapping.

        Args:
            value: Candidate value.
            path: Keys leading from the root to the value.

        Returns:
            True if the value should get a wrapper.
        """
        if not is_composite(value):
            return False

        if is_array(value) and not self.options.proxy_arrays:
            return False

        if callable(value) and not self.options.proxy_functions:
            return False

        if self.options.exclude_paths and self._is_excluded(path):
            return False

        if self.options.filter is not None:
            return bool(self.options.filter(value, list(path)))

        return True

    def _is_excluded(self, path: Sequence[str]) -> bool:
        """Check the dotted path against the exclusion patterns."""
        dotted = ".".join(path)
        return any(
            fnmatch.fnmatchcase(dotted, pattern)
            for pattern in self.options.exclude_paths
        )
