"""
Provenance records attached to every analysis result.

A record keeps the resolved inputs (defaults applied) and a content digest
of the return matrix instead of a copy of the data.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple
import hashlib

import numpy as np
import pandas as pd


def digest_array(values) -> str:
    """SHA-1 digest of a numeric array's contents and shape."""
    arr = np.ascontiguousarray(np.asarray(values, dtype=float))
    h = hashlib.sha1()
    h.update(str(arr.shape).encode('utf-8'))
    h.update(arr.tobytes())
    return h.hexdigest()


@dataclass(frozen=True)
class Provenance:
    """Immutable audit record for a computed artifact."""
    operation: str
    input_digest: str
    input_shape: Tuple[int, ...]
    settings: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def build(cls, operation: str, returns, **settings: Any) -> 'Provenance':
        """
        Create a provenance record.

        Args:
            operation: Name of the pipeline stage
            returns: Input return matrix (array or DataFrame)
            **settings: Resolved configuration values

        Returns:
            Provenance instance
        """
        values = returns.values if isinstance(returns, pd.DataFrame) else np.asarray(returns)
        clean = {k: _freeze(v) for k, v in settings.items()}
        return cls(
            operation=operation,
            input_digest=digest_array(values),
            input_shape=tuple(values.shape),
            settings=MappingProxyType(clean),
        )

    def matches(self, returns) -> bool:
        """Check whether a return matrix is the one this record describes."""
        values = returns.values if isinstance(returns, pd.DataFrame) else np.asarray(returns)
        return digest_array(values) == self.input_digest


def _freeze(value: Any) -> Any:
    """Convert arrays and lists into hashable, read-only equivalents."""
    if isinstance(value, np.ndarray):
        if value.size > 64:
            return f"<array {value.shape} sha1={digest_array(value)[:12]}>"
        return tuple(value.ravel().tolist())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value
