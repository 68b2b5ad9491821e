"""Core data models for deferred execution.

Defines the state enums and runtime configuration.

Design: Dependency-Free Models
These types have no dependencies on core or executor modules to
prevent circular imports and enable clean layering.
"""

from pydeferred.models.config import RejectionPolicy, RuntimeConfig
from pydeferred.models.state import CoroutineStatus, DeferredState

__all__ = [
    "DeferredState",
    "CoroutineStatus",
    "RejectionPolicy",
    "RuntimeConfig",
]
