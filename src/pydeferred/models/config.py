"""
Runtime configuration for the continuation scheduler.

Design Pattern: Strategy Pattern
RejectionPolicy selects what happens to an unhandled rejection without
changing the scheduler or the tracker code.

Configuration comes from code (named presets, explicit construction) or
from the environment:

    PYDEFER_UNHANDLED_REJECTIONS=warn|ignore|strict
    PYDEFER_DRAIN_LIMIT=<positive int>
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, cast

__all__ = ["RejectionPolicy", "RuntimeConfig"]

ENV_REJECTIONS = "PYDEFER_UNHANDLED_REJECTIONS"
ENV_DRAIN_LIMIT = "PYDEFER_DRAIN_LIMIT"


class RejectionPolicy(Enum):
    """What the default host hook does with an unhandled rejection."""

    WARN = "warn"
    """Log the error with its traceback at ERROR level (default)."""

    IGNORE = "ignore"
    """Drop the report silently."""

    STRICT = "strict"
    """Raise UnhandledRejectionError out of the drain that found it."""

    @classmethod
    def parse(cls, raw: str) -> RejectionPolicy:
        """
        Parse a policy name, case-insensitively.

        Raises:
            ValueError: If the name is not a known policy
        """
        try:
            return cls(raw.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unknown rejection policy {raw!r} (expected one of: {choices})"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Configuration for a Scheduler and its rejection tracker.

    Examples:
        # Named preset
        config = RuntimeConfig.STRICT

        # Custom
        config = RuntimeConfig(rejection_policy=RejectionPolicy.IGNORE, drain_limit=10_000)

        # From the environment
        config = RuntimeConfig.from_env()
    """

    rejection_policy: RejectionPolicy = RejectionPolicy.WARN
    """Policy applied by the default unhandled-rejection hook."""

    drain_limit: int | None = None
    """Maximum actions run in one drain pass (None means unbounded).

    A runaway chain (a handler that keeps scheduling more work forever)
    never lets a drain pass finish. The limit turns that into a
    SchedulerError instead of a hang.
    """

    if TYPE_CHECKING:
        DEFAULT: RuntimeConfig
        STRICT: RuntimeConfig
        QUIET: RuntimeConfig
    else:
        DEFAULT = cast("RuntimeConfig", None)
        STRICT = cast("RuntimeConfig", None)
        QUIET = cast("RuntimeConfig", None)

    def __post_init__(self) -> None:
        if self.drain_limit is not None and self.drain_limit <= 0:
            raise ValueError(f"drain_limit must be positive, got {self.drain_limit}")

    @classmethod
    def from_env(cls, base: RuntimeConfig | None = None) -> RuntimeConfig:
        """
        Build a config from environment variables.

        Unset variables keep the value from base (or the defaults).

        Raises:
            ValueError: If a variable is set to an invalid value
        """
        config = base if base is not None else cls()

        raw_policy = os.getenv(ENV_REJECTIONS)
        if raw_policy:
            config = replace(config, rejection_policy=RejectionPolicy.parse(raw_policy))

        raw_limit = os.getenv(ENV_DRAIN_LIMIT)
        if raw_limit:
            try:
                limit = int(raw_limit)
            except ValueError:
                raise ValueError(
                    f"{ENV_DRAIN_LIMIT} must be an integer, got {raw_limit!r}"
                ) from None
            config = replace(config, drain_limit=limit)

        return config

    def with_policy(self, policy: RejectionPolicy) -> RuntimeConfig:
        """Return a copy with a different rejection policy."""
        return replace(self, rejection_policy=policy)


RuntimeConfig.DEFAULT = RuntimeConfig()

RuntimeConfig.STRICT = RuntimeConfig(rejection_policy=RejectionPolicy.STRICT)

RuntimeConfig.QUIET = RuntimeConfig(rejection_policy=RejectionPolicy.IGNORE)
