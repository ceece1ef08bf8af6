"""Session configuration.

Settings can be given explicitly or read from ``SYNAPSIS_*`` environment
variables via :meth:`SessionConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


@dataclass
class SessionConfig:
    """Configuration for a chat session."""

    # Channel topics are "<topic_prefix><session_id>"
    topic_prefix: str = "session:"

    # Drop reasoning events before ingestion when False
    show_reasoning: bool = True

    log_level: str = "WARNING"

    def topic(self, session_id: str) -> str:
        """Channel topic for a session."""
        return f"{self.topic_prefix}{session_id}"

    @classmethod
    def from_env(cls) -> SessionConfig:
        """Build a config from SYNAPSIS_* environment variables.

        Raises:
            ValueError: If SYNAPSIS_SHOW_REASONING is not a boolean flag
        """
        defaults = cls()
        return cls(
            topic_prefix=os.getenv("SYNAPSIS_TOPIC_PREFIX", defaults.topic_prefix),
            show_reasoning=_env_flag("SYNAPSIS_SHOW_REASONING", defaults.show_reasoning),
            log_level=os.getenv("SYNAPSIS_LOG_LEVEL", defaults.log_level).upper(),
        )
