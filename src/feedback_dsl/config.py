"""
Feedback DSL Configuration.

Contract constants for the template language and an environment-driven
configuration dataclass for the ambient parts of the engine (logging,
display, message template cache).
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any, FrozenSet
import os


# =============================================================================
# Language Constants
# =============================================================================

# Framework bookkeeping fields that never become variables
EXCLUDED_FIELDS: FrozenSet[str] = frozenset({
    "trial_type",
    "trial_index",
    "time_elapsed",
    "internal_node_id",
    "success",
    "timeout",
    "failed_images",
    "failed_audio",
    "failed_video",
})

# Upper bound on AND-joined sub-clauses honoured in a where: filter
MAX_FILTER_CLAUSES = 3

# Decimal places for rendered statistics
STAT_DECIMALS = 2

VALID_MODIFIERS = ("first", "last", "all")
VALID_METRICS = ("avg", "median", "sd", "count")
VALID_SCOPES = ("within", "across")

# Bare words in a where: clause that are never field references
RESERVED_WORDS: FrozenSet[str] = frozenset({"and", "or", "not", "true", "false", "null", "in"})


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_EXAMPLE_MAX_LENGTH = 50
DEFAULT_MESSAGE_CACHE_SIZE = 128
DEFAULT_MESSAGE_CACHE_TTL_SECONDS = 3600.0
DEFAULT_LOG_LEVEL = "WARNING"

ENV_PREFIX = "FEEDBACK_DSL_"


def _env(name: str) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name)


@dataclass
class EngineConfig:
    """Runtime configuration for the feedback engine.

    Values not supplied explicitly are read from ``FEEDBACK_DSL_*``
    environment variables by :meth:`from_env`.
    """
    example_max_length: int = DEFAULT_EXAMPLE_MAX_LENGTH
    message_cache_size: int = DEFAULT_MESSAGE_CACHE_SIZE
    message_cache_ttl_seconds: float = DEFAULT_MESSAGE_CACHE_TTL_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a configuration from environment variables.

        Malformed numeric values fall back to the defaults.
        """
        config = cls()

        example_len = _env("EXAMPLE_MAX_LENGTH")
        if example_len:
            try:
                config.example_max_length = max(1, int(example_len))
            except ValueError:
                pass

        cache_size = _env("MESSAGE_CACHE_SIZE")
        if cache_size:
            try:
                config.message_cache_size = max(1, int(cache_size))
            except ValueError:
                pass

        cache_ttl = _env("MESSAGE_CACHE_TTL")
        if cache_ttl:
            try:
                config.message_cache_ttl_seconds = max(0.0, float(cache_ttl))
            except ValueError:
                pass

        log_level = _env("LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        # An empty FEEDBACK_DSL_LOG_FILE disables file logging
        log_file = _env("LOG_FILE")
        config.log_file = log_file or None

        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "example_max_length": self.example_max_length,
            "message_cache_size": self.message_cache_size,
            "message_cache_ttl_seconds": self.message_cache_ttl_seconds,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }
