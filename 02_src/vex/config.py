"""Client configuration: defaults, merging and validation."""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Union

from .errors import ConfigurationError
from .models import ThresholdConfig

DEFAULT_API_URL = "https://api.tryvex.dev"
MIN_API_KEY_LENGTH = 10
CORRECTION_TIMEOUT_FACTOR = 3

API_KEY_ENV = "VEX_API_KEY"
API_URL_ENV = "VEX_API_URL"

MODES = ("sync", "async")
TRANSPARENCY_MODES = ("opaque", "transparent")

_POSITIVE_INT_FIELDS = (
    "timeout_ms",
    "flush_interval_ms",
    "flush_batch_size",
    "conversation_window_size",
    "max_buffer_size",
)

# "pass" is a keyword, so partial threshold mappings use short names
_THRESHOLD_ALIASES = {
    "pass": "pass_threshold",
    "flag": "flag_threshold",
    "block": "block_threshold",
}


@dataclass(frozen=True)
class VexConfig:
    """Resolved client configuration."""

    mode: str = "async"
    correction: str = "none"
    transparency: str = "opaque"
    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    timeout_ms: int = 10_000
    flush_interval_ms: int = 1_000
    flush_batch_size: int = 50
    conversation_window_size: int = 10
    max_buffer_size: int = 10_000
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    log_event_ids: bool = False

    @property
    def correction_enabled(self) -> bool:
        return self.correction != "none"

    @property
    def correction_timeout_ms(self) -> int:
        return self.timeout_ms * CORRECTION_TIMEOUT_FACTOR


ConfigInput = Union[VexConfig, Mapping[str, Any], None]


def merge_thresholds(
    base: ThresholdConfig, overrides: ThresholdConfig | Mapping[str, float] | None
) -> ThresholdConfig:
    """Merge a partial threshold mapping over ``base`` and validate the result."""
    if overrides is None:
        merged = base
    elif isinstance(overrides, ThresholdConfig):
        merged = overrides
    else:
        values = {}
        for key, value in overrides.items():
            name = _THRESHOLD_ALIASES.get(key, key)
            if name not in _THRESHOLD_ALIASES.values():
                raise ConfigurationError(f"Unknown threshold key: {key!r}")
            try:
                values[name] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Threshold {key!r} must be a number, got {value!r}"
                ) from e
        merged = replace(base, **values)

    merged.validate()
    return merged


def _validate(config: VexConfig) -> None:
    if config.mode not in MODES:
        raise ConfigurationError(
            f"Invalid mode {config.mode!r}: expected one of {', '.join(MODES)}"
        )
    if config.transparency not in TRANSPARENCY_MODES:
        raise ConfigurationError(
            f"Invalid transparency {config.transparency!r}: "
            f"expected one of {', '.join(TRANSPARENCY_MODES)}"
        )
    if not isinstance(config.correction, str) or not config.correction.strip():
        raise ConfigurationError("Correction mode cannot be empty")
    if not config.api_url:
        raise ConfigurationError("API URL cannot be empty")
    for name in _POSITIVE_INT_FIELDS:
        value = getattr(config, name)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")


def resolve_config(overrides: ConfigInput = None) -> VexConfig:
    """Merge ``overrides`` over the defaults and validate.

    ``api_url`` falls back to the VEX_API_URL environment variable before the
    built-in default.
    """
    if isinstance(overrides, VexConfig):
        config = overrides
    else:
        supplied = dict(overrides or {})
        known = {f.name for f in fields(VexConfig)}
        unknown = sorted(set(supplied) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        supplied["threshold"] = merge_thresholds(
            ThresholdConfig(), supplied.get("threshold")
        )
        if not supplied.get("api_url"):
            supplied["api_url"] = os.getenv(API_URL_ENV) or DEFAULT_API_URL
        config = VexConfig(**supplied)

    config.threshold.validate()
    _validate(config)
    return config


def resolve_api_key(api_key: str | None, config: VexConfig) -> str:
    """Pick the API key (argument, then config, then VEX_API_KEY) and check it."""
    key = (api_key or config.api_key or os.getenv(API_KEY_ENV) or "").strip()
    if not key:
        raise ConfigurationError("API key cannot be empty")
    if len(key) < MIN_API_KEY_LENGTH:
        raise ConfigurationError("API key appears invalid (too short)")
    return key
