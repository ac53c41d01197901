"""
Negotiation configuration resolution.

WHAT: Merge settings defaults with per-session overrides into a NegotiationConfig
WHY: Externally supplied values must never make a session fail to start
HOW: Each override is coerced; unusable values fall back to defaults with a warning
"""

import math
from typing import Any, Mapping

from ..core.config import settings
from ..models.negotiation import NegotiationConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)

SCHEDULES = ("margin_percent", "fixed_markdown")


def default_config() -> NegotiationConfig:
    """Build the baseline configuration from application settings."""
    return resolve_config({
        "initial_offer": settings.INITIAL_OFFER,
        "min_price": settings.MIN_PRICE,
        "min_price_factor": settings.MIN_PRICE_FACTOR,
        "accept_margin": settings.ACCEPT_MARGIN,
        "accept_band_min": settings.ACCEPT_BAND_MIN,
        "accept_band_max": settings.ACCEPT_BAND_MAX,
        "min_rounds": settings.MIN_ROUNDS,
        "max_rounds": settings.MAX_ROUNDS,
        "think_delay_min_ms": settings.THINK_DELAY_MIN_MS,
        "think_delay_max_ms": settings.THINK_DELAY_MAX_MS,
        "concession_schedule": settings.CONCESSION_SCHEDULE,
    }, base=NegotiationConfig())


def _finite(value: Any) -> float | None:
    """Coerce to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _fallback(key: str, value: Any, default: Any) -> Any:
    logger.warning(f"Ignoring invalid config value {key}={value!r}, using {default!r}")
    return default


def _ordered(key_low: str, low: float, key_high: str, high: float) -> tuple[float, float]:
    if low > high:
        logger.warning(f"Config bounds inverted ({key_low}={low}, {key_high}={high}), swapping")
        return high, low
    return low, high


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    base: NegotiationConfig | None = None
) -> NegotiationConfig:
    """
    Resolve a session configuration.

    WHAT: Apply overrides on top of a base configuration
    WHY: Configuration errors are normalized, never raised
    HOW: Validate each known key, fix ordering of paired bounds, keep floor below ceiling

    Args:
        overrides: Raw values keyed by NegotiationConfig field name (None entries ignored)
        base: Configuration supplying defaults (settings defaults when omitted)

    Returns:
        A valid NegotiationConfig
    """
    base = base or default_config()
    values = base.model_dump()
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    for key in ("initial_offer", "min_price"):
        if key in overrides:
            number = _finite(overrides[key])
            values[key] = number if number is not None and number > 0 else _fallback(key, overrides[key], values[key])

    if "min_price_factor" in overrides:
        factor = _finite(overrides["min_price_factor"])
        values["min_price_factor"] = (
            factor if factor is not None and 0 < factor < 1
            else _fallback("min_price_factor", overrides["min_price_factor"], values["min_price_factor"])
        )

    if "accept_margin" in overrides:
        margin = _finite(overrides["accept_margin"])
        if margin is None:
            values["accept_margin"] = _fallback("accept_margin", overrides["accept_margin"], values["accept_margin"])
        else:
            values["accept_margin"] = min(max(margin, 0.0), 1.0)

    for key in ("accept_band_min", "accept_band_max"):
        if key in overrides:
            number = _finite(overrides[key])
            values[key] = number if number is not None and number >= 0 else _fallback(key, overrides[key], values[key])

    for key in ("min_rounds", "max_rounds", "think_delay_min_ms", "think_delay_max_ms"):
        if key in overrides:
            number = _finite(overrides[key])
            minimum = 1 if key.endswith("rounds") else 0
            values[key] = int(number) if number is not None and number >= minimum else _fallback(key, overrides[key], values[key])

    if "concession_schedule" in overrides:
        schedule = overrides["concession_schedule"]
        values["concession_schedule"] = schedule if schedule in SCHEDULES else _fallback(
            "concession_schedule", schedule, values["concession_schedule"]
        )

    values["accept_band_min"], values["accept_band_max"] = _ordered(
        "accept_band_min", values["accept_band_min"], "accept_band_max", values["accept_band_max"]
    )
    values["min_rounds"], values["max_rounds"] = _ordered(
        "min_rounds", values["min_rounds"], "max_rounds", values["max_rounds"]
    )
    values["think_delay_min_ms"], values["think_delay_max_ms"] = _ordered(
        "think_delay_min_ms", values["think_delay_min_ms"], "think_delay_max_ms", values["think_delay_max_ms"]
    )

    config = NegotiationConfig(**values)
    if config.base_floor >= config.initial_offer:
        defaults = NegotiationConfig()
        ratio = defaults.min_price / defaults.initial_offer
        logger.warning(
            f"Floor {config.base_floor} not below initial offer {config.initial_offer}, "
            f"using floor factor {ratio:.3f}"
        )
        config = config.model_copy(update={"min_price_factor": ratio})
    return config
