"""Analysis configuration dataclasses.

One struct per concern (indicators, risk, forecasting).  Bodies coming from
the dashboard are validated once here; the computation modules never
re-validate and simply tolerate out-of-range values.
"""

from dataclasses import dataclass, field


FORECAST_MODELS = ("simple", "arima", "prophet", "lstm")


@dataclass(frozen=True)
class EMAConfig:
    enabled: bool = True
    period: int = 20


@dataclass(frozen=True)
class ATRConfig:
    enabled: bool = True
    period: int = 14
    # Unused by the engine (stops read risk.atr_stop_loss_multiplier);
    # kept so saved dashboard configs still load.
    multiplier: float = 2.0


@dataclass(frozen=True)
class VolatilityBandsConfig:
    enabled: bool = True
    period: int = 20
    multiplier: float = 2.0


@dataclass(frozen=True)
class RiskConfig:
    """Account-level risk settings used for stops and position sizing."""

    account_size: float = 5000.0
    risk_percentage: float = 2.0  # percent of account risked per trade
    atr_stop_loss_multiplier: float = 2.0


@dataclass(frozen=True)
class IndicatorConfig:
    """Enabled flags, periods and multipliers for every indicator."""

    ema: EMAConfig = field(default_factory=EMAConfig)
    atr: ATRConfig = field(default_factory=ATRConfig)
    volatility_bands: VolatilityBandsConfig = field(default_factory=VolatilityBandsConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)


@dataclass(frozen=True)
class ForecastConfig:
    enabled: bool = False
    model: str = "simple"  # one of FORECAST_MODELS
    forecast_period: int = 7  # days
    confidence_level: float = 0.95


# ── Validation ───────────────────────────────────────────────────────────


def _check_range(errors: list[str], name: str, value, low: float, high: float) -> None:
    if not low <= value <= high:
        errors.append(f"{name} must be {low:g}–{high:g}, got {value}")


def _check_int_range(errors: list[str], name: str, value, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"{name} must be an integer, got {value!r}")
        return
    _check_range(errors, name, value, low, high)


def validate_indicator_config(config: IndicatorConfig) -> list[str]:
    """Return every range violation in *config* (empty list when valid)."""
    errors: list[str] = []
    _check_int_range(errors, "ema.period", config.ema.period, 1, 200)
    _check_int_range(errors, "atr.period", config.atr.period, 1, 200)
    _check_range(errors, "atr.multiplier", config.atr.multiplier, 0.1, 10)
    _check_int_range(
        errors, "volatility_bands.period", config.volatility_bands.period, 1, 200
    )
    _check_range(
        errors, "volatility_bands.multiplier", config.volatility_bands.multiplier, 0.1, 10
    )
    if config.risk.account_size < 0:
        errors.append(
            f"risk.account_size must be non-negative, got {config.risk.account_size}"
        )
    _check_range(errors, "risk.risk_percentage", config.risk.risk_percentage, 0, 100)
    _check_range(
        errors,
        "risk.atr_stop_loss_multiplier",
        config.risk.atr_stop_loss_multiplier,
        0.1,
        10,
    )
    return errors


def validate_forecast_config(config: ForecastConfig) -> list[str]:
    """Return every violation in *config* (empty list when valid)."""
    errors: list[str] = []
    if config.model not in FORECAST_MODELS:
        errors.append(
            f"forecast.model must be one of {', '.join(FORECAST_MODELS)}, "
            f"got '{config.model}'"
        )
    _check_int_range(errors, "forecast.forecast_period", config.forecast_period, 1, 90)
    _check_range(errors, "forecast.confidence_level", config.confidence_level, 0.5, 0.99)
    return errors


# ── Construction from JSON bodies ────────────────────────────────────────


def indicator_config_from_dict(body: dict) -> IndicatorConfig:
    """Build an ``IndicatorConfig`` from a dashboard JSON body.

    Missing sections or keys fall back to defaults.  Raises ``ValueError``
    listing every violation when the result is out of range.
    """
    try:
        config = IndicatorConfig(
            ema=EMAConfig(**body.get("ema", {})),
            atr=ATRConfig(**body.get("atr", {})),
            volatility_bands=VolatilityBandsConfig(**body.get("volatility_bands", {})),
            risk=RiskConfig(**body.get("risk", {})),
        )
        errors = validate_indicator_config(config)
    except TypeError as exc:
        raise ValueError(f"Invalid indicator config: {exc}") from exc
    if errors:
        raise ValueError("; ".join(errors))
    return config


def forecast_config_from_dict(body: dict) -> ForecastConfig:
    """Build a ``ForecastConfig`` from a dashboard JSON body.

    Raises ``ValueError`` listing every violation.
    """
    try:
        config = ForecastConfig(**body)
        errors = validate_forecast_config(config)
    except TypeError as exc:
        raise ValueError(f"Invalid forecast config: {exc}") from exc
    if errors:
        raise ValueError("; ".join(errors))
    return config
