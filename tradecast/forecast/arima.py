"""ARIMA-like forecaster.

A simplified, deterministic stand-in for ARIMA(p, d, 1):
    * d: difference until the stationarity heuristic passes (at most twice)
    * p: AR coefficients from a Yule-Walker shortcut, the lag-1
      autocorrelation decayed by powers of 0.5 for higher lags
    * MA(1): the lag-1 autocorrelation of the AR residuals, applied to the
      last residual on the first forecast step
The stationary forecast is integrated back to price space by cumulative
summation anchored at the last real price.
"""

from datetime import date

import numpy as np

from tradecast.forecast.base import BaseForecaster, Projection
from tradecast.forecast.preprocessing import inverse_difference, make_stationary

MAX_DIFFERENCES = 2
MAX_AR_ORDER = 5
AR_DECAY = 0.5
MAX_AR_MASS = 0.95  # keeps the AR polynomial stable
MAX_MA_COEFF = 0.9


def autocorrelation(series: np.ndarray, lag: int) -> float:
    """Sample autocorrelation at *lag*; 0.0 for short or constant series."""
    if lag < 1 or series.size <= lag:
        return 0.0
    centered = series - series.mean()
    denom = float(np.dot(centered, centered))
    if denom == 0:
        return 0.0
    return float(np.dot(centered[lag:], centered[:-lag]) / denom)


def ar_coefficients(series: np.ndarray, order: int) -> np.ndarray:
    rho = autocorrelation(series, 1)
    phi = np.array([rho * AR_DECAY ** k for k in range(order)])
    mass = float(np.abs(phi).sum())
    if mass >= MAX_AR_MASS:
        phi *= MAX_AR_MASS / mass
    return phi


def ar_residuals(series: np.ndarray, phi: np.ndarray) -> np.ndarray:
    order = phi.size
    residuals = [
        series[t] - float(np.dot(phi, series[t - order : t][::-1]))
        for t in range(order, series.size)
    ]
    return np.asarray(residuals, dtype=float)


class ARIMAForecaster(BaseForecaster):
    label = "ARIMA"
    min_history = 10

    def project(
        self, closes: list[float], days: list[date], targets: list[date]
    ) -> Projection:
        horizon = len(targets)
        last = closes[-1]

        stationary, differences = make_stationary(closes, MAX_DIFFERENCES)
        series = np.asarray(stationary, dtype=float)
        if series.size < 3:
            return Projection(path=[last] * horizon, trend=0.0)

        mean = float(series.mean())
        centered = series - mean
        order = max(1, min(MAX_AR_ORDER, series.size // 4))
        phi = ar_coefficients(centered, order)

        residuals = ar_residuals(centered, phi)
        theta = 0.0
        last_residual = 0.0
        if residuals.size:
            last_residual = float(residuals[-1])
            theta = float(np.clip(autocorrelation(residuals, 1), -MAX_MA_COEFF, MAX_MA_COEFF))

        history = list(centered)
        forecast: list[float] = []
        for step in range(horizon):
            lags = np.asarray(history[-order:][::-1], dtype=float)
            value = float(np.dot(phi[: lags.size], lags))
            if step == 0:
                value += theta * last_residual
            history.append(value)
            forecast.append(value + mean)

        path = inverse_difference(forecast, closes, differences)
        trend = (path[-1] - last) / horizon if horizon else 0.0
        return Projection(path=path, trend=trend)
