"""
Forecasting: Model Implementations

The seven models compared on the wine sales series:
1. Mean (historic average)
2. Naive (last value)
3. Drift (random walk with drift)
4. ETS (automatic exponential smoothing)
5. ARIMA (automatic seasonal ARIMA)
6. VAR (vector autoregression; AR(p) when only the target is available)
7. NNETAR (neural network autoregression)

Every model exposes fit(y) / predict(horizon) / predict_interval(horizon, level)
on plain numpy arrays so the backtesting loop can treat them alike.
"""

import logging
import warnings
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import numpy as np
from sklearn.neural_network import MLPRegressor
from statsforecast.models import (AutoARIMA, AutoETS, HistoricAverage, Naive,
                                  RandomWalkWithDrift)
from statsmodels.tsa.api import VAR
from statsmodels.tsa.ar_model import AutoReg, ar_select_order
from statsmodels.tsa.seasonal import STL

logger = logging.getLogger(__name__)


class ForecastModel(ABC):
    """Base class for forecasting models"""

    name = "base"

    def __init__(self, season_length: int = 12):
        self.season_length = season_length
        self.train_data: Optional[np.ndarray] = None

    @abstractmethod
    def fit(self, y: np.ndarray, **kwargs) -> "ForecastModel":
        """Fit model to training data"""

    @abstractmethod
    def predict(self, horizon: int) -> np.ndarray:
        """Generate point forecast for given horizon"""

    def predict_interval(self, horizon: int, level: int = 95) -> Tuple[np.ndarray, np.ndarray]:
        """Prediction interval bounds; NaN when the model has none"""
        self._check_fitted()
        return np.full(horizon, np.nan), np.full(horizon, np.nan)

    def get_name(self) -> str:
        return self.name

    def _check_fitted(self) -> None:
        if self.train_data is None:
            raise RuntimeError(f"{self.get_name()} must be fitted before prediction. Call fit() first.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(season_length={self.season_length}, fitted={self.train_data is not None})"


class StatsForecastModel(ForecastModel):
    """Wraps a single statsforecast model object"""

    @abstractmethod
    def _build(self):
        """Return an unfitted statsforecast model"""

    def fit(self, y: np.ndarray, **kwargs) -> "StatsForecastModel":
        self.train_data = np.asarray(y, dtype=float).copy()
        self.model = self._build()
        self.model.fit(y=self.train_data)
        logger.debug(f"{self.get_name()} fitted on {len(self.train_data)} observations")
        return self

    def predict(self, horizon: int) -> np.ndarray:
        self._check_fitted()
        return np.asarray(self.model.predict(h=horizon)["mean"], dtype=float)

    def predict_interval(self, horizon: int, level: int = 95) -> Tuple[np.ndarray, np.ndarray]:
        self._check_fitted()
        res = self.model.predict(h=horizon, level=[level])
        return (
            np.asarray(res[f"lo-{level}"], dtype=float),
            np.asarray(res[f"hi-{level}"], dtype=float),
        )


class MeanModel(StatsForecastModel):
    """Forecast = mean of the training data"""

    name = "mean"

    def _build(self):
        return HistoricAverage()


class NaiveModel(StatsForecastModel):
    """Forecast = last observed value"""

    name = "naive"

    def _build(self):
        return Naive()


class DriftModel(StatsForecastModel):
    """Last value plus the average historical change per period"""

    name = "drift"

    def _build(self):
        return RandomWalkWithDrift()


class ETSModel(StatsForecastModel):
    """Automatic error/trend/season exponential smoothing"""

    name = "ets"

    def _build(self):
        return AutoETS(season_length=self.season_length)


class ARIMAModel(StatsForecastModel):
    """Automatic (seasonal) ARIMA"""

    name = "arima"

    def _build(self):
        return AutoARIMA(season_length=self.season_length)


class VARModel(ForecastModel):
    """
    Vector autoregression on the target plus companion series.

    Lag order is chosen by AIC up to maxlags. With no companions, a VAR(p)
    in one variable is an AR(p), fitted with AutoReg and ar_select_order.
    """

    name = "var"

    def __init__(self, season_length: int = 12, maxlags: Optional[int] = None):
        super().__init__(season_length=season_length)
        self.maxlags = maxlags
        self.results = None
        self.kind: Optional[str] = None
        self._endog: Optional[np.ndarray] = None

    def _lag_limit(self, n_obs: int, n_vars: int) -> int:
        requested = self.maxlags or self.season_length
        return max(1, min(requested, n_obs // (n_vars + 1) - 1))

    def fit(self, y: np.ndarray, companions: Optional[np.ndarray] = None, **kwargs) -> "VARModel":
        y = np.asarray(y, dtype=float)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")

            if companions is not None and np.size(companions) > 0:
                companions = np.asarray(companions, dtype=float).reshape(len(y), -1)
                endog = np.column_stack([y, companions])
                results = VAR(endog).fit(maxlags=self._lag_limit(len(y), endog.shape[1]), ic="aic")
                if results.k_ar == 0:
                    results = VAR(endog).fit(1)
                self.kind = "var"
                self._endog = endog
                logger.debug(f"VAR({results.k_ar}) fitted on {endog.shape[1]} series")
            else:
                selection = ar_select_order(y, maxlag=self._lag_limit(len(y), 1), ic="aic", trend="c")
                lags = selection.ar_lags or [1]
                results = AutoReg(y, lags=lags, trend="c").fit()
                self.kind = "ar"
                self._endog = y
                logger.debug(f"AR lags {list(lags)} fitted (single series)")

        self.results = results
        self.train_data = y.copy()
        return self

    def predict(self, horizon: int) -> np.ndarray:
        self._check_fitted()

        if self.kind == "var":
            k_ar = self.results.k_ar
            forecast = self.results.forecast(self._endog[-k_ar:], steps=horizon)
            return np.asarray(forecast[:, 0], dtype=float)

        n = len(self._endog)
        return np.asarray(self.results.predict(start=n, end=n + horizon - 1), dtype=float)

    def predict_interval(self, horizon: int, level: int = 95) -> Tuple[np.ndarray, np.ndarray]:
        self._check_fitted()
        alpha = 1 - level / 100

        if self.kind == "var":
            k_ar = self.results.k_ar
            _, lower, upper = self.results.forecast_interval(
                self._endog[-k_ar:], steps=horizon, alpha=alpha
            )
            return np.asarray(lower[:, 0], dtype=float), np.asarray(upper[:, 0], dtype=float)

        n = len(self._endog)
        conf_int = np.asarray(
            self.results.get_prediction(start=n, end=n + horizon - 1).conf_int(alpha=alpha)
        )
        return conf_int[:, 0].astype(float), conf_int[:, 1].astype(float)


class NNETARModel(ForecastModel):
    """
    Neural network autoregression, NNAR(p, P, k).

    Inputs are lags 1..p plus seasonal lags m..mP of the standardized
    series; one hidden layer of k logistic units; the forecast is the
    average of `repeats` networks and is produced recursively. Intervals
    come from simulated sample paths with bootstrapped residuals.
    """

    name = "nnetar"

    def __init__(
        self,
        season_length: int = 12,
        p: Optional[int] = None,
        P: int = 1,
        size: Optional[int] = None,
        repeats: int = 20,
        npaths: int = 100,
        max_iter: int = 500,
        random_state: int = 42,
    ):
        super().__init__(season_length=season_length)
        self.p = p
        self.P = P
        self.size = size
        self.repeats = repeats
        self.npaths = npaths
        self.max_iter = max_iter
        self.random_state = random_state

        self.lags_: List[int] = []
        self.networks_: List[MLPRegressor] = []
        self.residuals_: Optional[np.ndarray] = None
        self._mu = 0.0
        self._sd = 1.0

    def _select_p(self, y: np.ndarray) -> int:
        """AIC-optimal AR order of the seasonally adjusted series"""
        m = self.season_length
        adjusted = y
        if m > 1 and len(y) >= 2 * m:
            adjusted = y - STL(y, period=m, robust=True).fit().seasonal

        maxlag = max(1, min(len(y) // 2 - 1, 10))
        selection = ar_select_order(adjusted, maxlag=maxlag, ic="aic", trend="c")
        return max(selection.ar_lags) if selection.ar_lags else 1

    def _design(self, z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Lagged inputs (one row per target) for a 1-D scaled series"""
        max_lag = max(self.lags_)
        X = np.column_stack([z[max_lag - lag:len(z) - lag] for lag in self.lags_])
        return X, z[max_lag:]

    def _ensemble(self, X: np.ndarray) -> np.ndarray:
        return np.mean([net.predict(X) for net in self.networks_], axis=0)

    def fit(self, y: np.ndarray, **kwargs) -> "NNETARModel":
        y = np.asarray(y, dtype=float)
        m = self.season_length

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")

            p = self.p if self.p is not None else self._select_p(y)
            P = self.P if (m > 1 and len(y) >= 3 * m) else 0
            self.lags_ = sorted(set(range(1, p + 1)) | {m * i for i in range(1, P + 1)})
            k = self.size if self.size is not None else max(1, (p + P + 1) // 2)

            if len(y) <= max(self.lags_) + 1:
                raise ValueError(
                    f"Series too short for NNAR lags {self.lags_}: {len(y)} observations"
                )

            self._mu = float(np.mean(y))
            self._sd = float(np.std(y)) or 1.0
            z = (y - self._mu) / self._sd
            X, target = self._design(z)

            self.networks_ = []
            for i in range(self.repeats):
                net = MLPRegressor(
                    hidden_layer_sizes=(k,),
                    activation="logistic",
                    solver="lbfgs",
                    max_iter=self.max_iter,
                    random_state=self.random_state + i,
                )
                net.fit(X, target)
                self.networks_.append(net)

        self.residuals_ = target - self._ensemble(X)
        self.train_data = y.copy()
        self.order_ = (p, P, k)

        logger.debug(f"NNAR({p},{P},{k})[{m}] fitted: {self.repeats} networks")
        return self

    def _roll(self, state: np.ndarray, horizon: int, noise: Optional[np.ndarray] = None) -> np.ndarray:
        """Recursive forecast for every row of state (paths x history)"""
        out = np.empty((state.shape[0], horizon))
        for step in range(horizon):
            X = np.column_stack([state[:, -lag] for lag in self.lags_])
            pred = self._ensemble(X)
            if noise is not None:
                pred = pred + noise[:, step]
            out[:, step] = pred
            state = np.column_stack([state, pred])
        return out

    def predict(self, horizon: int) -> np.ndarray:
        self._check_fitted()
        z = (self.train_data - self._mu) / self._sd
        return self._roll(z[np.newaxis, :], horizon)[0] * self._sd + self._mu

    def predict_interval(self, horizon: int, level: int = 95) -> Tuple[np.ndarray, np.ndarray]:
        self._check_fitted()
        rng = np.random.default_rng(self.random_state)
        z = (self.train_data - self._mu) / self._sd

        state = np.tile(z, (self.npaths, 1))
        noise = rng.choice(self.residuals_, size=(self.npaths, horizon), replace=True)
        paths = self._roll(state, horizon, noise) * self._sd + self._mu

        tail = (100 - level) / 2
        return (
            np.percentile(paths, tail, axis=0),
            np.percentile(paths, 100 - tail, axis=0),
        )


class ModelFactory:
    """Factory for creating model instances"""

    _models: Dict[str, type] = {
        "mean": MeanModel,
        "naive": NaiveModel,
        "drift": DriftModel,
        "ets": ETSModel,
        "arima": ARIMAModel,
        "var": VARModel,
        "nnetar": NNETARModel,
    }

    @classmethod
    def create(cls, model_name: str, **kwargs) -> ForecastModel:
        """Create model by name"""
        if model_name not in cls._models:
            raise ValueError(f"Unknown model: {model_name}. Available: {cls.list_models()}")

        return cls._models[model_name](**kwargs)

    @classmethod
    def list_models(cls) -> List[str]:
        """List available models"""
        return list(cls._models.keys())
