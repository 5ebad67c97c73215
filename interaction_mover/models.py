"""
🧮 Fitted-model capability interface

Wraps regression results from statsmodels (logistic, conditional logistic)
and lifelines (Cox proportional hazards) behind one read-only interface so the
interaction analysis never branches on the fitting library.

Functions:
    - fit_model: Fit a ModelSpecification against a dataset
    - fit_logistic / fit_conditional_logistic / fit_cox: Convenience fitters
    - as_fitted_model: Wrap raw statsmodels results or a fitted CoxPHFitter
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from lifelines import CoxPHFitter
from scipy import stats
from statsmodels.discrete.conditional_models import ConditionalLogit
from statsmodels.discrete.discrete_model import Logit
from statsmodels.genmod import families
from statsmodels.genmod.families import links
from statsmodels.genmod.generalized_linear_model import GLM

from logger import get_logger

from .exceptions import ModelFitError

logger = get_logger(__name__)

ModelKind = Literal["logistic", "conditional_logistic", "cox"]

MODEL_KINDS = ("logistic", "conditional_logistic", "cox")

# Effect measure reported for each model kind
RATIO_NAMES = {
    "logistic": "OR",
    "conditional_logistic": "OR",
    "cox": "HR",
}


@dataclass(frozen=True)
class ModelSpecification:
    """
    How a model was fitted: formula plus model kind and kind-specific columns.

    `groups` names the matched-set column of a conditional logistic model;
    `duration_col`/`event_col` name the follow-up time and event indicator of
    a Cox model (whose formula holds the right-hand side only).
    """

    formula: str
    kind: ModelKind = "logistic"
    groups: Optional[str] = None
    duration_col: Optional[str] = None
    event_col: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in MODEL_KINDS:
            raise ValueError(f"Unknown model kind: {self.kind!r}. Expected one of {MODEL_KINDS}")


class FittedModel(abc.ABC):
    """
    Read-only view of a fitted regression model.

    Coefficient lookups raise KeyError naming the missing coefficient.
    """

    def __init__(self, specification: ModelSpecification, data: Optional[pd.DataFrame] = None):
        self.specification = specification
        self.data = data

    @property
    def kind(self) -> ModelKind:
        return self.specification.kind

    @property
    def ratio_name(self) -> str:
        return RATIO_NAMES[self.kind]

    @property
    def nobs(self) -> int:
        return 0 if self.data is None else int(len(self.data))

    @property
    @abc.abstractmethod
    def coefficient_names(self) -> list[str]:
        """Coefficient names in model order."""

    @abc.abstractmethod
    def coefficient(self, name: str) -> float:
        ...

    @abc.abstractmethod
    def standard_error(self, name: str) -> float:
        ...

    @abc.abstractmethod
    def p_value(self, name: str) -> float:
        ...

    @abc.abstractmethod
    def covariance(self, name_a: str, name_b: str) -> float:
        ...

    def conf_int(self, name: str, ci_level: float = 0.95) -> tuple[float, float]:
        """Wald interval for one coefficient on the coefficient (log) scale."""
        z = stats.norm.ppf(1 - (1 - ci_level) / 2)
        coef = self.coefficient(name)
        se = self.standard_error(name)
        return coef - z * se, coef + z * se

    def refit(self, specification: ModelSpecification, data: pd.DataFrame) -> "FittedModel":
        """Fit `specification` again on `data`, returning a new model."""
        return fit_model(specification, data)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind!r}, "
            f"formula={self.specification.formula!r}, n={self.nobs})"
        )


def _lookup(values: pd.Series, name: str) -> float:
    if name not in values.index:
        raise KeyError(f"Coefficient '{name}' not found in model")
    return float(values.loc[name])


class StatsmodelsFittedModel(FittedModel):
    """Adapter for statsmodels Logit, binomial GLM and ConditionalLogit results."""

    def __init__(self, results: Any, specification: ModelSpecification,
                 data: Optional[pd.DataFrame] = None):
        super().__init__(specification, data)
        self.results = results
        names = list(results.model.exog_names)
        self._names = names
        self._params = pd.Series(np.asarray(results.params, dtype=float), index=names)
        self._bse = pd.Series(np.asarray(results.bse, dtype=float), index=names)
        self._pvalues = pd.Series(np.asarray(results.pvalues, dtype=float), index=names)
        self._cov = pd.DataFrame(
            np.asarray(results.cov_params(), dtype=float), index=names, columns=names
        )

    @property
    def coefficient_names(self) -> list[str]:
        return list(self._names)

    def coefficient(self, name: str) -> float:
        return _lookup(self._params, name)

    def standard_error(self, name: str) -> float:
        return _lookup(self._bse, name)

    def p_value(self, name: str) -> float:
        return _lookup(self._pvalues, name)

    def covariance(self, name_a: str, name_b: str) -> float:
        for name in (name_a, name_b):
            if name not in self._cov.index:
                raise KeyError(f"Coefficient '{name}' not found in model")
        return float(self._cov.loc[name_a, name_b])

    def conf_int(self, name: str, ci_level: float = 0.95) -> tuple[float, float]:
        if name not in self._params.index:
            raise KeyError(f"Coefficient '{name}' not found in model")
        bounds = np.asarray(self.results.conf_int(alpha=1 - ci_level), dtype=float)
        lower, upper = bounds[self._names.index(name)]
        return float(lower), float(upper)

    def refit(self, specification: ModelSpecification, data: pd.DataFrame) -> FittedModel:
        """
        Fit the same statsmodels model class on `data`.

        A GLM keeps its family, and its weights, offset and exposure are
        carried over row by row through the frame index, so `data` must keep
        the rows of the original analysis data.
        """
        sm_model = self.results.model
        if specification.kind != "logistic" or not isinstance(sm_model, (Logit, GLM)):
            return super().refit(specification, data)

        kwargs = _row_arrays(sm_model, data)
        if isinstance(sm_model, GLM):
            kwargs["family"] = sm_model.family
        fit_kwargs = {"disp": 0} if isinstance(sm_model, Logit) else {}

        try:
            model = type(sm_model).from_formula(specification.formula, data=data, **kwargs)
            results = model.fit(**fit_kwargs)
        except Exception as e:
            logger.error(f"Refitting {type(sm_model).__name__} failed: {e}")
            raise ModelFitError(_friendly_fit_message("logistic", e)) from e
        return StatsmodelsFittedModel(results, specification, data)


# Per-row model inputs that are not part of the formula
_ROW_ARRAYS = ("freq_weights", "var_weights", "offset", "exposure")


def _row_arrays(sm_model: Any, data: pd.DataFrame) -> dict[str, np.ndarray]:
    """
    Weights, offset and exposure of a fitted model, aligned to `data` by index.

    Unit weights and absent arrays are left out. GLM stores the exposure on
    the log scale, so it is exponentiated back.
    """
    row_labels = getattr(sm_model.data, "row_labels", None)
    arrays = {}
    for name in _ROW_ARRAYS:
        values = getattr(sm_model, name, None)
        if values is None:
            continue
        values = np.asarray(values, dtype=float)
        if name.endswith("weights") and np.all(values == 1):
            continue
        if name == "exposure":
            values = np.exp(values)
        index = row_labels if row_labels is not None else pd.RangeIndex(len(values))
        arrays[name] = pd.Series(values, index=index).reindex(data.index).to_numpy()
    return arrays


class CoxFittedModel(FittedModel):
    """Adapter for a fitted lifelines CoxPHFitter."""

    def __init__(self, fitter: CoxPHFitter, specification: ModelSpecification,
                 data: Optional[pd.DataFrame] = None):
        super().__init__(specification, data)
        self.fitter = fitter
        self._params = fitter.params_.astype(float)
        self._bse = fitter.standard_errors_.astype(float)
        self._pvalues = fitter.summary["p"].astype(float)
        self._cov = fitter.variance_matrix_.astype(float)

    @property
    def coefficient_names(self) -> list[str]:
        return [str(name) for name in self._params.index]

    def coefficient(self, name: str) -> float:
        return _lookup(self._params, name)

    def standard_error(self, name: str) -> float:
        return _lookup(self._bse, name)

    def p_value(self, name: str) -> float:
        return _lookup(self._pvalues, name)

    def covariance(self, name_a: str, name_b: str) -> float:
        for name in (name_a, name_b):
            if name not in self._cov.index:
                raise KeyError(f"Coefficient '{name}' not found in model")
        return float(self._cov.loc[name_a, name_b])


# =============================================================================
# FITTING
# =============================================================================


def _friendly_fit_message(kind: str, error: Exception) -> str:
    err_msg = str(error)
    if "Singular matrix" in err_msg or isinstance(error, np.linalg.LinAlgError):
        return (
            f"{kind} model fitting failed: data may have perfect separation "
            "or too much collinearity."
        )
    return f"{kind} model fitting failed: {err_msg}"


def _without_intercept(formula: str) -> str:
    compact = formula.replace(" ", "")
    if "0+" in compact or "-1" in compact:
        return formula
    lhs, rhs = formula.split("~", 1)
    return f"{lhs.strip()} ~ 0 + {rhs.strip()}"


def _fit_logistic(specification: ModelSpecification, data: pd.DataFrame) -> FittedModel:
    try:
        results = smf.logit(specification.formula, data=data).fit(disp=0)
    except Exception as e:
        logger.error(f"Logistic regression failed: {e}")
        raise ModelFitError(_friendly_fit_message("logistic", e)) from e
    return StatsmodelsFittedModel(results, specification, data)


def _fit_conditional_logistic(specification: ModelSpecification, data: pd.DataFrame) -> FittedModel:
    if not specification.groups:
        raise ValueError("Conditional logistic models need the matched-set column in 'groups'")
    if specification.groups not in data.columns:
        raise ValueError(f"Missing groups column: {specification.groups}")

    formula = _without_intercept(specification.formula)
    try:
        model = ConditionalLogit.from_formula(formula, data=data, groups=specification.groups)
        results = model.fit(disp=False)
    except Exception as e:
        logger.error(f"Conditional logistic regression failed: {e}")
        raise ModelFitError(_friendly_fit_message("conditional_logistic", e)) from e
    return StatsmodelsFittedModel(results, specification, data)


def _fit_cox(specification: ModelSpecification, data: pd.DataFrame) -> FittedModel:
    for role in ("duration_col", "event_col"):
        column = getattr(specification, role)
        if not column:
            raise ValueError(f"Cox models need '{role}' in the specification")
        if column not in data.columns:
            raise ValueError(f"Missing {role.replace('_col', '')} column: {column}")

    fitter = CoxPHFitter()
    try:
        fitter.fit(
            data,
            duration_col=specification.duration_col,
            event_col=specification.event_col,
            formula=specification.formula,
        )
    except Exception as e:
        logger.error(f"Cox regression failed: {e}")
        raise ModelFitError(_friendly_fit_message("cox", e)) from e
    return CoxFittedModel(fitter, specification, data)


_FITTERS: dict[str, Callable[[ModelSpecification, pd.DataFrame], FittedModel]] = {
    "logistic": _fit_logistic,
    "conditional_logistic": _fit_conditional_logistic,
    "cox": _fit_cox,
}


def fit_model(specification: ModelSpecification, data: pd.DataFrame) -> FittedModel:
    """
    Fit a model described by `specification` on `data`.

    Raises:
        ModelFitError: If the underlying library fails to fit the model.
    """
    if data is None or data.empty:
        raise ValueError("Input data is empty.")

    logger.debug(f"Fitting {specification.kind} model: {specification.formula}")
    return _FITTERS[specification.kind](specification, data)


def fit_logistic(formula: str, data: pd.DataFrame) -> FittedModel:
    """Fit a logistic regression, e.g. ``fit_logistic("oc ~ alc * smk", df)``."""
    return fit_model(ModelSpecification(formula=formula, kind="logistic"), data)


def fit_conditional_logistic(formula: str, data: pd.DataFrame, groups: str) -> FittedModel:
    """Fit a conditional logistic regression stratified on the `groups` column."""
    spec = ModelSpecification(formula=formula, kind="conditional_logistic", groups=groups)
    return fit_model(spec, data)


def fit_cox(formula: str, data: pd.DataFrame, duration_col: str, event_col: str) -> FittedModel:
    """Fit a Cox model; `formula` is the right-hand side only, e.g. ``"alc * smk"``."""
    spec = ModelSpecification(
        formula=formula, kind="cox", duration_col=duration_col, event_col=event_col
    )
    return fit_model(spec, data)


def as_fitted_model(model: Any) -> FittedModel:
    """
    Return `model` as a FittedModel.

    Accepts a FittedModel, a fitted lifelines CoxPHFitter, or statsmodels
    results of a Logit, logit-link binomial GLM or ConditionalLogit fitted
    from a formula.

    Raises:
        TypeError: For any other object, including binomial GLMs with a
            non-logit link, whose coefficients are not log odds ratios.
    """
    if isinstance(model, FittedModel):
        return model

    if isinstance(model, CoxPHFitter):
        if not hasattr(model, "params_"):
            raise TypeError("CoxPHFitter has not been fitted")
        spec = ModelSpecification(
            formula=getattr(model, "formula", None) or "",
            kind="cox",
            duration_col=getattr(model, "duration_col", None),
            event_col=getattr(model, "event_col", None),
        )
        return CoxFittedModel(model, spec)

    sm_model = getattr(model, "model", None)
    if sm_model is None or not hasattr(model, "params"):
        raise TypeError(
            f"Unsupported model object of type {type(model).__name__}; expected a "
            "FittedModel, a statsmodels results object or a fitted CoxPHFitter"
        )

    formula = getattr(sm_model, "formula", None)
    if not formula:
        raise TypeError("statsmodels models must be fitted from a formula")
    data = getattr(getattr(sm_model, "data", None), "frame", None)

    if isinstance(sm_model, ConditionalLogit):
        kind = "conditional_logistic"
    elif isinstance(sm_model, Logit):
        kind = "logistic"
    elif isinstance(sm_model, GLM) and isinstance(sm_model.family, families.Binomial):
        if not isinstance(sm_model.family.link, links.Logit):
            raise TypeError(
                f"Binomial GLM with {type(sm_model.family.link).__name__} link: logit link required"
            )
        kind = "logistic"
    else:
        raise TypeError(
            f"Unsupported statsmodels model {type(sm_model).__name__}; "
            "expected Logit, binomial GLM or ConditionalLogit"
        )

    return StatsmodelsFittedModel(model, ModelSpecification(formula=formula, kind=kind), data)
