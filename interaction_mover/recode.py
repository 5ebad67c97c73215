"""
Preventive-exposure detection and reference-category recoding.

An exposure is preventive when its ratio is below 1. Additive interaction
measures are only interpretable when the joint stratum with the lowest risk is
the reference, so on request both exposures are recoded around that stratum
and the model is refitted with its original specification
(Knol et al. 2011, Eur J Epidemiol 26:433-438; Mathur & VanderWeele 2018).
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from logger import get_logger

from .exceptions import PreventiveExposureWarning, RecodeAppliedWarning, UnsupportedRecode
from .models import FittedModel, ModelSpecification, as_fitted_model
from .terms import ResolvedTerms

logger = get_logger(__name__)

RefitFunction = Callable[[ModelSpecification, pd.DataFrame], FittedModel]

# Models whose data cannot be recoded and refitted automatically
NON_RECODABLE_KINDS = ("cox", "conditional_logistic")

PREVENTIVE_MESSAGE = (
    "At least one exposure is preventive. Set recode=True for the exposures to be "
    "automatically recoded. See Knol et al. (2011) European Journal of Epidemiology, "
    "26(6), 433-438"
)


@dataclass(frozen=True)
class RecodeOutcome:
    """Model to analyse after preventive-exposure handling."""

    model: FittedModel
    preventive: bool = False
    recoded_dataset: Optional[pd.DataFrame] = None
    reference_levels: Optional[tuple[int, int]] = None

    @property
    def recoded(self) -> bool:
        return self.recoded_dataset is not None


def is_preventive(or10: float, or01: float) -> bool:
    """True when either single-exposure ratio is below 1."""
    return or10 < 1 or or01 < 1


def choose_reference_levels(or10: float, or01: float, or11: float) -> tuple[int, int]:
    """
    Exposure levels of the joint stratum with the lowest ratio.

    >>> choose_reference_levels(0.4, 2.0, 0.7)
    (1, 0)
    """
    ratios = {"OR10": or10, "OR01": or01, "OR11": or11}
    stratum = min(ratios, key=ratios.get)
    return int(stratum[2]), int(stratum[3])


def exposure_column(data: pd.DataFrame, coefficient_name: str, exposure_name: str) -> str:
    """Data column holding an exposure, by coefficient name or else by exposure name."""
    if coefficient_name in data.columns:
        return coefficient_name
    for column in data.columns:
        if str(column).casefold() == exposure_name.casefold():
            return column
    raise KeyError(
        f"No column for exposure '{exposure_name}' (coefficient '{coefficient_name}') in the data"
    )


def recode_exposures(
    data: pd.DataFrame,
    columns: Sequence[str],
    reference_levels: Sequence[int],
) -> pd.DataFrame:
    """
    Return a copy of `data` with each column set to 0 at its reference level and 1 elsewhere.

    Missing values stay missing.
    """
    recoded = data.copy()
    for column, level in zip(columns, reference_levels):
        values = pd.to_numeric(recoded[column], errors="coerce")
        flipped = pd.Series(np.where(values == level, 0, 1), index=recoded.index)
        if values.isna().any():
            recoded[column] = flipped.where(values.notna())
        else:
            recoded[column] = flipped.astype(int)
    return recoded


def handle_preventive(
    model: FittedModel,
    terms: ResolvedTerms,
    recode: bool = False,
    refit: Optional[RefitFunction] = None,
) -> RecodeOutcome:
    """
    Apply the preventive-exposure policy to a fitted model.

    Without preventive exposures the model is returned unchanged. With one and
    `recode=False` a PreventiveExposureWarning is emitted. With `recode=True`
    the exposures are recoded in a copy of the analysis data, a
    RecodeAppliedWarning names the new reference levels, and the model is
    refitted through `refit` (default: `model.refit`). The caller's model and
    data are left untouched.

    Raises:
        UnsupportedRecode: If recoding is requested for a Cox or conditional logistic model.
        ValueError: If the model carries no analysis dataset to recode.
    """
    b1 = model.coefficient(terms.beta1)
    b2 = model.coefficient(terms.beta2)
    b3 = model.coefficient(terms.beta3)
    or10, or01 = math.exp(b1), math.exp(b2)

    if not is_preventive(or10, or01):
        return RecodeOutcome(model=model)

    if not recode:
        logger.warning(PREVENTIVE_MESSAGE)
        warnings.warn(PREVENTIVE_MESSAGE, PreventiveExposureWarning, stacklevel=3)
        return RecodeOutcome(model=model, preventive=True)

    if model.kind in NON_RECODABLE_KINDS:
        logger.error(f"Recoding requested for unsupported model kind '{model.kind}'")
        raise UnsupportedRecode(model.kind)

    if model.data is None:
        raise ValueError("The model carries no analysis dataset, so its exposures cannot be recoded")

    levels = choose_reference_levels(or10, or01, math.exp(b1 + b2 + b3))
    columns = (
        exposure_column(model.data, terms.beta1, terms.exposure_names[0]),
        exposure_column(model.data, terms.beta2, terms.exposure_names[1]),
    )
    recoded = recode_exposures(model.data, columns, levels)

    message = (
        f"Recoding exposures; new reference category for {terms.beta1} is {levels[0]} "
        f"and for {terms.beta2} is {levels[1]}"
    )
    logger.warning(message)
    warnings.warn(message, RecodeAppliedWarning, stacklevel=3)
    logger.log_data_summary(
        "recoded_dataset", recoded.shape, {str(c): str(t) for c, t in recoded.dtypes.items()}
    )

    refit_fn = refit or model.refit
    with logger.track_time("refit_recoded_model"):
        refitted = as_fitted_model(refit_fn(model.specification, recoded))

    return RecodeOutcome(
        model=refitted,
        preventive=True,
        recoded_dataset=recoded,
        reference_levels=levels,
    )
