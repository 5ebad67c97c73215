"""
🔗 Interaction Analysis Library

Estimates effect modification and interaction between two binary exposures
from a fitted logistic, conditional logistic or Cox model: joint and
stratum-specific ratios, the multiplicative-scale ratio, and RERI, AP and SI
with MOVER confidence intervals.

Usage:
    from interaction_lib import interaction_mover
    from interaction_mover import fit_logistic, load_oc_data

    model = fit_logistic("oc ~ alc * smk", load_oc_data())
    result = interaction_mover(model, ["alc", "smk"], ci_level=0.95, em=False)
    print(result.to_dataframe())
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from config import CONFIG, TRUE_STRINGS
from logger import get_logger
from interaction_mover.estimates import estimate_measures
from interaction_mover.exceptions import InteractionError
from interaction_mover.models import FittedModel, as_fitted_model
from interaction_mover.recode import RefitFunction, handle_preventive
from interaction_mover.results import AnalysisResult, build_table
from interaction_mover.terms import resolve_terms
from interaction_mover.variance import VarianceBundle

logger = get_logger(__name__)


def _config_flag(key: str, default: bool) -> bool:
    value = CONFIG.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def _check_config() -> None:
    """Raise ValueError when the configured defaults are unusable."""
    is_valid, errors = CONFIG.validate()
    if not is_valid:
        logger.error(f"Invalid configuration: {errors}")
        raise ValueError("Invalid configuration: " + "; ".join(errors))


def check_arguments(model: Any, exposure_names: Sequence[str], ci_level: float) -> None:
    """
    Validate the inputs of an interaction analysis.

    Raises:
        TypeError: If `model` is not a FittedModel or `exposure_names` holds non-strings.
        ValueError: If there are not exactly two distinct, non-empty exposure
            names, or `ci_level` is outside (0, 1).
    """
    if not isinstance(model, FittedModel):
        raise TypeError(f"Expected a FittedModel, got {type(model).__name__}")

    if isinstance(exposure_names, str) or len(exposure_names) != 2:
        raise ValueError("exposure_names must hold exactly two exposure names")
    if not all(isinstance(name, str) for name in exposure_names):
        raise TypeError("exposure_names must be strings")
    if not all(name.strip() for name in exposure_names):
        raise ValueError("exposure_names must not be empty")
    if exposure_names[0].casefold() == exposure_names[1].casefold():
        raise ValueError("exposure_names must name two different exposures")

    if not 0 < ci_level < 1:
        raise ValueError(f"ci_level must be between 0 and 1, got {ci_level}")


def interaction_mover(
    model: Any,
    exposure_names: Sequence[str],
    ci_level: Optional[float] = None,
    em: Optional[bool] = None,
    recode: Optional[bool] = None,
    refit: Optional[RefitFunction] = None,
) -> AnalysisResult:
    """
    Estimate interaction measures with MOVER confidence intervals.

    Args:
        model: A FittedModel, or statsmodels results / a fitted CoxPHFitter
            that `as_fitted_model` can wrap. Both exposures and their product
            term must be in the model.
        exposure_names: Two binary exposures. For effect modification put the
            main exposure first and the putative modifier second.
        ci_level: Two-sided confidence level (default CONFIG 'interaction.ci_level').
        em: True for the effect-modification table (8 rows), False for the
            interaction table (12 rows) (default CONFIG 'interaction.em').
        recode: Recode preventive exposures so the lowest-risk joint stratum
            becomes the reference, refitting the model (default CONFIG 'interaction.recode').
        refit: Fitting callback ``refit(specification, data)`` used after
            recoding; defaults to the model's own `refit`.

    Returns:
        AnalysisResult: The ordered table plus the context needed to report it.

    Raises:
        AmbiguousInteractionTerm: If the interaction coefficient is not unique.
        UnsupportedRecode: If recoding is needed for a Cox or conditional logistic model.
        InvalidVariance: If a variance is not positive.
        ValueError: If a default taken from CONFIG is invalid.
    """
    if ci_level is None or em is None or recode is None:
        _check_config()
    if ci_level is None:
        ci_level = float(CONFIG.get('interaction.ci_level', 0.95))
    if em is None:
        em = _config_flag('interaction.em', True)
    if recode is None:
        recode = _config_flag('interaction.recode', False)

    fitted = as_fitted_model(model)
    if _config_flag('validation.validate_inputs', True):
        check_arguments(fitted, exposure_names, ci_level)

    logger.log_operation(
        "interaction_mover", "started",
        kind=fitted.kind, exposures=",".join(exposure_names),
        ci_level=ci_level, em=em, recode=recode,
    )

    try:
        with logger.track_time("interaction_mover"):
            terms = resolve_terms(fitted.coefficient_names, exposure_names)
            outcome = handle_preventive(fitted, terms, recode=recode, refit=refit)
            analysed = outcome.model

            bundle = VarianceBundle.from_model(analysed, terms)
            estimates = estimate_measures(analysed, terms, bundle, ci_level)
            table = build_table(estimates, terms, em=em, ratio_name=analysed.ratio_name)
    except InteractionError as e:
        logger.log_operation("interaction_mover", "failed", error=type(e).__name__)
        raise

    logger.log_analysis(
        "MOVER interaction",
        outcome=analysed.specification.formula,
        n_vars=len(analysed.coefficient_names),
        n_samples=analysed.nobs,
    )
    logger.log_operation(
        "interaction_mover", "completed", rows=len(table), recoded=outcome.recoded
    )

    dataset = outcome.recoded_dataset if outcome.recoded else fitted.data
    return AnalysisResult(
        table=table,
        exposure_coefficient_names=(terms.beta1, terms.beta2),
        em=em,
        ci_level=ci_level,
        specification=analysed.specification,
        dataset=dataset,
        recoded_dataset=outcome.recoded_dataset,
        reference_levels=outcome.reference_levels,
        model=analysed,
    )
