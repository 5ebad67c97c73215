"""
Interaction measures between two binary exposures with MOVER confidence intervals.

Contains:
- models: FittedModel interface and statsmodels / lifelines adapters
- terms: resolution of the main-effect and interaction coefficients
- recode: preventive-exposure detection and reference recoding
- variance: variances and covariances of the three coefficients
- estimates: ratios, RERI, AP and SI with their intervals
- results: MeasureRow, AnalysisResult and table assembly
- datasets: oral cancer example data

The entry point is `interaction_lib.interaction_mover`.
"""

from .datasets import load_oc_data
from .estimates import Estimate, InteractionEstimates, estimate_measures
from .exceptions import (
    AmbiguousInteractionTerm,
    InteractionError,
    InvalidVariance,
    ModelFitError,
    PreventiveExposureWarning,
    RecodeAppliedWarning,
    TermResolutionError,
    UnsupportedRecode,
)
from .models import (
    CoxFittedModel,
    FittedModel,
    ModelSpecification,
    StatsmodelsFittedModel,
    as_fitted_model,
    fit_conditional_logistic,
    fit_cox,
    fit_logistic,
    fit_model,
)
from .recode import RecodeOutcome, handle_preventive
from .results import AnalysisResult, MeasureRow, build_table
from .terms import ResolvedTerms, resolve_terms
from .variance import VarianceBundle

__version__ = "0.1.0"
