"""
📊 Point estimates and confidence intervals for interaction measures

Joint-stratum and stratum-specific ratios get Wald intervals on the log scale.
The additive measures (RERI, AP, SI) combine the intervals of their
correlated components with the method of variance estimates recovery.

Functions:
    - critical_value: Two-sided normal critical value for a confidence level
    - approximate_p_value: Closed-form normal-tail p-value for a log ratio
    - mover_interval: MOVER bounds for a signed sum of correlated estimates
    - estimate_measures: Every measure reported for one fitted model

References:
    Zou, G.Y. (2008). On the estimation of additive interaction by use of the
        four-by-two table and beyond. American Journal of Epidemiology, 168(2), 212-224.
    Altman, D.G. & Bland, J.M. (2011). How to obtain the P value from a
        confidence interval. BMJ, 343, d2304.
    Hosmer, D.W. & Lemeshow, S. (1992). Confidence interval estimation of
        interaction. Epidemiology, 3(5), 452-456.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from scipy import stats

from logger import get_logger

from .models import FittedModel
from .terms import ResolvedTerms
from .variance import VarianceBundle, checked_sqrt

logger = get_logger(__name__)

NAN = float("nan")

# exp(-a·q - b·q²) approximation of the two-sided normal tail (BMJ 2011;343:d2304)
P_APPROX_A = 0.717
P_APPROX_B = 0.416


@dataclass(frozen=True)
class Estimate:
    """A point estimate with its interval; None marks a value that is not available."""

    estimate: float
    ci_lower: Optional[float] = None
    ci_upper: Optional[float] = None
    p_value: Optional[float] = None


@dataclass(frozen=True)
class MoverComponent:
    """One estimate entering a MOVER sum with its own interval and sign (+1 or -1)."""

    estimate: float
    lower: float
    upper: float
    sign: int = 1


@dataclass(frozen=True)
class InteractionEstimates:
    """
    All measures for one model.

    `beta2_given_beta1` is the ratio of the second exposure when the first is
    present, exp(beta2 + beta3); `beta1_given_beta2` is exp(beta1 + beta3).
    """

    or10: Estimate
    or01: Estimate
    or11: Estimate
    beta2_given_beta1: Estimate
    beta1_given_beta2: Estimate
    multiplicative: Estimate
    reri: Estimate
    ap: Estimate
    si: Estimate


# =============================================================================
# BUILDING BLOCKS
# =============================================================================


def critical_value(ci_level: float) -> float:
    """
    Two-sided standard normal critical value.

    >>> round(critical_value(0.95), 4)
    1.96
    """
    if not 0 < ci_level < 1:
        raise ValueError(f"ci_level must be between 0 and 1, got {ci_level}")
    return float(stats.norm.ppf(1 - (1 - ci_level) / 2))


def approximate_p_value(ratio: float, variance: float) -> float:
    """
    Two-sided p-value of a ratio from its log-scale variance.

    Uses p = exp(-0.717q - 0.416q²) with q = |ln ratio| / SE, an approximation
    of the normal tail used for sums of coefficients, which have no p-value of
    their own in the fitted model.
    """
    q = abs(math.log(ratio)) / checked_sqrt(variance, "log ratio")
    return math.exp(-P_APPROX_A * q - P_APPROX_B * q ** 2)


def wald_ratio(log_estimate: float, variance: float, z: float, quantity: str) -> Estimate:
    """exp(log_estimate ± z·SE) with an approximate p-value."""
    se = checked_sqrt(variance, quantity)
    ratio = math.exp(log_estimate)
    return Estimate(
        estimate=ratio,
        ci_lower=math.exp(log_estimate - z * se),
        ci_upper=math.exp(log_estimate + z * se),
        p_value=approximate_p_value(ratio, variance),
    )


def model_ratio(model: FittedModel, name: str, ci_level: float) -> Estimate:
    """Exponentiated coefficient with the model's own interval and p-value."""
    lower, upper = model.conf_int(name, ci_level)
    return Estimate(
        estimate=math.exp(model.coefficient(name)),
        ci_lower=math.exp(lower),
        ci_upper=math.exp(upper),
        p_value=model.p_value(name),
    )


def _mover_radius(
    components: Sequence[MoverComponent],
    widths: Sequence[float],
    correlations: Mapping[tuple[int, int], float],
    quantity: str,
) -> float:
    total = sum(w * w for w in widths)
    for (i, j), r in correlations.items():
        total += 2 * components[i].sign * components[j].sign * r * widths[i] * widths[j]
    return checked_sqrt(total, quantity, allow_zero=True)


def mover_interval(
    components: Sequence[MoverComponent],
    correlations: Mapping[tuple[int, int], float],
    constant: float = 0.0,
    quantity: str = "MOVER sum",
) -> tuple[float, float]:
    """
    MOVER interval for ``constant + Σ sign_i · estimate_i``.

    The lower bound recovers each variance from the near side of its interval
    (the lower limit for positive terms, the upper limit for negative ones);
    the upper bound uses the far sides. `correlations` maps index pairs
    ``(i, j)`` with ``i < j`` to the correlation between components i and j.

    Raises:
        InvalidVariance: If a combined variance is negative.
    """
    point = constant + sum(c.sign * c.estimate for c in components)
    lower_widths = [
        c.estimate - c.lower if c.sign > 0 else c.upper - c.estimate for c in components
    ]
    upper_widths = [
        c.upper - c.estimate if c.sign > 0 else c.estimate - c.lower for c in components
    ]
    lower = point - _mover_radius(components, lower_widths, correlations, quantity)
    upper = point + _mover_radius(components, upper_widths, correlations, quantity)
    return lower, upper


def _correlation(covariance: float, variance_a: float, variance_b: float, quantity: str) -> float:
    return covariance / checked_sqrt(variance_a * variance_b, quantity)


# =============================================================================
# ADDITIVE INTERACTION MEASURES
# =============================================================================


def reri_estimate(or10: Estimate, or01: Estimate, or11: Estimate, bundle: VarianceBundle) -> Estimate:
    """RERI = OR11 - OR10 - OR01 + 1 with its MOVER interval."""
    b = bundle
    correlations = {
        (0, 1): _correlation(b.v1 + b.cov12 + b.cov13, b.v1, b.v123, "RERI r12"),
        (0, 2): _correlation(b.cov12 + b.v2 + b.cov23, b.v2, b.v123, "RERI r13"),
        (1, 2): _correlation(b.cov12, b.v1, b.v2, "RERI r23"),
    }
    components = [
        MoverComponent(or11.estimate, or11.ci_lower, or11.ci_upper, +1),
        MoverComponent(or10.estimate, or10.ci_lower, or10.ci_upper, -1),
        MoverComponent(or01.estimate, or01.ci_lower, or01.ci_upper, -1),
    ]
    lower, upper = mover_interval(components, correlations, constant=1.0, quantity="RERI")
    return Estimate(or11.estimate - or10.estimate - or01.estimate + 1, lower, upper)


def ap_estimate(b1: float, b2: float, b3: float, bundle: VarianceBundle, z: float) -> Estimate:
    """
    AP = θ1 - θ2 - θ3 + 1 on the reciprocal-ratio scale, with its MOVER interval.

    θ1 = 1/OR11, θ2 = 1/exp(beta2 + beta3), θ3 = 1/exp(beta1 + beta3).
    """
    b = bundle
    parts = (
        (math.exp(-(b1 + b2 + b3)), b.v123, "AP theta1"),
        (math.exp(-(b2 + b3)), b.v23, "AP theta2"),
        (math.exp(-(b1 + b3)), b.v13, "AP theta3"),
    )
    components = []
    for sign, (theta, variance, quantity) in zip((+1, -1, -1), parts):
        spread = z * checked_sqrt(variance, quantity)
        components.append(
            MoverComponent(theta, theta * math.exp(-spread), theta * math.exp(spread), sign)
        )

    correlations = {
        (0, 1): _correlation(b.cov12 + b.cov13 + b.v2 + 2 * b.cov23 + b.v3,
                             b.v23, b.v123, "AP r12"),
        (0, 2): _correlation(b.v1 + b.cov12 + 2 * b.cov13 + b.cov23 + b.v3,
                             b.v13, b.v123, "AP r13"),
        (1, 2): _correlation(b.cov12 + b.cov23 + b.cov13 + b.v3,
                             b.v23, b.v13, "AP r23"),
    }
    lower, upper = mover_interval(components, correlations, constant=1.0, quantity="AP")
    theta1, theta2, theta3 = (c.estimate for c in components)
    return Estimate(theta1 - theta2 - theta3 + 1, lower, upper)


def si_estimate(b1: float, b2: float, b3: float, bundle: VarianceBundle, z: float) -> Estimate:
    """
    SI = (OR11 - 1) / (OR10 + OR01 - 2), combined on the log scale.

    SI is undefined when OR11 <= 1 or OR10 + OR01 <= 2; it is then reported as NaN.
    """
    b = bundle
    or10, or01, or11 = math.exp(b1), math.exp(b2), math.exp(b1 + b2 + b3)

    if or11 <= 1 or or10 + or01 <= 2:
        logger.warning(
            f"Synergy index undefined (OR11={or11:.3f}, OR10+OR01={or10 + or01:.3f}); reported as NaN"
        )
        return Estimate(NAN, NAN, NAN)

    log_num = math.log(or11 - 1)
    log_den = math.log(or10 + or01 - 2)
    var_num = (or11 / (or11 - 1)) ** 2 * b.v123
    den_spread = or10 ** 2 * b.v1 + or01 ** 2 * b.v2 + 2 * or10 * or01 * b.cov12
    var_den = den_spread / (or10 + or01 - 2) ** 2

    r = (or10 * (b.v1 + b.cov12 + b.cov13) + or01 * (b.cov12 + b.v2 + b.cov23)) / checked_sqrt(
        b.v123 * den_spread, "SI r"
    )
    se_num = checked_sqrt(var_num, "SI numerator")
    se_den = checked_sqrt(var_den, "SI denominator")
    components = [
        MoverComponent(log_num, log_num - z * se_num, log_num + z * se_num, +1),
        MoverComponent(log_den, log_den - z * se_den, log_den + z * se_den, -1),
    ]
    lower, upper = mover_interval(components, {(0, 1): r}, quantity="ln SI")
    return Estimate(math.exp(log_num - log_den), math.exp(lower), math.exp(upper))


# =============================================================================
# ALL MEASURES
# =============================================================================


def estimate_measures(
    model: FittedModel,
    terms: ResolvedTerms,
    bundle: VarianceBundle,
    ci_level: float = 0.95,
) -> InteractionEstimates:
    """
    Compute every ratio and interaction measure for a fitted model.

    Single coefficients use the model's own intervals and p-values; sums of
    coefficients use Wald intervals from `bundle` and approximate p-values.
    RERI, AP and SI carry MOVER intervals and no p-value.
    """
    z = critical_value(ci_level)
    b1 = model.coefficient(terms.beta1)
    b2 = model.coefficient(terms.beta2)
    b3 = model.coefficient(terms.beta3)

    with logger.track_time("mover_intervals"):
        or10 = model_ratio(model, terms.beta1, ci_level)
        or01 = model_ratio(model, terms.beta2, ci_level)
        or11 = wald_ratio(b1 + b2 + b3, bundle.v123, z, "beta1+beta2+beta3")
        beta2_given_beta1 = wald_ratio(b2 + b3, bundle.v23, z, "beta2+beta3")
        beta1_given_beta2 = wald_ratio(b1 + b3, bundle.v13, z, "beta1+beta3")
        multiplicative = model_ratio(model, terms.beta3, ci_level)

        estimates = InteractionEstimates(
            or10=or10,
            or01=or01,
            or11=or11,
            beta2_given_beta1=beta2_given_beta1,
            beta1_given_beta2=beta1_given_beta2,
            multiplicative=multiplicative,
            reri=reri_estimate(or10, or01, or11, bundle),
            ap=ap_estimate(b1, b2, b3, bundle, z),
            si=si_estimate(b1, b2, b3, bundle, z),
        )

    logger.debug(
        f"RERI={estimates.reri.estimate:.4f}, AP={estimates.ap.estimate:.4f}, "
        f"SI={estimates.si.estimate:.4f} at ci_level={ci_level}"
    )
    return estimates
