"""
Variances and covariances of the three interaction coefficients.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .exceptions import InvalidVariance
from .models import FittedModel
from .terms import ResolvedTerms


def checked_sqrt(value: float, quantity: str, allow_zero: bool = False) -> float:
    """Square root of a variance-like quantity, raising InvalidVariance when it is not usable."""
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        raise InvalidVariance(quantity, value)
    return math.sqrt(value)


@dataclass(frozen=True)
class VarianceBundle:
    """
    Variances of beta1, beta2, beta3, their pairwise covariances, and the
    variances of their sums.

    v12, v13, v23 and v123 are the variances of beta1+beta2, beta1+beta3,
    beta2+beta3 and beta1+beta2+beta3.
    """

    v1: float
    v2: float
    v3: float
    cov12: float
    cov13: float
    cov23: float

    def __post_init__(self) -> None:
        for quantity in ("v1", "v2", "v3"):
            value = getattr(self, quantity)
            if not math.isfinite(value) or value <= 0:
                raise InvalidVariance(quantity, value)

    @classmethod
    def from_model(cls, model: FittedModel, terms: ResolvedTerms) -> "VarianceBundle":
        """Squared standard errors and pairwise covariances of the resolved terms."""
        return cls(
            v1=model.standard_error(terms.beta1) ** 2,
            v2=model.standard_error(terms.beta2) ** 2,
            v3=model.standard_error(terms.beta3) ** 2,
            cov12=model.covariance(terms.beta1, terms.beta2),
            cov13=model.covariance(terms.beta1, terms.beta3),
            cov23=model.covariance(terms.beta2, terms.beta3),
        )

    @property
    def v12(self) -> float:
        return self.v1 + self.v2 + 2 * self.cov12

    @property
    def v13(self) -> float:
        return self.v1 + self.v3 + 2 * self.cov13

    @property
    def v23(self) -> float:
        return self.v2 + self.v3 + 2 * self.cov23

    @property
    def v123(self) -> float:
        return self.v1 + self.v2 + self.v3 + 2 * (self.cov12 + self.cov13 + self.cov23)
