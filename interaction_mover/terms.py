"""
Locate the two exposure main effects and their product term among a model's coefficients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from logger import get_logger

from .exceptions import AmbiguousInteractionTerm, TermResolutionError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedTerms:
    """Coefficient names of the main exposure, the modifier and their interaction."""

    beta1: str
    beta2: str
    beta3: str
    exposure_names: tuple[str, str] = ("", "")

    @property
    def names(self) -> tuple[str, str, str]:
        return self.beta1, self.beta2, self.beta3


def match_coefficients(fragment: str, coefficient_names: Iterable[str]) -> list[str]:
    """Coefficient names containing `fragment`, ignoring case, in model order."""
    needle = fragment.casefold()
    return [name for name in coefficient_names if needle in name.casefold()]


def resolve_terms(coefficient_names: Sequence[str], exposure_names: Sequence[str]) -> ResolvedTerms:
    """
    Resolve beta1, beta2 and beta3 from two exposure name fragments.

    The interaction term is the only coefficient whose name contains both
    fragments. Each main effect is the first other coefficient matching its
    fragment.

    Raises:
        AmbiguousInteractionTerm: If zero or several names contain both fragments.
        TermResolutionError: If an exposure has no main-effect coefficient.
    """
    coefficient_names = [str(name) for name in coefficient_names]
    first, second = exposure_names

    e1 = match_coefficients(first, coefficient_names)
    e2 = match_coefficients(second, coefficient_names)
    shared = [name for name in e1 if name in e2]

    if len(shared) != 1:
        logger.error(
            f"Interaction of '{first}' and '{second}' not identifiable; matches: {shared}"
        )
        raise AmbiguousInteractionTerm((first, second), shared)

    beta3 = shared[0]
    main1 = [name for name in e1 if name != beta3]
    main2 = [name for name in e2 if name != beta3]

    if not main1:
        raise TermResolutionError(f"No main-effect coefficient found for exposure '{first}'")
    if not main2:
        raise TermResolutionError(f"No main-effect coefficient found for exposure '{second}'")

    terms = ResolvedTerms(main1[0], main2[0], beta3, (first, second))
    logger.debug(f"Resolved terms: beta1={terms.beta1}, beta2={terms.beta2}, beta3={terms.beta3}")
    return terms
