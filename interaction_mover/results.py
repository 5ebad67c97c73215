"""
Assembly of the reported measures into an ordered, immutable result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from .estimates import Estimate, InteractionEstimates
from .models import FittedModel, ModelSpecification
from .terms import ResolvedTerms

TABLE_COLUMNS = ["measure", "estimate", "ci_lower", "ci_upper", "p_value"]


@dataclass(frozen=True)
class MeasureRow:
    """One line of the output table; None marks a value that is not available."""

    label: str
    estimate: float
    ci_lower: Optional[float] = None
    ci_upper: Optional[float] = None
    p_value: Optional[float] = None

    @classmethod
    def from_estimate(cls, label: str, estimate: Estimate) -> "MeasureRow":
        return cls(label, estimate.estimate, estimate.ci_lower, estimate.ci_upper, estimate.p_value)


@dataclass(frozen=True)
class AnalysisResult:
    """
    Outcome of one interaction analysis.

    `dataset` is the data of the analysed model: the recoded copy when the
    exposures were recoded (also exposed as `recoded_dataset`), the original
    analysis data otherwise.
    """

    table: tuple[MeasureRow, ...]
    exposure_coefficient_names: tuple[str, str]
    em: bool
    ci_level: float
    specification: ModelSpecification
    dataset: Optional[pd.DataFrame] = None
    recoded_dataset: Optional[pd.DataFrame] = None
    reference_levels: Optional[tuple[int, int]] = None
    model: Optional[FittedModel] = None

    @property
    def mode(self) -> str:
        return "em" if self.em else "interaction"

    @property
    def recoded(self) -> bool:
        return self.recoded_dataset is not None

    def row(self, label: str) -> MeasureRow:
        """Row with the given label."""
        for row in self.table:
            if row.label == label:
                return row
        raise KeyError(f"No measure labelled '{label}'")

    def to_dataframe(self) -> pd.DataFrame:
        """Table as a DataFrame; unavailable values become NaN."""
        records: list[dict[str, Any]] = [
            {
                "measure": row.label,
                "estimate": row.estimate,
                "ci_lower": np.nan if row.ci_lower is None else row.ci_lower,
                "ci_upper": np.nan if row.ci_upper is None else row.ci_upper,
                "p_value": np.nan if row.p_value is None else row.p_value,
            }
            for row in self.table
        ]
        return pd.DataFrame.from_records(records, columns=TABLE_COLUMNS)


def stratum_label(ratio_name: str, effect: str, condition: str, level: int) -> str:
    """Label of a stratum-specific ratio, e.g. ``OR(smk on outcome [alc==1])``."""
    return f"{ratio_name}({effect} on outcome [{condition}=={level}])"


def build_table(
    estimates: InteractionEstimates,
    terms: ResolvedTerms,
    em: bool = True,
    ratio_name: str = "OR",
) -> tuple[MeasureRow, ...]:
    """
    Ordered rows for the effect-modification (8 rows) or interaction (12 rows) report.

    Both layouts list the reference stratum, the three joint-stratum ratios
    and the effect of beta2 within each level of beta1. The interaction layout
    adds the effect of beta1 within each level of beta2, then AP and SI after
    the multiplicative-scale ratio and RERI.
    """
    beta1, beta2 = terms.beta1, terms.beta2
    rows = [
        MeasureRow(f"{ratio_name}00", 1.0),
        MeasureRow.from_estimate(f"{ratio_name}01", estimates.or01),
        MeasureRow.from_estimate(f"{ratio_name}10", estimates.or10),
        MeasureRow.from_estimate(f"{ratio_name}11", estimates.or11),
        MeasureRow.from_estimate(stratum_label(ratio_name, beta2, beta1, 0), estimates.or01),
        MeasureRow.from_estimate(stratum_label(ratio_name, beta2, beta1, 1), estimates.beta2_given_beta1),
    ]
    if not em:
        rows += [
            MeasureRow.from_estimate(stratum_label(ratio_name, beta1, beta2, 0), estimates.or10),
            MeasureRow.from_estimate(stratum_label(ratio_name, beta1, beta2, 1), estimates.beta1_given_beta2),
        ]
    rows += [
        MeasureRow.from_estimate("Multiplicative scale", estimates.multiplicative),
        MeasureRow.from_estimate("RERI", estimates.reri),
    ]
    if not em:
        rows += [
            MeasureRow.from_estimate("AP", estimates.ap),
            MeasureRow.from_estimate("SI", estimates.si),
        ]
    return tuple(rows)
