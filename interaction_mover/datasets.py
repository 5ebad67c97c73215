"""
Example data for interaction analysis.

Case-control data on oral cancer from Rothman & Keller (1972), with alcohol
and smoking each dichotomised into any versus none, as analysed by Hosmer &
Lemeshow (1992) and Zou (2008).
"""

from __future__ import annotations

import pandas as pd

# (alc, smk) -> (cases, controls)
OC_CELL_COUNTS = {
    (0, 0): (3, 20),
    (1, 0): (6, 12),
    (0, 1): (8, 18),
    (1, 1): (225, 166),
}


def expand_counts(cell_counts: dict[tuple[int, int], tuple[int, int]],
                  outcome: str = "oc", exposures: tuple[str, str] = ("alc", "smk")) -> pd.DataFrame:
    """One row per subject from a 2×2×2 table of (cases, controls) counts."""
    records = []
    for (level1, level2), (cases, controls) in cell_counts.items():
        records += [{outcome: 1, exposures[0]: level1, exposures[1]: level2}] * cases
        records += [{outcome: 0, exposures[0]: level1, exposures[1]: level2}] * controls
    return pd.DataFrame.from_records(records, columns=[outcome, *exposures]).astype(int)


def load_oc_data() -> pd.DataFrame:
    """
    Oral cancer case-control data, 458 subjects.

    Columns:
        oc: 1 for cases, 0 for controls
        alc: any alcohol consumption
        smk: any smoking
    """
    return expand_counts(OC_CELL_COUNTS)
