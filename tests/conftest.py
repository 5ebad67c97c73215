"""
🧪 Pytest configuration for the interaction-mover test suite

Provides:
- Marker registration (unit / integration)
- Oral cancer data and a saturated 2×2×2 logistic model computed in closed form
  (log odds ratios with Woolf variances), so unit tests need no fitting library
"""

import math

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from interaction_mover.datasets import OC_CELL_COUNTS, expand_counts, load_oc_data
from interaction_mover.models import FittedModel, ModelSpecification

# (alc, smk) -> (cases, controls); alcohol alone is protective (OR10 = 0.375)
PREVENTIVE_CELL_COUNTS = {
    (0, 0): (40, 60),
    (1, 0): (20, 80),
    (0, 1): (60, 40),
    (1, 1): (30, 70),
}


def counts_from_data(data, outcome="oc", exposures=("alc", "smk")):
    counts = {}
    for level1 in (0, 1):
        for level2 in (0, 1):
            cell = data[(data[exposures[0]] == level1) & (data[exposures[1]] == level2)]
            counts[(level1, level2)] = (int((cell[outcome] == 1).sum()), int((cell[outcome] == 0).sum()))
    return counts


class SaturatedModel(FittedModel):
    """Exact saturated logistic model of a 2×2×2 table."""

    def __init__(self, counts, exposures=("alc", "smk"), kind="logistic", data=None):
        e1, e2 = exposures
        spec = ModelSpecification(formula=f"oc ~ {e1} * {e2}", kind=kind)
        super().__init__(spec, data)
        self.exposures = exposures

        w = {cell: 1 / a + 1 / c for cell, (a, c) in counts.items()}
        log_odds = {cell: math.log(a / c) for cell, (a, c) in counts.items()}
        w00, w10, w01, w11 = w[(0, 0)], w[(1, 0)], w[(0, 1)], w[(1, 1)]

        names = ["Intercept", e1, e2, f"{e1}:{e2}"]
        params = [
            log_odds[(0, 0)],
            log_odds[(1, 0)] - log_odds[(0, 0)],
            log_odds[(0, 1)] - log_odds[(0, 0)],
            log_odds[(1, 1)] - log_odds[(1, 0)] - log_odds[(0, 1)] + log_odds[(0, 0)],
        ]
        cov = [
            [w00, -w00, -w00, w00],
            [-w00, w10 + w00, w00, -(w10 + w00)],
            [-w00, w00, w01 + w00, -(w01 + w00)],
            [w00, -(w10 + w00), -(w01 + w00), w00 + w10 + w01 + w11],
        ]
        self.params = pd.Series(params, index=names)
        self.cov = pd.DataFrame(cov, index=names, columns=names)

    @property
    def coefficient_names(self):
        return list(self.params.index)

    def coefficient(self, name):
        return float(self.params[name])

    def standard_error(self, name):
        return math.sqrt(self.cov.loc[name, name])

    def p_value(self, name):
        return float(2 * stats.norm.sf(abs(self.coefficient(name) / self.standard_error(name))))

    def covariance(self, name_a, name_b):
        return float(self.cov.loc[name_a, name_b])

    def refit(self, specification, data):
        return SaturatedModel(counts_from_data(data, exposures=self.exposures),
                              exposures=self.exposures, kind=specification.kind, data=data)


# ============================================================================
# 🎨 Pytest Configuration & Markers
# ============================================================================

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


@pytest.fixture
def saturated_model():
    """Factory building a SaturatedModel from cell counts."""
    return SaturatedModel


@pytest.fixture
def oc_data():
    return load_oc_data()


@pytest.fixture
def oc_model(oc_data):
    return SaturatedModel(OC_CELL_COUNTS, data=oc_data)


@pytest.fixture
def preventive_counts():
    return dict(PREVENTIVE_CELL_COUNTS)


@pytest.fixture
def preventive_data():
    return expand_counts(PREVENTIVE_CELL_COUNTS)


@pytest.fixture
def preventive_model(preventive_data):
    return SaturatedModel(PREVENTIVE_CELL_COUNTS, data=preventive_data)


@pytest.fixture
def preventive_grouped_data():
    """PREVENTIVE_CELL_COUNTS as one row per cell and outcome, with the count in `n`."""
    rows = []
    for (alc, smk), (cases, controls) in PREVENTIVE_CELL_COUNTS.items():
        rows.append({"oc": 1, "alc": alc, "smk": smk, "n": cases})
        rows.append({"oc": 0, "alc": alc, "smk": smk, "n": controls})
    return pd.DataFrame(rows)


@pytest.fixture
def cox_data():
    """Synthetic cohort with exponential event times and administrative censoring."""
    rng = np.random.default_rng(42)
    n = 600
    alc = rng.integers(0, 2, n)
    smk = rng.integers(0, 2, n)
    hazard = 0.1 * np.exp(0.6 * alc + 0.5 * smk + 0.3 * alc * smk)
    event_time = rng.exponential(1 / hazard)
    censor_time = 10.0
    return pd.DataFrame({
        "time": np.minimum(event_time, censor_time),
        "event": (event_time <= censor_time).astype(int),
        "alc": alc,
        "smk": smk,
    })


@pytest.fixture
def matched_data():
    """1:3 matched sets; the case in each set is drawn with odds exp(linear predictor)."""
    rng = np.random.default_rng(7)
    rows = []
    for stratum in range(300):
        alc = rng.integers(0, 2, 4)
        smk = rng.integers(0, 2, 4)
        weights = np.exp(0.8 * alc + 0.6 * smk + 0.4 * alc * smk)
        case = rng.choice(4, p=weights / weights.sum())
        for i in range(4):
            rows.append({
                "stratum": stratum,
                "case": int(i == case),
                "alc": int(alc[i]),
                "smk": int(smk[i]),
            })
    return pd.DataFrame(rows)
