"""
Unit tests for interaction_mover/results.py
"""

import math

import pandas as pd
import pytest

from interaction_mover.estimates import estimate_measures
from interaction_mover.models import ModelSpecification
from interaction_mover.results import (
    TABLE_COLUMNS,
    AnalysisResult,
    MeasureRow,
    build_table,
    stratum_label,
)
from interaction_mover.terms import resolve_terms
from interaction_mover.variance import VarianceBundle

pytestmark = pytest.mark.unit

EM_LABELS = [
    "OR00",
    "OR01",
    "OR10",
    "OR11",
    "OR(smk on outcome [alc==0])",
    "OR(smk on outcome [alc==1])",
    "Multiplicative scale",
    "RERI",
]

INTERACTION_LABELS = [
    "OR00",
    "OR01",
    "OR10",
    "OR11",
    "OR(smk on outcome [alc==0])",
    "OR(smk on outcome [alc==1])",
    "OR(alc on outcome [smk==0])",
    "OR(alc on outcome [smk==1])",
    "Multiplicative scale",
    "RERI",
    "AP",
    "SI",
]


@pytest.fixture
def oc_estimates(oc_model):
    terms = resolve_terms(oc_model.coefficient_names, ["alc", "smk"])
    bundle = VarianceBundle.from_model(oc_model, terms)
    return estimate_measures(oc_model, terms, bundle, 0.95), terms


def _result(table, em):
    return AnalysisResult(
        table=table,
        exposure_coefficient_names=("alc", "smk"),
        em=em,
        ci_level=0.95,
        specification=ModelSpecification("oc ~ alc * smk"),
    )


class TestBuildTable:
    """Row order and content of the two report layouts."""

    def test_effect_modification_layout(self, oc_estimates):
        estimates, terms = oc_estimates

        table = build_table(estimates, terms, em=True)

        assert [row.label for row in table] == EM_LABELS

    def test_interaction_layout(self, oc_estimates):
        estimates, terms = oc_estimates

        table = build_table(estimates, terms, em=False)

        assert [row.label for row in table] == INTERACTION_LABELS

    def test_reference_row(self, oc_estimates):
        estimates, terms = oc_estimates

        reference = build_table(estimates, terms)[0]

        assert reference.estimate == 1.0
        assert reference.ci_lower is None
        assert reference.ci_upper is None
        assert reference.p_value is None

    def test_stratum_rows_reuse_joint_ratios(self, oc_estimates):
        estimates, terms = oc_estimates
        rows = {row.label: row for row in build_table(estimates, terms, em=False)}

        assert rows["OR(smk on outcome [alc==0])"] == MeasureRow.from_estimate(
            "OR(smk on outcome [alc==0])", estimates.or01
        )
        assert rows["OR(alc on outcome [smk==0])"].estimate == pytest.approx(estimates.or10.estimate)
        assert rows["OR(smk on outcome [alc==1])"].estimate == pytest.approx(2.710843, rel=1e-5)
        assert rows["OR(alc on outcome [smk==1])"].estimate == pytest.approx(3.049699, rel=1e-5)

    def test_additive_rows_have_no_p_value(self, oc_estimates):
        estimates, terms = oc_estimates
        rows = {row.label: row for row in build_table(estimates, terms, em=False)}

        for label in ("RERI", "AP", "SI"):
            assert rows[label].p_value is None
            assert rows[label].ci_lower < rows[label].estimate < rows[label].ci_upper

    def test_hazard_ratio_labels(self, oc_estimates):
        estimates, terms = oc_estimates

        labels = [row.label for row in build_table(estimates, terms, em=False, ratio_name="HR")]

        assert labels[:4] == ["HR00", "HR01", "HR10", "HR11"]
        assert "HR(alc on outcome [smk==1])" in labels
        assert not any(label.startswith("OR") for label in labels)

    def test_stratum_label(self):
        assert stratum_label("OR", "smk", "alc", 1) == "OR(smk on outcome [alc==1])"


class TestAnalysisResult:

    def test_mode(self, oc_estimates):
        estimates, terms = oc_estimates

        assert _result(build_table(estimates, terms, em=True), em=True).mode == "em"
        assert _result(build_table(estimates, terms, em=False), em=False).mode == "interaction"

    def test_not_recoded_by_default(self, oc_estimates):
        estimates, terms = oc_estimates

        result = _result(build_table(estimates, terms), em=True)

        assert not result.recoded
        assert result.reference_levels is None

    def test_row_lookup(self, oc_estimates):
        estimates, terms = oc_estimates
        result = _result(build_table(estimates, terms, em=False), em=False)

        assert result.row("SI").estimate == pytest.approx(1.870482, rel=1e-5)
        with pytest.raises(KeyError, match="AP"):
            _result(build_table(estimates, terms, em=True), em=True).row("AP")

    def test_to_dataframe(self, oc_estimates):
        estimates, terms = oc_estimates
        result = _result(build_table(estimates, terms, em=False), em=False)

        df = result.to_dataframe()

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == TABLE_COLUMNS
        assert df["measure"].tolist() == INTERACTION_LABELS
        assert math.isnan(df.loc[0, "ci_lower"])
        assert math.isnan(df.loc[0, "p_value"])
        assert df.loc[df["measure"] == "RERI", "estimate"].iloc[0] == pytest.approx(3.739848, rel=1e-5)

    def test_table_is_immutable(self, oc_estimates):
        estimates, terms = oc_estimates
        result = _result(build_table(estimates, terms), em=True)

        with pytest.raises(AttributeError):
            result.table[0].estimate = 2.0
        assert isinstance(result.table, tuple)
