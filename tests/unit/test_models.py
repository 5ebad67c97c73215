"""
Unit tests for interaction_mover/models.py

Wrapping raw statsmodels results and refitting them on a modified frame.
"""

import numpy as np
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf

from interaction_mover.models import StatsmodelsFittedModel, as_fitted_model

pytestmark = pytest.mark.unit


class TestAsFittedModel:

    @pytest.mark.parametrize("link", [sm.families.links.Log, sm.families.links.Probit])
    def test_non_logit_binomial_glm_rejected(self, preventive_data, link):
        results = smf.glm(
            "oc ~ alc * smk", data=preventive_data, family=sm.families.Binomial(link=link())
        ).fit()

        with pytest.raises(TypeError, match="logit link required"):
            as_fitted_model(results)

    def test_logit_binomial_glm_accepted(self, preventive_data):
        results = smf.glm("oc ~ alc * smk", data=preventive_data, family=sm.families.Binomial()).fit()

        model = as_fitted_model(results)

        assert model.specification.kind == "logistic"
        assert model.data is preventive_data

    def test_non_binomial_glm_rejected(self, preventive_data):
        results = smf.glm("oc ~ alc * smk", data=preventive_data, family=sm.families.Poisson()).fit()

        with pytest.raises(TypeError, match="binomial GLM"):
            as_fitted_model(results)


class TestRefit:
    """Refitting keeps the model class and the per-row inputs."""

    def test_logit_stays_logit(self, preventive_data):
        model = as_fitted_model(smf.logit("oc ~ alc * smk", data=preventive_data).fit(disp=0))

        refitted = model.refit(model.specification, preventive_data)

        assert isinstance(refitted, StatsmodelsFittedModel)
        assert isinstance(refitted.results.model, sm.Logit)
        assert refitted.coefficient("alc:smk") == pytest.approx(model.coefficient("alc:smk"))

    def test_weights_follow_rows(self, preventive_grouped_data):
        model = as_fitted_model(
            smf.glm(
                "oc ~ alc * smk",
                data=preventive_grouped_data,
                family=sm.families.Binomial(),
                freq_weights=preventive_grouped_data["n"],
            ).fit()
        )
        shuffled = preventive_grouped_data.iloc[::-1]

        refitted = model.refit(model.specification, shuffled)

        assert np.array_equal(refitted.results.model.freq_weights, shuffled["n"].to_numpy())
        for name in model.coefficient_names:
            assert refitted.coefficient(name) == pytest.approx(model.coefficient(name), rel=1e-6)
        assert refitted.coefficient("alc") == pytest.approx(np.log(0.375), rel=1e-6)

    def test_offset_carried_over(self, preventive_data):
        offset = np.full(len(preventive_data), 0.5)
        model = as_fitted_model(
            smf.glm(
                "oc ~ alc * smk", data=preventive_data, family=sm.families.Binomial(), offset=offset
            ).fit()
        )

        refitted = model.refit(model.specification, preventive_data)

        assert np.allclose(refitted.results.model.offset, 0.5)
        assert refitted.coefficient("Intercept") == pytest.approx(model.coefficient("Intercept"), rel=1e-6)
