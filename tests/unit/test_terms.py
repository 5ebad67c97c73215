"""
Unit tests for interaction_mover/terms.py
"""

import pytest

from interaction_mover.exceptions import AmbiguousInteractionTerm, TermResolutionError
from interaction_mover.terms import match_coefficients, resolve_terms

pytestmark = pytest.mark.unit


class TestResolveTerms:
    """Tests for locating beta1, beta2 and the interaction coefficient."""

    def test_resolves_formula_names(self):
        terms = resolve_terms(["Intercept", "alc", "smk", "alc:smk"], ["alc", "smk"])

        assert terms.names == ("alc", "smk", "alc:smk")
        assert terms.exposure_names == ("alc", "smk")

    def test_interaction_appears_in_both_match_sets(self):
        names = ["Intercept", "alc", "smk", "alc:smk"]
        terms = resolve_terms(names, ["alc", "smk"])

        assert terms.beta3 in match_coefficients("alc", names)
        assert terms.beta3 in match_coefficients("smk", names)

    def test_case_insensitive(self):
        terms = resolve_terms(["Intercept", "Alcohol", "Smoking", "Alcohol:Smoking"], ["alcohol", "SMOK"])

        assert terms.beta1 == "Alcohol"
        assert terms.beta2 == "Smoking"
        assert terms.beta3 == "Alcohol:Smoking"

    def test_order_of_exposures_sets_beta1(self):
        terms = resolve_terms(["Intercept", "alc", "smk", "alc:smk"], ["smk", "alc"])

        assert terms.beta1 == "smk"
        assert terms.beta2 == "alc"

    def test_interaction_listed_before_main_effect(self):
        terms = resolve_terms(["alc:smk", "alc", "smk"], ["alc", "smk"])

        assert terms.names == ("alc", "smk", "alc:smk")

    def test_categorical_coding(self):
        names = ["Intercept", "C(alc)[T.1]", "C(smk)[T.1]", "C(alc)[T.1]:C(smk)[T.1]"]
        terms = resolve_terms(names, ["alc", "smk"])

        assert terms.beta1 == "C(alc)[T.1]"
        assert terms.beta3 == "C(alc)[T.1]:C(smk)[T.1]"

    def test_no_interaction_term(self):
        with pytest.raises(AmbiguousInteractionTerm) as excinfo:
            resolve_terms(["Intercept", "alc", "smk"], ["alc", "smk"])

        assert excinfo.value.matches == ()
        assert "cannot be found" in str(excinfo.value)

    def test_several_interaction_terms(self):
        names = ["Intercept", "alc", "smk", "alc:smk", "alc:smk:age"]

        with pytest.raises(AmbiguousInteractionTerm) as excinfo:
            resolve_terms(names, ["alc", "smk"])

        assert set(excinfo.value.matches) == {"alc:smk", "alc:smk:age"}

    def test_missing_main_effect(self):
        with pytest.raises(TermResolutionError):
            resolve_terms(["Intercept", "smk", "alc:smk"], ["alc", "smk"])

    def test_ambiguous_is_a_resolution_error(self):
        assert issubclass(AmbiguousInteractionTerm, TermResolutionError)
        assert issubclass(AmbiguousInteractionTerm, ValueError)
