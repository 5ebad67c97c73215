"""
Error and warning types raised while estimating interaction measures.

Fatal conditions derive from InteractionError; informational conditions are
UserWarning subclasses emitted through the warnings module.
"""


class InteractionError(Exception):
    """Base class for failures of the interaction analysis."""


class TermResolutionError(InteractionError, ValueError):
    """A main-effect or interaction coefficient could not be located in the model."""


class AmbiguousInteractionTerm(TermResolutionError):
    """Zero or several coefficients match both exposure names."""

    def __init__(self, exposure_names, matches):
        self.exposure_names = tuple(exposure_names)
        self.matches = tuple(matches)
        if self.matches:
            detail = f"several coefficients match both names: {', '.join(self.matches)}"
        else:
            detail = "no coefficient matches both names"
        super().__init__(
            f"The interaction of {self.exposure_names[0]!r} and {self.exposure_names[1]!r} "
            f"cannot be found in the model ({detail})"
        )


class UnsupportedRecode(InteractionError):
    """Automatic recoding was requested for a model kind that cannot be refit."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f"Exposures of a '{kind}' model cannot be recoded automatically. "
            "Recode your exposure variables following Knol et al. (2011) "
            "European Journal of Epidemiology, 26(6), 433-438, refit the model "
            "and run the analysis again."
        )


class InvalidVariance(InteractionError, ArithmeticError):
    """A variance or MOVER radicand is negative, zero or not finite."""

    def __init__(self, quantity: str, value: float):
        self.quantity = quantity
        self.value = value
        super().__init__(
            f"Invalid variance for {quantity}: {value!r}. "
            "The covariance matrix may be singular."
        )


class ModelFitError(InteractionError):
    """The regression model could not be fitted or refitted."""


class PreventiveExposureWarning(UserWarning):
    """At least one exposure has a ratio below 1 and was left as coded."""


class RecodeAppliedWarning(UserWarning):
    """Exposures were recoded to a new reference stratum and the model refitted."""
