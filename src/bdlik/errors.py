"Exceptions raised while evaluating birth-death likelihoods."


class LikelihoodError(Exception):
    pass


class DomainError(LikelihoodError, ValueError):
    "A rate, time or count lies outside the domain of the likelihood."


class ShapeMismatchError(LikelihoodError, ValueError):
    "Observation arrays have inconsistent dimensions."


class NumericalDomainError(DomainError, ArithmeticError):
    """A transition probability evaluated to NaN or infinity where a finite value
    was expected.

    The offending transition is attached so the caller can decide whether to
    retry in higher precision.
    """

    def __init__(self, i, j, t, eta, reason: str = "non-finite result"):
        self.i = i
        self.j = j
        self.t = t
        self.eta = eta
        self.reason = reason
        super().__init__(
            f"{reason} evaluating log p({j} | {i}, t={t}) at eta={tuple(eta)}"
        )
