"""Observed data for a linear birth-death process.

Observations are built once from raw time series and are read-only inputs to
:func:`bdlik.log_likelihood`. Lists or tuples of observations are treated as
independent replicates that share one pair of rates.
"""

from typing import NamedTuple

import numpy as np
from jaxtyping import Array, Float, Int


class ContinuousTimeObservation(NamedTuple):
    """Sufficient statistics of one process monitored continuously over [0, T].

    Attributes:
        sum_log_n: sum of log n[s] over the population sizes immediately before
            each jump.
        tot_births: total number of births B.
        tot_deaths: total number of deaths D.
        integrated_jump: time-integrated population size X.
    """

    sum_log_n: float
    tot_births: float
    tot_deaths: float
    integrated_jump: float

    @property
    def num_events(self):
        return self.tot_births + self.tot_deaths


class DiscreteTimeEqualObservation(NamedTuple):
    """Panel data: ``n`` replicates observed on a shared grid with spacing ``step_size``.

    ``state[s, r]`` is the population of replicate ``r`` at time ``s * step_size``.
    """

    state: Int[Array, "T n"]
    step_size: float
    n: int

    @property
    def num_transitions(self) -> int:
        return max(np.shape(self.state)[0] - 1, 0) * self.n


class DiscreteTimeUnequalObservation(NamedTuple):
    """One process observed at irregular times.

    ``waiting_time[s]`` is the time elapsed between ``state[s]`` and ``state[s + 1]``.
    """

    state: Int[Array, "S"]
    waiting_time: Float[Array, "S-1"]  # noqa: F821

    @property
    def num_transitions(self) -> int:
        return len(self.waiting_time)
