"""Reduction of independent replicates to a single likelihood evaluation.

Replicates sharing one pair of rates contribute additively to the log-likelihood.
Continuously observed processes are pooled through their sufficient statistics.
Discretely observed processes are flattened into one batch of transitions, which is
evaluated in a single vectorized pass.
"""

from collections.abc import Sequence
from functools import singledispatch
from typing import NamedTuple

import numpy as np
from jaxtyping import Float, Int
from loguru import logger

from bdlik.errors import DomainError, ShapeMismatchError
from bdlik.observation import (
    ContinuousTimeObservation,
    DiscreteTimeEqualObservation,
    DiscreteTimeUnequalObservation,
)
from bdlik.transition import check_counts, check_times
from bdlik.util import tree_sum


class Transitions(NamedTuple):
    "A batch of independent one-step transitions i -> j over elapsed time t."

    i: Int[np.ndarray, "P"]
    j: Int[np.ndarray, "P"]
    t: Float[np.ndarray, "P"]

    @property
    def size(self) -> int:
        return len(self.i)


def _as_transitions(i, j, t) -> Transitions:
    i = np.asarray(i).astype(np.int64)
    j = np.asarray(j).astype(np.int64)
    t = np.broadcast_to(np.asarray(t, dtype=float), i.shape)
    return Transitions(i=i, j=j, t=t)


@singledispatch
def transitions(x) -> Transitions:
    "Flatten a discretely observed process into its consecutive transitions."
    raise TypeError(f"cannot extract transitions from {type(x).__name__}")


@transitions.register
def _(x: DiscreteTimeEqualObservation) -> Transitions:
    state = np.asarray(x.state)
    if state.ndim == 1 and x.n == 1:
        state = state[:, None]
    if state.ndim != 2:
        raise ShapeMismatchError(
            f"state must be a (time steps, replicates) matrix, got shape {state.shape}"
        )
    if state.shape[0] == 0:
        raise ShapeMismatchError("state must contain at least one observation")
    if state.shape[1] != x.n:
        raise ShapeMismatchError(
            f"state has {state.shape[1]} replicate columns but n = {x.n}"
        )
    check_counts(state)
    check_times(x.step_size)
    # replicate-major, so each replicate's steps are contiguous
    return _as_transitions(state[:-1].T.ravel(), state[1:].T.ravel(), x.step_size)


@transitions.register
def _(x: DiscreteTimeUnequalObservation) -> Transitions:
    state = np.asarray(x.state)
    waiting_time = np.asarray(x.waiting_time, dtype=float)
    if state.ndim != 1 or waiting_time.ndim != 1:
        raise ShapeMismatchError("state and waiting_time must be vectors")
    if len(state) == 0:
        raise ShapeMismatchError("state must contain at least one observation")
    if len(waiting_time) != len(state) - 1:
        raise ShapeMismatchError(
            f"expected {len(state) - 1} waiting times for {len(state)} observations, "
            f"got {len(waiting_time)}"
        )
    check_counts(state)
    check_times(waiting_time)
    return _as_transitions(state[:-1], state[1:], waiting_time)


def concat_transitions(trs: Sequence[Transitions]) -> Transitions:
    if not trs:
        return _as_transitions([], [], [])
    return Transitions(*(np.concatenate(a) for a in zip(*trs)))


def check_sufficient_statistics(x: ContinuousTimeObservation) -> None:
    s = np.array([float(v) for v in x])
    if not np.all(np.isfinite(s)) or np.any(s < 0.0):
        raise DomainError(f"sufficient statistics must be non-negative, got {x}")
    counts = s[1:3]
    if np.any(counts != np.round(counts)):
        raise DomainError("birth and death counts must be integers")


def pool_sufficient_statistics(
    observations: Sequence[ContinuousTimeObservation],
) -> ContinuousTimeObservation:
    """Sum the sufficient statistics of independent processes.

    The closed-form likelihood of the pooled statistics equals the sum of the
    individual likelihoods.
    """
    if not observations:
        return ContinuousTimeObservation(0.0, 0.0, 0.0, 0.0)
    for x in observations:
        check_sufficient_statistics(x)
    return ContinuousTimeObservation(*tree_sum([tuple(x) for x in observations]))


def split_collection(
    observations: Sequence,
) -> tuple[ContinuousTimeObservation | None, Transitions | None]:
    """Split a collection of replicates into pooled statistics and transitions.

    Nested lists and tuples are flattened. Either part is None if the collection
    has no observation of that kind.
    """
    continuous = []
    discrete = []
    for x in observations:
        if isinstance(x, ContinuousTimeObservation):
            continuous.append(x)
        elif isinstance(
            x, (DiscreteTimeEqualObservation, DiscreteTimeUnequalObservation)
        ):
            discrete.append(transitions(x))
        elif isinstance(x, (list, tuple)):
            c, d = split_collection(x)
            if c is not None:
                continuous.append(c)
            if d is not None:
                discrete.append(d)
        else:
            raise TypeError(f"unsupported observation type {type(x).__name__}")
    logger.debug(
        "collection of {} replicates: {} continuous, {} discrete",
        len(observations),
        len(continuous),
        len(discrete),
    )
    stats = pool_sufficient_statistics(continuous) if continuous else None
    trs = concat_transitions(discrete) if discrete else None
    return stats, trs
