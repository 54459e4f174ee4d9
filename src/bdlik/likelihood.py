r"""Log-likelihood of a simple (linear) birth and death process.

Suppose the process is observed at times t[0], ..., t[S] with population sizes
n[0], ..., n[S]. By the Markov property the log-likelihood is

    l(lam, mu | x) = \sum_{s=1}^{S} log p(n[s] | n[s-1], t[s] - t[s-1], lam, mu),

with p the transition probability of :mod:`bdlik.transition`. Independent processes
sharing (lam, mu) contribute additively.

If the process is observed continuously over [0, T] the log-likelihood reduces to
(Darwin, 1956, Equation (24))

    l(lam, mu | x) = \sum_s log n[s] + B log lam + D log mu - (lam + mu) X,

where B and D are the total numbers of births and deaths and X is the integral of the
population size over [0, T].

References:
    Darwin, J. H. (1956). The behaviour of an estimator for a simple birth and death
    process. Biometrika, 43(1/2), 23-31. https://doi.org/10.2307/2333575
"""

from functools import singledispatch
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np
from loguru import logger

from bdlik.aggregate import (
    Transitions,
    check_sufficient_statistics,
    split_collection,
    transitions,
)
from bdlik.observation import (
    ContinuousTimeObservation,
    DiscreteTimeEqualObservation,
    DiscreteTimeUnequalObservation,
)
from bdlik.params import BirthDeathRates
from bdlik.transition import log_transition, num_terms, raise_on_nonfinite


class _Prepared(NamedTuple):
    stats: ContinuousTimeObservation | None
    transitions: Transitions | None


def continuous_loglik(x: ContinuousTimeObservation, rates: BirthDeathRates):
    "Closed-form log-likelihood of continuously observed sufficient statistics."
    lam, mu = rates
    sum_log_n, B, D, X = (jnp.asarray(v, dtype=rates.dtype) for v in x)
    return sum_log_n + B * jnp.log(lam) + D * jnp.log(mu) - (lam + mu) * X


def discrete_loglik(tr: Transitions, rates: BirthDeathRates):
    """Sum the log transition probabilities of a batch of transitions.

    Returns:
        The log-likelihood and the mask of transitions whose value is not finite.
    """
    if tr.size == 0:
        return jnp.zeros((), rates.dtype), np.zeros(0, dtype=bool)
    ll, bad = log_transition(tr.i, tr.j, tr.t, num_terms(tr.i, tr.j), *rates)
    return ll.sum(), bad


@singledispatch
def prepare(x) -> _Prepared:
    """Validate an observation and reduce it to sufficient statistics and transitions.

    The result depends only on the data, so it is computed once per call,
    outside of any differentiated function.
    """
    raise TypeError(f"unsupported observation type {type(x).__name__}")


@prepare.register
def _(x: ContinuousTimeObservation) -> _Prepared:
    check_sufficient_statistics(x)
    return _Prepared(stats=x, transitions=None)


@prepare.register(DiscreteTimeEqualObservation)
@prepare.register(DiscreteTimeUnequalObservation)
def _(x) -> _Prepared:
    return _Prepared(stats=None, transitions=transitions(x))


@prepare.register(list)
@prepare.register(tuple)
def _(x) -> _Prepared:
    return _Prepared(*split_collection(x))


def _evaluate(p: _Prepared, rates: BirthDeathRates):
    ll = jnp.zeros((), rates.dtype)
    bad = np.zeros(0, dtype=bool)
    if p.stats is not None:
        ll += continuous_loglik(p.stats, rates)
    if p.transitions is not None:
        ll_d, bad = discrete_loglik(p.transitions, rates)
        ll += ll_d
    return ll, bad


def _check(p: _Prepared, bad, rates: BirthDeathRates) -> None:
    if p.transitions is not None:
        tr = p.transitions
        raise_on_nonfinite(bad, tr.i, tr.j, tr.t, rates)


def log_likelihood(eta, observation) -> jax.Array:
    """Compute the log-likelihood of the rates eta = (lambda, mu) given observed data.

    Args:
        eta: birth rate lambda and death rate mu, both strictly positive.
        observation: a ContinuousTimeObservation, DiscreteTimeEqualObservation or
            DiscreteTimeUnequalObservation, or a list/tuple of independent
            replicates of these.

    Returns:
        The natural-log likelihood, a scalar of the same floating type as eta.

    Raises:
        DomainError: if a rate is not positive or the data violate their domain.
        NumericalDomainError: if a transition probability evaluates to NaN or
            infinity.
        ShapeMismatchError: if the observation arrays have inconsistent shapes.
        TypeError: if the observation type is not supported.
    """
    rates = BirthDeathRates.from_eta(eta)
    p = prepare(observation)
    if p.transitions is not None:
        logger.debug("evaluating {} transitions", p.transitions.size)
    ll, bad = _evaluate(p, rates)
    _check(p, bad, rates)
    return ll


def log_likelihood_and_grad(
    eta, observation
) -> tuple[jax.Array, BirthDeathRates]:
    """Compute the log-likelihood and its gradient with respect to (lambda, mu).

    Validation and errors are the same as :func:`log_likelihood`.

    Returns:
        The log-likelihood and a BirthDeathRates holding the partial derivatives.
    """
    rates = BirthDeathRates.from_eta(eta)
    p = prepare(observation)
    (ll, bad), grad = jax.value_and_grad(lambda r: _evaluate(p, r), has_aux=True)(
        rates
    )
    _check(p, bad, rates)
    return ll, grad
