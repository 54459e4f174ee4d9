"""Transition probabilities of the linear birth-death process.

Define ``i`` as the size of the population at time 0 and ``j`` as the population size
at time ``t``. With ``w = (lam - mu) t``, ``alpha = (mu e^w - mu) / (lam e^w - mu)``
and ``beta = (lam e^w - lam) / (lam e^w - mu)``, Bailey (1964) gives

    p(j | i, t) = sum_{h=0}^{min(i, j)} C(i, h) C(i + j - h - 1, i - 1)
                  alpha^(i - h) beta^(j - h) (1 - alpha - beta)^h.

For long horizons ``1 - alpha - beta`` is negative and this series alternates, losing
all precision for populations in the hundreds. Each of the ``i`` initial individuals
independently leaves no descendants with probability ``alpha``, or ``m >= 1``
descendants with probability ``(1 - alpha) (1 - beta) beta^(m - 1)``. Counting the
``k`` surviving lineages gives the same probability as a sum of positive terms,

    p(0 | i, t) = alpha^i,
    p(j | i, t) = sum_{k=1}^{min(i, j)} C(i, k) C(j - 1, k - 1)
                  alpha^(i - k) [(1 - alpha) (1 - beta)]^k beta^(j - k),   j > 0,

which is what is evaluated here, term by term on the log scale.

References:
    Bailey, N. T. J. (1964). The elements of stochastic processes with applications to
    the natural sciences. Wiley, New York, NY, USA.
"""

from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np
from jax.scipy.special import gammaln, logsumexp
from jaxtyping import Array, Bool, Float, Int
from loguru import logger

from bdlik.errors import DomainError, NumericalDomainError
from bdlik.params import BirthDeathRates

# below this |w| the Taylor expansion of expm1(w) / w is used
EXPREL_SMALL = 1e-6


def _exprel(w):
    # expm1(w) / w, continuous through w = 0
    w_small = jnp.abs(w) < EXPREL_SMALL
    w_safe = jnp.where(w_small, 1.0, w)
    return jnp.where(w_small, 1.0 + w / 2.0 + w**2 / 6.0, jnp.expm1(w_safe) / w_safe)


def _log_exprel(w):
    # log(expm1(w) / w) without overflow for large w
    w_large = w > 1.0
    w_hi = jnp.where(w_large, w, 1.0)
    w_lo = jnp.where(w_large, 0.0, w)
    return jnp.where(
        w_large,
        w_hi + jnp.log(-jnp.expm1(-w_hi)) - jnp.log(w_hi),
        jnp.log(_exprel(w_lo)),
    )


class BaileyCoefficients(NamedTuple):
    log_alpha: Float[Array, "P"]
    log_beta: Float[Array, "P"]
    # log((1 - alpha) (1 - beta))
    log_q: Float[Array, "P"]


def bailey_coefficients(t, lam, mu) -> BaileyCoefficients:
    """Compute log(alpha), log(beta) and log((1 - alpha)(1 - beta)).

    With s = (lam - mu) / expm1((lam - mu) t) the coefficients are alpha = mu / (lam + s),
    beta = lam / (lam + s), 1 - alpha = s e^w / (lam + s) and 1 - beta = s / (lam + s).
    At lam = mu, s = 1 / t and alpha = beta = lam t / (1 + lam t), the critical process.
    """
    w = (lam - mu) * t
    log_s = -jnp.log(t) - _log_exprel(w)
    log_d = jnp.logaddexp(jnp.log(lam), log_s)
    return BaileyCoefficients(
        log_alpha=jnp.log(mu) - log_d,
        log_beta=jnp.log(lam) - log_d,
        log_q=2.0 * (log_s - log_d) + w,
    )


@jax.jit
def log_transition(
    i: Int[Array, "P"],
    j: Int[Array, "P"],
    t: Float[Array, "P"],
    k: Int[Array, "K"],
    lam: float,
    mu: float,
) -> tuple[Float[Array, "P"], Bool[Array, "P"]]:
    """Evaluate log p(j[n] | i[n], t[n]) for a batch of transitions.

    Args:
        i, j: initial and final population sizes.
        t: elapsed times, broadcastable against i.
        k: arange(1, K + 1) where K >= max(min(i, j)), as returned by num_terms.
           Only its length matters; it fixes the number of series terms.
        lam, mu: birth and death rates.

    Returns:
        The log-probabilities and a mask of transitions whose value is not finite.
    """
    dtype = jnp.result_type(lam, mu)
    i, j, k = (a.astype(dtype) for a in (i, j, k))
    t = jnp.broadcast_to(t, i.shape).astype(dtype)
    coef = bailey_coefficients(t, lam, mu)

    i_ = i[:, None]
    j_ = j[:, None]
    k_ = k[None, :]
    valid = k_ <= jnp.minimum(i_, j_)
    # rows with i = 0 or j = 0 have no terms and are overwritten below; they keep
    # the finite k = 1 entry so the log-sum-exp never sees only -inf
    keep = valid | ((jnp.minimum(i_, j_) == 0) & (k_ == 1.0))
    i_safe = jnp.maximum(i_, 1.0)
    j_safe = jnp.maximum(j_, 1.0)
    k_safe = jnp.where(valid, k_, 1.0)
    log_binom = (
        gammaln(i_safe + 1.0)
        - gammaln(k_safe + 1.0)
        - gammaln(i_safe - k_safe + 1.0)
        + gammaln(j_safe)
        - gammaln(k_safe)
        - gammaln(j_safe - k_safe + 1.0)
    )
    a = (
        log_binom
        + (i_safe - k_safe) * coef.log_alpha[:, None]
        + k_safe * coef.log_q[:, None]
        + (j_safe - k_safe) * coef.log_beta[:, None]
    )
    ll = logsumexp(jnp.where(keep, a, -jnp.inf), axis=1)

    # extinction
    ll = jnp.where(j == 0, i * coef.log_alpha, ll)
    # state 0 is absorbing
    absorbed = i == 0
    ll = jnp.where(absorbed, jnp.where(j == 0, 0.0, -jnp.inf), ll)
    bad = ~absorbed & ~jnp.isfinite(ll)
    return jnp.minimum(ll, 0.0), bad


def num_terms(i, j) -> np.ndarray:
    "The series index k = 1, ..., max(min(i, j)) needed to evaluate every transition."
    K = int(np.max(np.minimum(i, j), initial=0))
    return np.arange(1, max(K, 1) + 1)


def check_counts(*counts) -> None:
    for x in counts:
        x = np.asarray(x)
        if x.size == 0:
            continue
        if not np.issubdtype(x.dtype, np.number) or np.issubdtype(
            x.dtype, np.complexfloating
        ):
            raise DomainError(f"population sizes must be integers, got {x.dtype}")
        if np.any(x < 0) or np.any(x != np.round(x)):
            raise DomainError("population sizes must be non-negative integers")


def check_times(t) -> None:
    t = np.asarray(t)
    if not np.all(np.isfinite(t)) or np.any(t <= 0.0):
        raise DomainError("elapsed times must be finite and strictly positive")


def raise_on_nonfinite(bad, i, j, t, rates: BirthDeathRates) -> None:
    "Raise NumericalDomainError for the first flagged transition, if any."
    bad = np.asarray(bad)
    if not bad.any():
        return
    n = int(np.argmax(bad))
    t = np.broadcast_to(t, np.shape(i))
    eta = tuple(float(r) for r in rates)
    logger.warning(
        "{} of {} transition probabilities are not finite at eta={}",
        int(bad.sum()),
        bad.size,
        eta,
    )
    raise NumericalDomainError(i=int(i[n]), j=int(j[n]), t=float(t[n]), eta=eta)


def transition_log_probability(i: int, j: int, t: float, eta) -> jax.Array:
    """Compute log p(j | i, t, lambda, mu) for a linear birth-death process.

    Args:
        i: population size at time 0.
        j: population size at time t.
        t: elapsed time.
        eta: the rates (lambda, mu).

    Returns:
        The log-probability, a scalar of the same floating type as eta.

    Raises:
        DomainError: if a rate or t is not positive, or a count is not a
            non-negative integer.
        NumericalDomainError: if the result is NaN or infinite where a finite
            probability is expected.
    """
    rates = BirthDeathRates.from_eta(eta)
    check_counts(i, j)
    check_times(t)
    i = np.array([i], dtype=np.int64)
    j = np.array([j], dtype=np.int64)
    t = np.array([t], dtype=float)
    if abs((float(rates.lam) - float(rates.mu)) * t[0]) < EXPREL_SMALL:
        logger.debug("near-critical rates {}, using limiting coefficients", rates.eta)
    ll, bad = log_transition(i, j, t, num_terms(i, j), *rates)
    raise_on_nonfinite(bad, i, j, t, rates)
    return ll[0]
