"Parameterization of the linear birth-death process."

from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from bdlik.errors import DomainError, ShapeMismatchError


class BirthDeathRates(NamedTuple):
    lam: Float[Array, ""]
    mu: Float[Array, ""]

    @property
    def dtype(self):
        return jnp.result_type(self.lam, self.mu)

    @property
    def eta(self) -> jax.Array:
        "The rates as the vector (lambda, mu)"
        return jnp.stack([self.lam, self.mu])

    @classmethod
    def from_eta(cls, eta) -> "BirthDeathRates":
        """Build validated rates from ``eta = (lambda, mu)``.

        The floating point type of ``eta`` is kept, so float32 input gives a float32
        likelihood. Integer input is promoted to the default float type.

        Raises:
            ShapeMismatchError: if eta does not hold exactly two rates.
            DomainError: if either rate is not a finite, strictly positive number.
        """
        if isinstance(eta, cls):
            eta = jnp.stack(eta)
        eta = jnp.asarray(eta)
        if not jnp.issubdtype(eta.dtype, jnp.floating):
            eta = eta.astype(float)
        if eta.shape != (2,):
            raise ShapeMismatchError(
                f"eta must be a vector (lambda, mu), got shape {eta.shape}"
            )
        e = np.asarray(eta)
        if not np.all(np.isfinite(e)) or np.any(e <= 0.0):
            raise DomainError(f"birth and death rates must be positive, got {e}")
        return cls(lam=eta[0], mu=eta[1])
