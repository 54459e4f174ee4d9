"Likelihood of the simple linear birth-and-death process."

# ruff: noqa: E402

import os

import platformdirs

# this needs to occur before jax loads
os.environ["XLA_PYTHON_CLIENT_PREALLOCATE"] = "false"

import jax

jax.config.update("jax_enable_x64", True)
jax.config.update("jax_compilation_cache_dir", platformdirs.user_cache_dir("bdlik"))
jax.config.update("jax_persistent_cache_min_entry_size_bytes", -1)
jax.config.update("jax_persistent_cache_min_compile_time_secs", 0)

from importlib.metadata import PackageNotFoundError, version

from bdlik.errors import (
    DomainError,
    LikelihoodError,
    NumericalDomainError,
    ShapeMismatchError,
)
from bdlik.likelihood import log_likelihood, log_likelihood_and_grad
from bdlik.observation import (
    ContinuousTimeObservation,
    DiscreteTimeEqualObservation,
    DiscreteTimeUnequalObservation,
)
from bdlik.params import BirthDeathRates
from bdlik.transition import transition_log_probability

__all__ = [
    "BirthDeathRates",
    "ContinuousTimeObservation",
    "DiscreteTimeEqualObservation",
    "DiscreteTimeUnequalObservation",
    "DomainError",
    "LikelihoodError",
    "NumericalDomainError",
    "ShapeMismatchError",
    "log_likelihood",
    "log_likelihood_and_grad",
    "transition_log_probability",
]

try:
    dist_name = __name__
    __version__ = version(dist_name)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
finally:
    del version, PackageNotFoundError
