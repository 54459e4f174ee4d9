import jax.numpy as jnp
import numpy as np
import pytest

from bdlik.aggregate import (
    Transitions,
    concat_transitions,
    pool_sufficient_statistics,
    split_collection,
    transitions,
)
from bdlik.errors import DomainError, ShapeMismatchError
from bdlik.observation import (
    ContinuousTimeObservation,
    DiscreteTimeEqualObservation,
    DiscreteTimeUnequalObservation,
)
from bdlik.params import BirthDeathRates


def test_transitions_equal_replicate_major():
    state = np.array([[1, 10], [2, 11], [3, 12]])
    x = DiscreteTimeEqualObservation(state=state, step_size=0.5, n=2)
    tr = transitions(x)
    np.testing.assert_array_equal(tr.i, [1, 2, 10, 11])
    np.testing.assert_array_equal(tr.j, [2, 3, 11, 12])
    np.testing.assert_array_equal(tr.t, [0.5] * 4)
    assert x.num_transitions == tr.size == 4


def test_transitions_unequal():
    x = DiscreteTimeUnequalObservation(
        state=np.array([4, 5, 3]), waiting_time=np.array([0.2, 1.5])
    )
    tr = transitions(x)
    np.testing.assert_array_equal(tr.i, [4, 5])
    np.testing.assert_array_equal(tr.j, [5, 3])
    np.testing.assert_array_equal(tr.t, [0.2, 1.5])
    assert x.num_transitions == 2


def test_transitions_rejects_3d():
    x = DiscreteTimeEqualObservation(state=np.ones((2, 2, 2)), step_size=1.0, n=2)
    with pytest.raises(ShapeMismatchError):
        transitions(x)


def test_concat_transitions():
    a = Transitions(i=np.array([1]), j=np.array([2]), t=np.array([0.1]))
    b = Transitions(i=np.array([3, 4]), j=np.array([5, 6]), t=np.array([0.2, 0.3]))
    c = concat_transitions([a, b])
    np.testing.assert_array_equal(c.i, [1, 3, 4])
    np.testing.assert_array_equal(c.t, [0.1, 0.2, 0.3])
    assert concat_transitions([]).size == 0


def test_pool_sufficient_statistics():
    xs = [
        ContinuousTimeObservation(1.0, 2, 3, 4.0),
        ContinuousTimeObservation(0.5, 1, 0, 2.5),
    ]
    pooled = pool_sufficient_statistics(xs)
    np.testing.assert_allclose(jnp.array(pooled), [1.5, 3, 3, 6.5])
    assert pooled.num_events == 6


def test_pool_rejects_negative():
    with pytest.raises(DomainError):
        pool_sufficient_statistics([ContinuousTimeObservation(1.0, 2, 3, -4.0)])


def test_split_collection():
    c = ContinuousTimeObservation(1.0, 2, 3, 4.0)
    d = DiscreteTimeUnequalObservation(
        state=np.array([4, 5, 3]), waiting_time=np.array([0.2, 1.5])
    )
    stats, tr = split_collection([c, [d, c], d])
    np.testing.assert_allclose(jnp.array(stats), [2.0, 4, 6, 8.0])
    np.testing.assert_array_equal(tr.i, [4, 5, 4, 5])
    stats, tr = split_collection([d])
    assert stats is None
    stats, tr = split_collection([c])
    assert tr is None


def test_rates_from_eta():
    r = BirthDeathRates.from_eta([1, 2])
    assert jnp.issubdtype(r.dtype, jnp.floating)
    np.testing.assert_allclose(r.eta, [1.0, 2.0])
    np.testing.assert_allclose(BirthDeathRates.from_eta(r).eta, r.eta)
    r32 = BirthDeathRates.from_eta(np.array([0.1, 0.2], dtype=np.float32))
    assert r32.dtype == jnp.float32
