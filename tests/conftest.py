import jax
import numpy as np
from pytest import fixture

from bdlik.observation import ContinuousTimeObservation, DiscreteTimeUnequalObservation

jax.config.update("jax_enable_x64", True)


@fixture(params=[0, 1, 2])
def rng(request):
    return np.random.default_rng(request.param)


@fixture
def eta():
    return np.array([0.5, 0.3])


@fixture
def simulate():
    "Gillespie simulation of a linear birth-death path on [0, T]."

    def f(rng, n0, lam, mu, T):
        times = [0.0]
        states = [n0]
        t = 0.0
        n = n0
        while n > 0:
            t += rng.exponential(1.0 / (n * (lam + mu)))
            if t > T:
                break
            n += 1 if rng.uniform() < lam / (lam + mu) else -1
            times.append(t)
            states.append(n)
        return np.array(times), np.array(states)

    return f


@fixture
def continuous_from_path():
    def f(times, states, T):
        dn = np.diff(states)
        dt = np.diff(np.append(times, T))
        return ContinuousTimeObservation(
            sum_log_n=float(np.log(states[:-1]).sum()),
            tot_births=int((dn > 0).sum()),
            tot_deaths=int((dn < 0).sum()),
            integrated_jump=float((states * dt).sum()),
        )

    return f


@fixture
def discretize():
    "Observe a path at the given times."

    def f(times, states, obs_times):
        k = np.searchsorted(times, obs_times, "right") - 1
        return DiscreteTimeUnequalObservation(
            state=states[k], waiting_time=np.diff(obs_times)
        )

    return f


@fixture
def unequal_obs(rng):
    def f(S=20, n0=8):
        steps = rng.integers(-2, 3, size=S)
        state = np.maximum(n0 + np.cumsum(np.insert(steps, 0, 0)), 1)
        waiting_time = rng.uniform(0.1, 1.0, size=S)
        return DiscreteTimeUnequalObservation(state=state, waiting_time=waiting_time)

    return f
