import jax
import jax.numpy as jnp


def tree_stack(trees):
    return jax.tree.map(lambda *v: jnp.stack(v), *trees)


def tree_sum(trees):
    "Sum a sequence of identically structured pytrees leaf by leaf, in order."
    return jax.tree.map(lambda a: a.sum(0), tree_stack(trees))
