from __future__ import annotations

from collections.abc import Sequence

import jax.numpy as jnp
from jax import Array

from mercer.base import Kernel


def representer_sum[T](kernel: Kernel[T], x: T, weights: Sequence[float], xs: Sequence[T]) -> float:
    """Representer Theorem sum evaluated one kernel call at a time, without any accumulation."""
    if len(weights) != len(xs):
        raise ValueError(f"Expected one weight per item. Got {len(weights)} weights and {len(xs)} items.")

    return sum((weight * kernel.compute(x, x_i) for weight, x_i in zip(weights, xs)), 0.0)


def gram[T](kernel: Kernel[T], xs: Sequence[T], xs_2: Sequence[T] | None = None) -> Array:
    if xs_2 is None:
        xs_2 = xs

    return jnp.asarray([[kernel.compute(x_1, x_2) for x_2 in xs_2] for x_1 in xs])


def is_symmetric[T](kernel: Kernel[T], xs: Sequence[T], atol: float = 1e-8) -> bool:
    matrix = gram(kernel, xs)
    return bool(jnp.allclose(matrix, matrix.T, atol=atol))


def is_positive_semidefinite[T](kernel: Kernel[T], xs: Sequence[T], atol: float = 1e-8) -> bool:
    matrix = gram(kernel, xs)

    if not jnp.allclose(matrix, matrix.T, atol=atol):
        return False

    eigenvalues = jnp.linalg.eigvalsh(matrix)
    return bool(jnp.all(eigenvalues >= -atol))


def accumulates_exactly[T](
        kernel: Kernel[T], x: T, weights: Sequence[float], xs: Sequence[T], rtol: float = 1e-6, atol: float = 1e-8
) -> bool:
    """Checks ``compute_sum`` on a fresh fork of ``kernel`` against :func:`representer_sum`."""
    fork = kernel.fork_new()

    for weight, x_i in zip(weights, xs):
        fork.add_component(weight, x_i)

    return bool(jnp.isclose(fork.compute_sum(x), representer_sum(kernel, x, weights, xs), rtol=rtol, atol=atol))
