from __future__ import annotations

from functools import partial

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike
from scipy import sparse

type SparseRow = sparse.csr_array


@partial(jax.jit)
def dot(x_1: Array, x_2: Array) -> Array:
    return jnp.dot(x_1, x_2)


@partial(jax.jit)
def squared_norm(x: Array) -> Array:
    return jnp.dot(x, x)


@partial(jax.jit)
def scale(weight: ArrayLike, x: Array) -> Array:
    return weight * x


@partial(jax.jit)
def add(x_1: Array, x_2: Array) -> Array:
    return x_1 + x_2


def length(x: Array) -> int:
    return x.shape[0]


def as_dense(x: ArrayLike, dimensionality: int) -> Array:
    x = jnp.asarray(x)

    if x.ndim != 1 or length(x) != dimensionality:
        raise ValueError(f"The supplied vector is not compatible with the kernel's dimensionality "
                         f"{dimensionality}. Got shape {x.shape}.")

    return x


def as_sparse_row(x) -> SparseRow:
    if not sparse.issparse(x):
        raise ValueError(f"Expected a scipy sparse vector. Got {type(x).__name__}.")

    if x.ndim == 1:
        x = sparse.coo_array(x).reshape((1, x.shape[0]))

    row = sparse.csr_array(x)

    if row.shape[0] != 1:
        raise ValueError(f"Expected a sparse row vector of shape (1, n). Got shape {row.shape}.")

    return row


def _pad(x: SparseRow, width: int) -> SparseRow:
    if x.shape[1] == width:
        return x

    return sparse.csr_array(sparse.hstack([x, sparse.csr_array((1, width - x.shape[1]))]))


def _aligned(x_1: SparseRow, x_2: SparseRow) -> tuple[SparseRow, SparseRow]:
    width = max(x_1.shape[1], x_2.shape[1])
    return _pad(x_1, width), _pad(x_2, width)


def sparse_dot(x_1: SparseRow, x_2: SparseRow) -> float:
    x_1, x_2 = _aligned(x_1, x_2)
    return float(x_1.multiply(x_2).sum())


def sparse_squared_norm(x: SparseRow) -> float:
    return float(x.multiply(x).sum())


def sparse_scale(weight: float, x: SparseRow) -> SparseRow:
    return sparse.csr_array(x * weight)


def sparse_add(x_1: SparseRow, x_2: SparseRow) -> SparseRow:
    x_1, x_2 = _aligned(x_1, x_2)
    return sparse.csr_array(x_1 + x_2)
