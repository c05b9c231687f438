"""Shared fixtures for tests."""

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp
import jax.random as random
import numpy as np
import pytest
from scipy import sparse

from mercer import (
    GaussianKernel,
    LinearKernel,
    MappingKernel,
    RbfKernel,
    SparseLinearKernel,
    SparseRbfKernel,
    StringKernel,
)

WEIGHTS = [1.0, -0.5, 2.0, 0.25]


def _dense_items():
    key = random.PRNGKey(42)
    return list(random.normal(key, (5, 3)))


def _sparse_items():
    rows = [
        [[1.0, 0.0, 2.0]],
        [[0.0, 3.0, 0.0, 1.0]],
        [[0.5, 0.0]],
        [[0.0, 0.0, 0.0, 0.0, 4.0]],
        [[2.0, 1.0, 0.0, 0.0]],
    ]
    return [sparse.csr_array(np.array(row)) for row in rows]


def _strings():
    return ["abracadabra", "cadabra", "banana", "abba", "bandana"]


def _records():
    return list(zip(_dense_items(), _strings()))


def _mixed_records():
    return list(zip(_dense_items(), _sparse_items()))


def _reused_linear():
    linear = LinearKernel(3)
    return linear + 0.5 * linear


KERNEL_CASES = {
    "linear": (lambda: LinearKernel(3), _dense_items),
    "rbf": (lambda: RbfKernel(2.0, 3), _dense_items),
    "gaussian_of_linear": (lambda: GaussianKernel(2.0, LinearKernel(3)), _dense_items),
    "gaussian_of_sum": (lambda: GaussianKernel(1.5, LinearKernel(3) + RbfKernel(1.0, 3)), _dense_items),
    "sum": (lambda: LinearKernel(3) + RbfKernel(1.0, 3), _dense_items),
    "scaled": (lambda: 0.5 * RbfKernel(1.0, 3), _dense_items),
    "offset": (lambda: LinearKernel(3) + 2.0, _dense_items),
    "reused": (_reused_linear, _dense_items),
    "nested": (lambda: 2 * (LinearKernel(3) + 1.0) + GaussianKernel(1.0, RbfKernel(1.0, 3)), _dense_items),
    "sparse_linear": (lambda: SparseLinearKernel(), _sparse_items),
    "sparse_rbf": (lambda: SparseRbfKernel(3.0), _sparse_items),
    "string": (lambda: StringKernel(), _strings),
    "string_decay": (lambda: StringKernel(decay=0.5), _strings),
    "mapping": (
        lambda: MappingKernel(lambda r: r[1], StringKernel(decay=0.8))
                + MappingKernel(lambda r: r[0], RbfKernel(1.0, 3)),
        _records,
    ),
    "mixed": (
        lambda: MappingKernel(lambda r: r[0], LinearKernel(3)) + MappingKernel(lambda r: r[1], SparseRbfKernel(2.0)),
        _mixed_records,
    ),
}


@pytest.fixture(params=sorted(KERNEL_CASES))
def kernel_case(request):
    """A freshly built kernel together with five items it accepts."""
    factory, items = KERNEL_CASES[request.param]
    return factory(), items()


@pytest.fixture(params=sorted(KERNEL_CASES))
def kernel_factory(request):
    """The factories of a kernel and its items, for tests that build them under a different setup."""
    return KERNEL_CASES[request.param]


@pytest.fixture
def weights():
    return list(WEIGHTS)


@pytest.fixture
def dense_items():
    return _dense_items()


@pytest.fixture
def sparse_items():
    return _sparse_items()


@pytest.fixture
def vector():
    return jnp.array([1.0, 1.0])


@pytest.fixture
def default_precision():
    """Runs a test with JAX's default 32 bit precision instead of the 64 bit mode of this suite."""
    jax.config.update("jax_enable_x64", False)
    try:
        yield
    finally:
        jax.config.update("jax_enable_x64", True)
