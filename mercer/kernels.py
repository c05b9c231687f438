from __future__ import annotations

import math
from collections.abc import Hashable
from functools import partial
from typing import Any, Final, NamedTuple, Optional

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from mercer import vectors
from mercer._util import _check_item
from mercer.base import Kernel
from mercer.strings import ExpSumWeightFunction, SubstringIndex, SumWeightFunction, Symbols, WeightFunction
from mercer.vectors import SparseRow


def _check_dimensionality(dimensionality: int):
    if dimensionality < 0:
        raise ValueError(f"Dimensionality must be non-negative. Got {dimensionality}.")


def _check_variance(sigma2: float):
    if sigma2 <= 0:
        raise ValueError(f"The variance must be positive. Got {sigma2}.")


def _gaussian(squared_distance: float, sigma2: float) -> float:
    return math.exp(-squared_distance / (2 * sigma2))


@partial(jax.jit)
def _rbf(x_1: Array, x_2: Array, sigma2: float) -> Array:
    return jnp.exp(-(jnp.dot(x_1, x_1) + jnp.dot(x_2, x_2) - 2 * jnp.dot(x_1, x_2)) / (2 * sigma2))


def _bucket(size: int) -> int:
    return 1 << max(size - 1, 0).bit_length()


@partial(jax.jit)
def _rbf_sum(x: Array, xs: Array, squared_norms: Array, weights: Array, sigma2: float) -> Array:
    squared_distances = jnp.dot(x, x) + squared_norms - 2 * xs @ x
    return jnp.dot(weights, jnp.exp(-squared_distances / (2 * sigma2)))


class LinearKernel(Kernel[Array]):
    """Dot product of dense vectors. All components collapse into a single weighted-sum vector."""

    dimensionality: Final[int]

    def __init__(self, dimensionality: int):
        _check_dimensionality(dimensionality)

        self.dimensionality = dimensionality
        self._accumulator: Optional[Array] = None

    @property
    def has_components(self) -> bool:
        return self._accumulator is not None

    def compute(self, x_1: ArrayLike, x_2: ArrayLike) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        same = x_1 is x_2
        x_1 = vectors.as_dense(x_1, self.dimensionality)

        if same:
            return float(vectors.squared_norm(x_1))

        x_2 = vectors.as_dense(x_2, self.dimensionality)
        return float(vectors.dot(x_1, x_2))

    def compute_sum(self, x: ArrayLike) -> float:
        _check_item(x, "x")
        x = vectors.as_dense(x, self.dimensionality)

        if self._accumulator is None:
            return 0.0

        return float(vectors.dot(x, self._accumulator))

    def add_component(self, weight: float, x: ArrayLike):
        _check_item(x, "x")
        x = vectors.as_dense(x, self.dimensionality)

        if self._accumulator is None:
            self._accumulator = vectors.scale(weight, x)
        else:
            self._accumulator = vectors.add(self._accumulator, vectors.scale(weight, x))

    def clear_components(self):
        self._accumulator = None

    def fork_new(self) -> LinearKernel:
        return LinearKernel(self.dimensionality)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimensionality={self.dimensionality})"


class SparseLinearKernel(Kernel[SparseRow]):
    def __init__(self):
        self._accumulator: Optional[SparseRow] = None

    @property
    def has_components(self) -> bool:
        return self._accumulator is not None

    def compute(self, x_1: SparseRow, x_2: SparseRow) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        same = x_1 is x_2
        x_1 = vectors.as_sparse_row(x_1)

        if same:
            return vectors.sparse_squared_norm(x_1)

        return vectors.sparse_dot(x_1, vectors.as_sparse_row(x_2))

    def compute_sum(self, x: SparseRow) -> float:
        _check_item(x, "x")
        x = vectors.as_sparse_row(x)

        if self._accumulator is None:
            return 0.0

        return vectors.sparse_dot(x, self._accumulator)

    def add_component(self, weight: float, x: SparseRow):
        _check_item(x, "x")
        x = vectors.sparse_scale(weight, vectors.as_sparse_row(x))

        if self._accumulator is None:
            self._accumulator = x
        else:
            self._accumulator = vectors.sparse_add(self._accumulator, x)

    def clear_components(self):
        self._accumulator = None

    def fork_new(self) -> SparseLinearKernel:
        return SparseLinearKernel()


class _Component(NamedTuple):
    weight: float
    x: Any
    squared_norm: float


class RbfKernel(Kernel[Array]):
    """Gaussian RBF kernel for dense vectors.

    k(x_1, x_2) = exp(-||x_1 - x_2||² / (2σ²))

    The Gaussian is not bilinear, so components are kept individually and :meth:`compute_sum`
    evaluates all of them in one vectorized pass.
    """

    sigma2: Final[float]
    dimensionality: Final[int]

    def __init__(self, sigma2: float, dimensionality: int):
        _check_variance(sigma2)
        _check_dimensionality(dimensionality)

        self.sigma2 = sigma2
        self.dimensionality = dimensionality
        self._components: list[_Component] = []
        self._stacked: Optional[tuple[Array, Array, Array]] = None

    @property
    def has_components(self) -> bool:
        return len(self._components) > 0

    def compute(self, x_1: ArrayLike, x_2: ArrayLike) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        x_1 = vectors.as_dense(x_1, self.dimensionality)
        x_2 = vectors.as_dense(x_2, self.dimensionality)

        return float(_rbf(x_1, x_2, self.sigma2))

    def _stack(self) -> tuple[Array, Array, Array]:
        # padded to a power of two with zero weights so `_rbf_sum` compiles once per bucket
        if self._stacked is None:
            padding = _bucket(len(self._components)) - len(self._components)

            xs = jnp.stack([component.x for component in self._components])
            xs = jnp.concatenate([xs, jnp.zeros((padding, self.dimensionality), xs.dtype)])
            squared_norms = jnp.asarray([component.squared_norm for component in self._components]
                                        + [0.0] * padding)
            weights = jnp.asarray([component.weight for component in self._components] + [0.0] * padding)
            self._stacked = xs, squared_norms, weights

        return self._stacked

    def compute_sum(self, x: ArrayLike) -> float:
        _check_item(x, "x")
        x = vectors.as_dense(x, self.dimensionality)

        if not self._components:
            return 0.0

        xs, squared_norms, weights = self._stack()
        return float(_rbf_sum(x, xs, squared_norms, weights, self.sigma2))

    def add_component(self, weight: float, x: ArrayLike):
        _check_item(x, "x")
        x = vectors.as_dense(x, self.dimensionality)

        self._components.append(_Component(weight, x, float(vectors.squared_norm(x))))
        self._stacked = None

    def clear_components(self):
        self._components.clear()
        self._stacked = None

    def fork_new(self) -> RbfKernel:
        return RbfKernel(self.sigma2, self.dimensionality)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(sigma2={self.sigma2}, dimensionality={self.dimensionality})"


class SparseRbfKernel(Kernel[SparseRow]):
    sigma2: Final[float]

    def __init__(self, sigma2: float):
        _check_variance(sigma2)

        self.sigma2 = sigma2
        self._components: list[_Component] = []

    @property
    def has_components(self) -> bool:
        return len(self._components) > 0

    def compute(self, x_1: SparseRow, x_2: SparseRow) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        x_1 = vectors.as_sparse_row(x_1)
        x_2 = vectors.as_sparse_row(x_2)

        squared_distance = (vectors.sparse_squared_norm(x_1) + vectors.sparse_squared_norm(x_2)
                            - 2 * vectors.sparse_dot(x_1, x_2))
        return _gaussian(squared_distance, self.sigma2)

    def compute_sum(self, x: SparseRow) -> float:
        _check_item(x, "x")
        x = vectors.as_sparse_row(x)

        squared_norm = vectors.sparse_squared_norm(x)

        return float(sum(
            component.weight * _gaussian(
                squared_norm + component.squared_norm - 2 * vectors.sparse_dot(x, component.x), self.sigma2
            )
            for component in self._components
        ))

    def add_component(self, weight: float, x: SparseRow):
        _check_item(x, "x")
        x = vectors.as_sparse_row(x)

        self._components.append(_Component(weight, x, vectors.sparse_squared_norm(x)))

    def clear_components(self):
        self._components.clear()

    def fork_new(self) -> SparseRbfKernel:
        return SparseRbfKernel(self.sigma2)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(sigma2={self.sigma2})"


class StringKernel(Kernel[Symbols]):
    """Kernel over all common substrings of two symbol sequences.

    Configured either by a decay ``λ``, weighting substrings of length ``l`` by ``λ^l`` (every
    substring weighs 1 when ``λ`` is 1), or by an arbitrary cumulative :class:`WeightFunction`. With a
    ``sentinel``, sequences are read as sentinel-terminated words and the sentinel itself never matches.
    """

    weight_function: Final[WeightFunction]
    sentinel: Final[Optional[Hashable]]

    def __init__(self, decay: Optional[float] = None, weight_function: Optional[WeightFunction] = None,
                 sentinel: Optional[Hashable] = None):
        if decay is not None and weight_function is not None:
            raise ValueError("Supply either a decay or a weight function, not both.")

        if weight_function is None:
            if decay is None:
                decay = 1.0
            if decay <= 0:
                raise ValueError(f"Decay must be positive. Got {decay}.")

            if abs(decay - 1.0) <= 1e-6:
                weight_function = SumWeightFunction()
            else:
                weight_function = ExpSumWeightFunction(decay)

        self.weight_function = weight_function
        self.sentinel = sentinel
        self._index = SubstringIndex(weight_function, sentinel)

    @property
    def has_components(self) -> bool:
        return self._index.has_any_branch()

    def compute(self, x_1: Symbols, x_2: Symbols) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        index = SubstringIndex(self.weight_function, self.sentinel)
        index.add_word(x_1, 1.0)
        return index.compute_kernel(x_2)

    def compute_sum(self, x: Symbols) -> float:
        _check_item(x, "x")
        return self._index.compute_kernel(x)

    def add_component(self, weight: float, x: Symbols):
        _check_item(x, "x")
        self._index.add_word(x, weight)

    def clear_components(self):
        self._index.clear()

    def fork_new(self) -> StringKernel:
        return StringKernel(weight_function=self.weight_function, sentinel=self.sentinel)

    def __repr__(self) -> str:
        if self.sentinel is None:
            return f"{self.__class__.__name__}(weight_function={self.weight_function!r})"
        return f"{self.__class__.__name__}(weight_function={self.weight_function!r}, sentinel={self.sentinel!r})"
