from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Final, NamedTuple

from mercer._util import _check_config, _check_item
from mercer.base import Kernel
from mercer.kernels import _check_variance, _gaussian

logger = logging.getLogger(__name__)


def _claim[T](kernel: Kernel[T]) -> Kernel[T]:
    """Makes ``kernel`` a sub-kernel of exactly one composite.

    A kernel that already belongs to another composite is replaced by a fork of it, so no two nodes of
    any kernel tree share accumulation state. The fork starts without components.
    """
    if kernel._owned:
        logger.debug("%r already belongs to a composite, forking it", kernel)
        kernel = kernel.fork_new()

    kernel._owned = True
    return kernel


class SumKernel[T](Kernel[T]):
    """Sum of kernels. Components are registered with every summand."""

    def __init__(self, kernels: Iterable[Kernel[T]] = ()):
        _check_config(kernels, "kernels")

        kernels = list(kernels)
        for kernel in kernels:
            _check_config(kernel, "summand")

        self._summands: list[Kernel[T]] = [_claim(kernel) for kernel in kernels]
        self._added = False

    @property
    def summands(self) -> tuple[Kernel[T], ...]:
        return tuple(self._summands)

    @property
    def has_components(self) -> bool:
        return self._added or any(kernel.has_components for kernel in self._summands)

    def compute(self, x_1: T, x_2: T) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        return sum((kernel.compute(x_1, x_2) for kernel in self._summands), 0.0)

    def compute_sum(self, x: T) -> float:
        _check_item(x, "x")

        return sum((kernel.compute_sum(x) for kernel in self._summands), 0.0)

    def add_component(self, weight: float, x: T):
        _check_item(x, "x")

        for kernel in self._summands:
            kernel.add_component(weight, x)
        self._added = True

    def clear_components(self):
        logger.debug("Clearing components of %d summands", len(self._summands))
        self._added = False

        for kernel in self._summands:
            kernel.clear_components()

    def fork_new(self) -> SumKernel[T]:
        return SumKernel([kernel.fork_new() for kernel in self._summands])

    def __repr__(self) -> str:
        summands = ", ".join(repr(kernel) for kernel in self._summands)
        return f"{self.__class__.__name__}([{summands}])"


class ScaledKernel[T](Kernel[T]):
    factor: Final[float]
    kernel: Final[Kernel[T]]

    def __init__(self, factor: float, kernel: Kernel[T]):
        _check_config(kernel, "kernel")

        self.factor = factor
        self.kernel = _claim(kernel)

    @property
    def has_components(self) -> bool:
        return self.kernel.has_components

    def compute(self, x_1: T, x_2: T) -> float:
        return self.factor * self.kernel.compute(x_1, x_2)

    def compute_sum(self, x: T) -> float:
        return self.factor * self.kernel.compute_sum(x)

    def add_component(self, weight: float, x: T):
        # the factor is applied when reading, never to the stored components
        self.kernel.add_component(weight, x)

    def clear_components(self):
        self.kernel.clear_components()

    def fork_new(self) -> ScaledKernel[T]:
        return ScaledKernel(self.factor, self.kernel.fork_new())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(factor={self.factor}, kernel={self.kernel!r})"


class OffsetKernel[T](Kernel[T]):
    """Kernel whose output is the output of ``kernel`` shifted by ``offset``.

    Every component contributes ``offset * weight`` to :meth:`compute_sum`, so the running total of
    these contributions is tracked next to the components of the wrapped kernel.
    """

    offset: Final[float]
    kernel: Final[Kernel[T]]

    def __init__(self, kernel: Kernel[T], offset: float):
        _check_config(kernel, "kernel")

        self.kernel = _claim(kernel)
        self.offset = offset
        self.components_total_offset = 0.0
        self._added = False

    @property
    def has_components(self) -> bool:
        return self._added or self.kernel.has_components

    def compute(self, x_1: T, x_2: T) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        return self.kernel.compute(x_1, x_2) + self.offset

    def compute_sum(self, x: T) -> float:
        _check_item(x, "x")

        return self.kernel.compute_sum(x) + self.components_total_offset

    def add_component(self, weight: float, x: T):
        _check_item(x, "x")

        self.kernel.add_component(weight, x)
        self.components_total_offset += self.offset * weight
        self._added = True

    def clear_components(self):
        self.components_total_offset = 0.0
        self._added = False
        self.kernel.clear_components()

    def fork_new(self) -> OffsetKernel[T]:
        return OffsetKernel(self.kernel.fork_new(), self.offset)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kernel={self.kernel!r}, offset={self.offset})"


class MappingKernel[T, S](Kernel[T]):
    """Kernel over ``T`` that maps its arguments to ``S`` and delegates to a kernel over ``S``.

    Together with sums and scaling this builds kernels for records made of fields of different types,
    e.g. ``MappingKernel(lambda r: r.name, StringKernel()) + MappingKernel(lambda r: r.x, RbfKernel(1, 3))``.
    The mapping must be free of side effects.
    """

    mapping: Final[Callable[[T], S]]
    kernel: Final[Kernel[S]]

    def __init__(self, mapping: Callable[[T], S], kernel: Kernel[S]):
        _check_config(mapping, "mapping")
        _check_config(kernel, "kernel")

        self.mapping = mapping
        self.kernel = _claim(kernel)

    @property
    def has_components(self) -> bool:
        return self.kernel.has_components

    def compute(self, x_1: T, x_2: T) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        return self.kernel.compute(self.mapping(x_1), self.mapping(x_2))

    def compute_sum(self, x: T) -> float:
        _check_item(x, "x")

        return self.kernel.compute_sum(self.mapping(x))

    def add_component(self, weight: float, x: T):
        _check_item(x, "x")

        self.kernel.add_component(weight, self.mapping(x))

    def clear_components(self):
        self.kernel.clear_components()

    def fork_new(self) -> MappingKernel[T, S]:
        return MappingKernel(self.mapping, self.kernel.fork_new())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mapping={self.mapping!r}, kernel={self.kernel!r})"


class _GaussianComponent(NamedTuple):
    weight: float
    x: Any
    inner_kernel: Kernel
    inner_squared_norm: float


class GaussianKernel[T](Kernel[T]):
    """Gaussian kernel over the distance induced by an arbitrary inner kernel.

    k(x_1, x_2) = exp(-(K(x_1, x_1) + K(x_2, x_2) - 2 K(x_1, x_2)) / (2σ²))

    With :class:`~mercer.kernels.LinearKernel` as ``K`` this is the ordinary RBF kernel. Each component
    owns a fork of the inner kernel holding the component's item, so the cross term against a query
    is evaluated with the inner kernel's own accumulation.
    """

    sigma2: Final[float]
    inner_kernel: Final[Kernel[T]]

    def __init__(self, sigma2: float, inner_kernel: Kernel[T]):
        _check_variance(sigma2)
        _check_config(inner_kernel, "inner_kernel")

        self.sigma2 = sigma2
        self.inner_kernel = _claim(inner_kernel)
        self._components: list[_GaussianComponent] = []

    @property
    def has_components(self) -> bool:
        return len(self._components) > 0

    def compute(self, x_1: T, x_2: T) -> float:
        _check_item(x_1, "x_1")
        _check_item(x_2, "x_2")

        return _gaussian(
            self.inner_kernel.compute(x_1, x_1)
            + self.inner_kernel.compute(x_2, x_2)
            - 2 * self.inner_kernel.compute(x_1, x_2),
            self.sigma2,
        )

    def compute_sum(self, x: T) -> float:
        _check_item(x, "x")

        if not self._components:
            return 0.0

        inner_squared_norm = self.inner_kernel.compute(x, x)

        return sum(
            (
                component.weight * _gaussian(
                    inner_squared_norm + component.inner_squared_norm - 2 * component.inner_kernel.compute_sum(x),
                    self.sigma2,
                )
                for component in self._components
            ),
            0.0,
        )

    def add_component(self, weight: float, x: T):
        _check_item(x, "x")

        inner_kernel = self.inner_kernel.fork_new()
        inner_kernel.add_component(1.0, x)

        logger.debug("Forked %r for component %d", inner_kernel, len(self._components))

        self._components.append(
            _GaussianComponent(weight, x, inner_kernel, self.inner_kernel.compute(x, x))
        )

    def clear_components(self):
        logger.debug("Dropping %d inner kernel forks", len(self._components))
        self._components.clear()

    def fork_new(self) -> GaussianKernel[T]:
        return GaussianKernel(self.sigma2, self.inner_kernel.fork_new())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(sigma2={self.sigma2}, inner_kernel={self.inner_kernel!r})"
