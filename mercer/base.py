from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from numbers import Real
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mercer.composite import SumKernel, ScaledKernel, OffsetKernel


class Kernel[T](ABC):
    """A Mercer kernel over items of type ``T``.

    Besides evaluating ``k(x_1, x_2)``, every kernel accumulates weighted components so that the
    Representer Theorem expansion ``sum_i w_i k(x, x_i)`` can be evaluated by :meth:`compute_sum`
    without calling :meth:`compute` once per component where the kernel's structure allows it.
    """

    _owned: bool = False

    @property
    @abstractmethod
    def has_components(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def compute(self, x_1: T, x_2: T) -> float:
        raise NotImplementedError

    @abstractmethod
    def compute_sum(self, x: T) -> float:
        """Weighted sum of the kernel between ``x`` and every component. Zero without components."""
        raise NotImplementedError

    @abstractmethod
    def add_component(self, weight: float, x: T) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_components(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def fork_new(self) -> Kernel[T]:
        """Kernel with the same configuration as this one but without any components."""
        raise NotImplementedError

    def __call__(self, x_1: T, x_2: T) -> float:
        return self.compute(x_1, x_2)

    def __add__(self, other: Kernel[T] | Real) -> Kernel[T]:
        if isinstance(other, Kernel):
            return add(self, other)
        if isinstance(other, Real):
            return offset(self, float(other))
        return NotImplemented

    def __radd__(self, other: Real) -> Kernel[T]:
        if isinstance(other, Real):
            return offset(self, float(other))
        return NotImplemented

    def __sub__(self, other: Real) -> Kernel[T]:
        if isinstance(other, Real):
            return offset(self, -float(other))
        return NotImplemented

    def __rsub__(self, other: Real) -> Kernel[T]:
        if isinstance(other, Real):
            return subtract_from(float(other), self)
        return NotImplemented

    def __mul__(self, other: Real) -> Kernel[T]:
        if isinstance(other, Real):
            return scale(float(other), self)
        return NotImplemented

    def __rmul__(self, other: Real) -> Kernel[T]:
        return self.__mul__(other)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def add[T](kernel_1: Kernel[T], kernel_2: Kernel[T]) -> SumKernel[T]:
    """Sum of two kernels, splicing the summands of a :class:`SumKernel` operand.

    Like every composite, the result owns its sub-kernels: a kernel already used in another composite
    (including the summands of a spliced sum) enters as a fresh fork, without components.
    """
    from mercer.composite import SumKernel

    if kernel_1 is None or kernel_2 is None:
        raise ValueError("Cannot sum a kernel with None.")

    summands = []
    for kernel in (kernel_1, kernel_2):
        if isinstance(kernel, SumKernel):
            summands.extend(kernel.summands)
        else:
            summands.append(kernel)

    return SumKernel(summands)


def total[T](kernels: Iterable[Kernel[T]]) -> SumKernel[T]:
    from mercer.composite import SumKernel

    if kernels is None:
        raise ValueError("Expected an iterable of kernels. Got None.")

    return SumKernel(kernels)


def scale[T](factor: float, kernel: Kernel[T]) -> ScaledKernel[T]:
    from mercer.composite import ScaledKernel

    if isinstance(kernel, ScaledKernel):
        return ScaledKernel(factor * kernel.factor, kernel.kernel)

    return ScaledKernel(factor, kernel)


def offset[T](kernel: Kernel[T], value: float) -> OffsetKernel[T]:
    from mercer.composite import OffsetKernel

    if isinstance(kernel, OffsetKernel):
        return OffsetKernel(kernel.kernel, kernel.offset + value)

    return OffsetKernel(kernel, value)


def subtract_from[T](value: float, kernel: Kernel[T]) -> OffsetKernel[T]:
    """Kernel computing ``value - kernel(x_1, x_2)``.

    The base kernel enters negated, so the result is generally not positive semidefinite.
    """
    from mercer.composite import OffsetKernel

    if isinstance(kernel, OffsetKernel):
        return OffsetKernel(scale(-1.0, kernel.kernel), value - kernel.offset)

    return OffsetKernel(scale(-1.0, kernel), value)
