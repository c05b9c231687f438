import mercer.kernels as kernels
import mercer.strings as strings
import mercer.testing as testing
import mercer.vectors as vectors
from mercer.base import Kernel
from mercer.base import add, scale, offset, subtract_from, total
from mercer.composite import SumKernel, ScaledKernel, OffsetKernel, MappingKernel, GaussianKernel
from mercer.kernels import LinearKernel, SparseLinearKernel, RbfKernel, SparseRbfKernel, StringKernel

__all__ = [
    "Kernel",
    "add", "scale", "offset", "subtract_from", "total",
    "SumKernel", "ScaledKernel", "OffsetKernel", "MappingKernel", "GaussianKernel",
    "LinearKernel", "SparseLinearKernel", "RbfKernel", "SparseRbfKernel", "StringKernel",
]
