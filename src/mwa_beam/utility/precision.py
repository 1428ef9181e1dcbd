# See the LICENSE file at the top-level directory of this distribution.

"""Floating-point precision used by the beam kernels."""

import enum

import numpy


class Precision(enum.Enum):
    """Enumerator to hold the precision of beam calculations."""

    SINGLE = 4
    DOUBLE = 8

    @property
    def real_dtype(self):
        """Return the real data type for this precision."""
        if self is Precision.SINGLE:
            return numpy.float32
        return numpy.float64

    @property
    def complex_dtype(self):
        """Return the complex data type for this precision."""
        if self is Precision.SINGLE:
            return numpy.complex64
        return numpy.complex128

    @classmethod
    def from_dtype(cls, dtype) -> "Precision":
        """Return the precision matching a (real or complex) data type."""
        dtype = numpy.dtype(dtype)
        if dtype in (numpy.float32, numpy.complex64):
            return cls.SINGLE
        if dtype in (numpy.float64, numpy.complex128):
            return cls.DOUBLE
        raise TypeError(f"Unsupported data type {dtype}")
