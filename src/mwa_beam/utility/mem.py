# See the LICENSE file at the top-level directory of this distribution.

"""Module to wrap device-resident Jones matrix buffers."""

import numpy

try:
    import cupy
except ImportError:
    cupy = None

from .error import ConfigurationError, DeviceError
from .precision import Precision
from .struct_wrapper import StructWrapper


class MemLocation:
    """Enumerator to hold memory location."""

    CPU = 0
    GPU = 1


def mem_location(obj) -> int:
    """Return the location of an array, or raise TypeError."""
    if isinstance(obj, numpy.ndarray):
        return MemLocation.CPU
    if cupy and isinstance(obj, cupy.ndarray):
        return MemLocation.GPU
    raise TypeError("Unsupported argument type")


class DeviceJonesBuffer(StructWrapper):
    """Class to hold beam responses left in device memory.

    The wrapped array has shape
    (num_unique_tiles, num_unique_freqs, num_directions, 4), with the
    four Jones matrix elements in the last dimension.

    Ownership of the buffer passes to whoever receives it from a
    ``calc_jones_device`` call; the beam object that filled it keeps no
    reference. Call :meth:`free` once the data is no longer needed.
    """

    def __init__(self, data):
        """Create a new wrapper for a device array.

        :param data: Device array to take ownership of.
        :type data: cupy.ndarray
        """
        if mem_location(data) != MemLocation.GPU:
            raise DeviceError("Jones buffers must be device arrays")
        if data.ndim != 4 or data.shape[-1] != 4:
            raise ConfigurationError(
                "Jones buffers must have shape "
                "(num_tiles, num_freqs, num_directions, 4)"
            )
        self.precision = Precision.from_dtype(data.dtype)
        self._data = data
        super().__init__(DeviceJonesBuffer._release)

    @staticmethod
    def _release(buffer) -> None:
        buffer._data = None

    @property
    def data(self):
        """Return the wrapped device array."""
        self._check_ready()
        return self._data

    @property
    def ptr(self) -> int:
        """Return the raw device pointer of the buffer."""
        return self.data.data.ptr

    @property
    def shape(self):
        """Return the shape of the buffer."""
        return self.data.shape

    @property
    def nbytes(self) -> int:
        """Return the size of the buffer in bytes."""
        return self.data.nbytes

    def to_host(self) -> numpy.ndarray:
        """Copy the buffer contents into a new numpy array."""
        try:
            return cupy.asnumpy(self.data)
        except cupy.cuda.runtime.CUDARuntimeError as err:
            raise DeviceError(f"Copy from device failed: {err}") from err

    def as_floats(self):
        """Return a view of the buffer as interleaved real values.

        Each Jones matrix occupies 8 consecutive reals: (re, im) for
        j00, j01, j10 and j11.
        """
        return self.data.view(self.precision.real_dtype)
