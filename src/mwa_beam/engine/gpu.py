# See the LICENSE file at the top-level directory of this distribution.

"""Helpers to run beam computations on a GPU with cupy."""

import contextlib
import logging

import numpy

try:
    import cupy
except ImportError:
    cupy = None

from ..coords import as_directions
from ..dedup import UniqueMaps
from ..utility import (
    ConfigurationError,
    DeviceError,
    DeviceJonesBuffer,
    Precision,
    StructWrapper,
)

logger = logging.getLogger(__name__)

if cupy is None:
    logger.warning("cupy not available - GPU beam calculations disabled")


def require_cupy() -> None:
    """Raise DeviceError if cupy cannot be used."""
    if cupy is None:
        raise DeviceError("GPU support requires cupy, which is not installed")


def _device_exceptions():
    exceptions = [
        cupy.cuda.memory.OutOfMemoryError,
        cupy.cuda.runtime.CUDARuntimeError,
        cupy.cuda.driver.CUDADriverError,
    ]
    compile_error = getattr(cupy.cuda.compiler, "CompileException", None)
    if compile_error is not None:
        exceptions.append(compile_error)
    return tuple(exceptions)


@contextlib.contextmanager
def device_errors(action: str):
    """Turn cupy failures raised in the block into DeviceError."""
    require_cupy()
    try:
        yield
    except _device_exceptions() as err:
        logger.error("%s failed on the GPU: %s", action, err)
        raise DeviceError(f"{action} failed on the GPU: {err}") from err


def to_device(array, dtype=None):
    """Copy a host array to the current device."""
    with device_errors("Copy to device"):
        return cupy.asarray(numpy.asarray(array, dtype=dtype))


def allocate_jones(
    num_tiles: int, num_freqs: int, num_directions: int, precision: Precision
):
    """Allocate an uninitialised device buffer for Jones matrices."""
    shape = (num_tiles, num_freqs, num_directions, 4)
    with device_errors("Allocation"):
        buffer = cupy.empty(shape, dtype=precision.complex_dtype)
    logger.debug("Allocated %d bytes of device memory", buffer.nbytes)
    return buffer


def check_jones_buffer(d_jones, shape, precision: Precision) -> None:
    """Check that a caller-supplied device buffer can receive results."""
    require_cupy()
    if not isinstance(d_jones, cupy.ndarray):
        raise DeviceError("Jones output buffers must be device arrays")
    if tuple(d_jones.shape) != tuple(shape):
        raise DeviceError(
            f"Jones buffer has shape {d_jones.shape}, expected {shape}"
        )
    if d_jones.dtype != precision.complex_dtype:
        raise DeviceError(
            f"Jones buffer has type {d_jones.dtype}, "
            f"expected {numpy.dtype(precision.complex_dtype)}"
        )


def synchronize() -> None:
    """Wait for queued device work and report any failure."""
    with device_errors("Kernel execution"):
        cupy.cuda.get_current_stream().synchronize()


class GpuBeam(StructWrapper):
    """Base class of beam objects with their unique inputs on a device.

    The tile and frequency maps of the batch the object was prepared for
    are kept on the host and on the device, so that device code can find
    the result of any requested tile and frequency with
    ``jones[tile_map[tile], freq_map[freq], direction]``.
    """

    def __init__(self, maps: UniqueMaps, precision: Precision):
        require_cupy()
        self.precision = precision
        self._maps = maps
        self._device = {
            "tile_map": to_device(maps.tile_map, numpy.int32),
            "freq_map": to_device(maps.freq_map, numpy.int32),
        }
        super().__init__(GpuBeam._release)

    @staticmethod
    def _release(beam) -> None:
        beam._device.clear()

    @property
    def num_unique_tiles(self) -> int:
        """Return the number of distinct tile configurations."""
        return self._maps.num_unique_tiles

    @property
    def num_unique_freqs(self) -> int:
        """Return the number of distinct frequencies."""
        return self._maps.num_unique_freqs

    @property
    def num_coeffs(self) -> int:
        """Return the number of distinct (tile, frequency) pairs."""
        return self._maps.num_unique

    @property
    def tile_map(self) -> numpy.ndarray:
        """Return the host copy of the tile map."""
        self._check_ready()
        return self._maps.tile_map

    @property
    def freq_map(self) -> numpy.ndarray:
        """Return the host copy of the frequency map."""
        self._check_ready()
        return self._maps.freq_map

    @property
    def device_tile_map(self):
        """Return the device copy of the tile map."""
        self._check_ready()
        return self._device["tile_map"]

    @property
    def device_freq_map(self):
        """Return the device copy of the frequency map."""
        self._check_ready()
        return self._device["freq_map"]

    @property
    def maps(self) -> UniqueMaps:
        """Return the maps of the prepared batch."""
        return self._maps

    def _kernel(self, d_az, d_za, **options):
        """Return Jones matrices of shape (num_coeffs, num_directions, 4)."""
        raise NotImplementedError

    def output_shape(self, num_directions: int):
        return (
            self.num_unique_tiles,
            self.num_unique_freqs,
            num_directions,
            4,
        )

    def _launch(self, d_az, d_za, d_jones, **options) -> None:
        with device_errors("Beam kernel launch"):
            jones = self._kernel(d_az, d_za, **options)
            d_jones[...] = jones.reshape(d_jones.shape)
        synchronize()

    def _calc_device(self, d_az, d_za, d_jones=None, **options):
        self._check_ready()
        require_cupy()
        if not (
            isinstance(d_az, cupy.ndarray) and isinstance(d_za, cupy.ndarray)
        ):
            raise DeviceError("Directions must be device arrays")
        if d_az.shape != d_za.shape or d_az.ndim != 1:
            raise ConfigurationError(
                "Device azimuths and zenith angles must be 1D "
                "arrays of equal length"
            )
        shape = self.output_shape(d_az.shape[0])
        if d_jones is None:
            d_jones = allocate_jones(*shape[:3], self.precision)
            self._launch(d_az, d_za, d_jones, **options)
            return DeviceJonesBuffer(d_jones)
        check_jones_buffer(d_jones, shape, self.precision)
        self._launch(d_az, d_za, d_jones, **options)
        return d_jones

    def _upload_directions(self, az_rad, za_rad):
        az, za = as_directions(az_rad, za_rad, self.precision.real_dtype)
        return to_device(az), to_device(za)

    def _calc_host(self, az_rad, za_rad, **options) -> numpy.ndarray:
        self._check_ready()
        d_az, d_za = self._upload_directions(az_rad, za_rad)
        with self._calc_device(d_az, d_za, **options) as buffer:
            return buffer.to_host()
