# See the LICENSE file at the top-level directory of this distribution.

"""Shared state and argument handling of the C-style API.

Beam objects are exposed to callers as opaque integer handles. Functions
that create objects take a ``ctypes.c_void_p`` out-parameter whose
``value`` is set to the new handle; every other function takes the
handle (or the ``c_void_p`` holding it) as its first argument.
"""

import ctypes

import numpy

try:
    import cupy
except ImportError:
    cupy = None

from ..engine.gpu import GpuBeam
from ..tile import check_amps
from ..utility import (
    ConfigurationError,
    DeviceError,
    DeviceJonesBuffer,
    HandleRegistry,
    MissingParameterError,
    error_checking,
    error_sentinel,
)

REGISTRY = HandleRegistry()


def handle_value(handle):
    """Return the integer handle held by an int or a ctypes pointer."""
    if isinstance(handle, ctypes.c_void_p):
        return handle.value
    return handle


def set_out_handle(out, obj) -> None:
    """Register an object and store its handle in an out-parameter."""
    if out is None:
        raise MissingParameterError("No out-parameter given for the handle")
    out.value = REGISTRY.register(obj)


def get_object(handle, *types):
    """Return the live object behind a handle."""
    return REGISTRY.get(handle_value(handle), types)


def release_object(handle, *types) -> None:
    """Free the object behind a handle."""
    REGISTRY.release(handle_value(handle), types)


def flag(value, name: str) -> bool:
    """Convert a 0 or 1 flag to a bool."""
    if value in (0, 1, False, True):
        return bool(value)
    raise ConfigurationError(f"A value other than 0 or 1 was used for {name}")


def optional_double(value):
    """Return the float held by a value or ctypes.c_double, or None if null."""
    if value is None:
        return None
    if isinstance(value, ctypes.c_double):
        return value.value
    return float(value)


def tile_arrays(delays, amps, num_tiles: int, num_amps: int):
    """Reshape flat per-tile delays and gains into 2D arrays."""
    check_amps(num_amps)
    delays = numpy.ravel(delays)
    amps = numpy.ravel(amps)
    if delays.size < 16 * num_tiles or amps.size < num_amps * num_tiles:
        raise ConfigurationError(
            f"Delays and amps do not hold data for {num_tiles} tiles"
        )
    return (
        delays[: 16 * num_tiles].reshape(num_tiles, 16),
        amps[: num_amps * num_tiles].reshape(num_tiles, num_amps),
    )


def directions(num_azza: int, az_rad, za_rad):
    """Return the first ``num_azza`` azimuths and zenith angles."""
    az = numpy.ravel(az_rad)
    za = numpy.ravel(za_rad)
    if az.size < num_azza or za.size < num_azza:
        raise ConfigurationError(
            f"Fewer than {num_azza} directions were given"
        )
    return az[:num_azza], za[:num_azza]


def write_jones(jones_out, jones) -> None:
    """Copy complex Jones matrices into a flat real output buffer."""
    if jones_out is None:
        raise MissingParameterError("No output buffer given")
    flat = jones_out.reshape(-1)
    values = numpy.ascontiguousarray(jones).view(jones.real.dtype).reshape(-1)
    if flat.size < values.size:
        raise ConfigurationError(
            f"Output buffer holds {flat.size} values, {values.size} needed"
        )
    flat[: values.size] = values


def write_map(map_out, values) -> None:
    """Copy a tile or frequency map into a caller-supplied array."""
    if map_out is None:
        raise MissingParameterError("No output array given for the map")
    if len(map_out) < len(values):
        raise ConfigurationError(
            f"Map output holds {len(map_out)} entries, {len(values)} needed"
        )
    map_out[: len(values)] = values


def calc_device(gpu_beam: GpuBeam, calc, d_jones, num_azza: int) -> None:
    """Run a device calculation, allocating or filling the output.

    If ``d_jones`` is a ``ctypes.c_void_p``, a new device buffer is
    allocated and its handle stored in it; the caller must release it
    with ``free_device_buffer``. Otherwise ``d_jones`` must be a flat
    real, or complex, device array large enough for the results.
    """
    if d_jones is None:
        raise MissingParameterError("No device output buffer given")
    if isinstance(d_jones, ctypes.c_void_p):
        set_out_handle(d_jones, calc(None))
        return
    if cupy is None or not isinstance(d_jones, cupy.ndarray):
        raise DeviceError("Device output buffers must be device arrays")
    shape = gpu_beam.output_shape(num_azza)
    cplx = gpu_beam.precision.complex_dtype
    if d_jones.dtype != cplx:
        d_jones = d_jones.view(cplx)
    size = int(numpy.prod(shape))
    if d_jones.size < size:
        raise DeviceError(
            f"Device buffer holds {d_jones.size} elements, {size} needed"
        )
    calc(d_jones.reshape(-1)[:size].reshape(shape))


@error_checking
def free_device_buffer(d_jones):
    """Release a device buffer returned by a device calculation."""
    release_object(d_jones, DeviceJonesBuffer)


@error_sentinel(-1)
def num_unique(gpu_beam, attribute: str, *types) -> int:
    """Return a unique count of a GPU beam, or -1 on error."""
    return getattr(get_object(gpu_beam, *types), attribute)


def get_num_unique_tiles(gpu_beam) -> int:
    """Return the number of unique tiles of any GPU beam, or -1."""
    return num_unique(gpu_beam, "num_unique_tiles", GpuBeam)


def get_num_unique_freqs(gpu_beam) -> int:
    """Return the number of unique frequencies of any GPU beam, or -1."""
    return num_unique(gpu_beam, "num_unique_freqs", GpuBeam)
