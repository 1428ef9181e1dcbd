# See the LICENSE file at the top-level directory of this distribution.

"""C-style functions for the analytic beam.

Conventions are those of :mod:`mwa_beam.ffi.fee`.
"""

import numpy

from ..analytic import AnalyticBeam, AnalyticBeamGpu
from ..utility import MissingParameterError, Precision, error_checking
from .common import (
    calc_device,
    directions,
    flag,
    get_object,
    num_unique,
    optional_double,
    release_object,
    set_out_handle,
    tile_arrays,
    write_jones,
    write_map,
)


@error_checking
def new_analytic_beam(analytic_type, dipole_height_m, analytic_beam):
    """Create a new analytic beam.

    :param analytic_type: 0 for the mwa_pb flavour, 1 for the RTS one.
    :param dipole_height_m: Dipole height in metres, or None for the
        default of the flavour.
    :param analytic_beam: ``ctypes.c_void_p`` receiving the handle, which
        must be released with :func:`free_analytic_beam`.
    """
    height = optional_double(dipole_height_m)
    set_out_handle(analytic_beam, AnalyticBeam(analytic_type, height))


@error_checking
def free_analytic_beam(analytic_beam):
    """Release an analytic beam."""
    release_object(analytic_beam, AnalyticBeam)


@error_checking
def analytic_calc_jones(
    analytic_beam,
    az_rad,
    za_rad,
    freq_hz,
    delays,
    amps,
    num_amps,
    latitude_rad,
    norm_to_zenith,
    jones,
):
    """Get the Jones matrix of one tile in one direction.

    ``jones`` must hold at least 8 float64 values.
    """
    beam = get_object(analytic_beam, AnalyticBeam)
    delays, amps = tile_arrays(delays, amps, 1, num_amps)
    result = beam.calc_jones(
        az_rad,
        za_rad,
        freq_hz,
        delays[0],
        amps[0],
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        latitude_rad=optional_double(latitude_rad),
    )
    write_jones(jones, result)


@error_checking
def analytic_calc_jones_array(
    analytic_beam,
    num_azza,
    az_rad,
    za_rad,
    freq_hz,
    delays,
    amps,
    num_amps,
    latitude_rad,
    norm_to_zenith,
    jones,
    num_threads=0,
):
    """Get the Jones matrices of one tile for several directions.

    ``jones`` must hold at least ``8 * num_azza`` float64 values.
    """
    beam = get_object(analytic_beam, AnalyticBeam)
    az, za = directions(num_azza, az_rad, za_rad)
    delays, amps = tile_arrays(delays, amps, 1, num_amps)
    result = beam.calc_jones_array(
        az,
        za,
        freq_hz,
        delays[0],
        amps[0],
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        latitude_rad=optional_double(latitude_rad),
        num_threads=num_threads,
    )
    write_jones(jones, result)


@error_checking
def new_gpu_analytic_beam(
    analytic_beam,
    freqs_hz,
    delays,
    amps,
    num_freqs,
    num_tiles,
    num_amps,
    norm_to_zenith,
    gpu_analytic_beam,
    precision=Precision.DOUBLE,
):
    """Prepare an analytic beam for GPU calculations on a batch.

    :param gpu_analytic_beam: ``ctypes.c_void_p`` receiving the handle,
        which must be released with :func:`free_gpu_analytic_beam`.
    """
    beam = get_object(analytic_beam, AnalyticBeam)
    delays, amps = tile_arrays(delays, amps, num_tiles, num_amps)
    gpu_beam = beam.gpu_prepare(
        numpy.ravel(freqs_hz)[:num_freqs],
        delays,
        amps,
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        precision=precision,
    )
    set_out_handle(gpu_analytic_beam, gpu_beam)


@error_checking
def analytic_calc_jones_gpu(
    gpu_analytic_beam, num_azza, az_rad, za_rad, latitude_rad, jones
):
    """Get Jones matrices from the GPU, copied into host memory."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    az, za = directions(num_azza, az_rad, za_rad)
    result = gpu_beam.calc_jones(
        az, za, latitude_rad=optional_double(latitude_rad)
    )
    write_jones(jones, result)


@error_checking
def analytic_calc_jones_gpu_device(
    gpu_analytic_beam, num_azza, az_rad, za_rad, latitude_rad, d_jones
):
    """Get Jones matrices left in device memory.

    ``d_jones`` is handled as by
    :func:`mwa_beam.ffi.fee.fee_calc_jones_gpu_device`.
    """
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    az, za = directions(num_azza, az_rad, za_rad)
    latitude = optional_double(latitude_rad)
    calc_device(
        gpu_beam,
        lambda out: gpu_beam.calc_jones_device(
            az, za, latitude_rad=latitude, d_jones=out
        ),
        d_jones,
        num_azza,
    )


@error_checking
def analytic_calc_jones_gpu_device_inner(
    gpu_analytic_beam, num_azza, d_az_rad, d_za_rad, latitude_rad, d_jones
):
    """As :func:`analytic_calc_jones_gpu_device`, with directions on the device."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    latitude = optional_double(latitude_rad)
    calc_device(
        gpu_beam,
        lambda out: gpu_beam.calc_jones_device_inner(
            d_az_rad[:num_azza],
            d_za_rad[:num_azza],
            latitude_rad=latitude,
            d_jones=out,
        ),
        d_jones,
        num_azza,
    )


@error_checking
def get_analytic_tile_map(gpu_analytic_beam, tile_map):
    """Copy the tile map into an int32 array with one entry per tile."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    write_map(tile_map, gpu_beam.tile_map)


@error_checking
def get_analytic_freq_map(gpu_analytic_beam, freq_map):
    """Copy the frequency map into an int32 array with one entry per frequency."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    write_map(freq_map, gpu_beam.freq_map)


@error_checking
def get_analytic_device_tile_map(gpu_analytic_beam, d_tile_map):
    """Store the device pointer of the tile map in a ``ctypes.c_void_p``."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    if d_tile_map is None:
        raise MissingParameterError("No out-parameter given for the map")
    d_tile_map.value = gpu_beam.device_tile_map.data.ptr


@error_checking
def get_analytic_device_freq_map(gpu_analytic_beam, d_freq_map):
    """Store the device pointer of the frequency map in a ``ctypes.c_void_p``."""
    gpu_beam = get_object(gpu_analytic_beam, AnalyticBeamGpu)
    if d_freq_map is None:
        raise MissingParameterError("No out-parameter given for the map")
    d_freq_map.value = gpu_beam.device_freq_map.data.ptr


def get_num_unique_analytic_tiles(gpu_analytic_beam) -> int:
    """Return the number of unique tiles of a GPU beam, or -1 on error."""
    return num_unique(gpu_analytic_beam, "num_unique_tiles", AnalyticBeamGpu)


def get_num_unique_analytic_freqs(gpu_analytic_beam) -> int:
    """Return the number of unique frequencies of a GPU beam, or -1 on error."""
    return num_unique(gpu_analytic_beam, "num_unique_freqs", AnalyticBeamGpu)


@error_checking
def free_gpu_analytic_beam(gpu_analytic_beam):
    """Release a GPU analytic beam and its device memory."""
    release_object(gpu_analytic_beam, AnalyticBeamGpu)
