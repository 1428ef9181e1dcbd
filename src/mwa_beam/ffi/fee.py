# See the LICENSE file at the top-level directory of this distribution.

"""C-style functions for the FEE beam.

Every function returns 0 on success or a non-zero error code, in which
case the error message can be read with ``last_error_length`` and
``last_error_message``. Jones matrices are written as 8 reals each:
(re, im) for j00, j01, j10 and j11.
"""

import os

import numpy

from ..fee import FEEBeam, FEEBeamGpu
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
def new_fee_beam(hdf5_file, fee_beam):
    """Create a new MWA FEE beam.

    :param hdf5_file: Path of the MWA FEE beam file (str or bytes).
    :param fee_beam: ``ctypes.c_void_p`` receiving the handle, which must
        be released with :func:`free_fee_beam`.
    """
    if hdf5_file is None:
        raise MissingParameterError("No beam file path given")
    set_out_handle(fee_beam, FEEBeam.from_file(os.fsdecode(hdf5_file)))


@error_checking
def new_fee_beam_from_env(fee_beam):
    """Create a new MWA FEE beam from the file named by MWA_BEAM_FILE."""
    set_out_handle(fee_beam, FEEBeam.from_env())


@error_checking
def free_fee_beam(fee_beam):
    """Release an FEE beam."""
    release_object(fee_beam, FEEBeam)


@error_checking
def fee_calc_jones(
    fee_beam,
    az_rad,
    za_rad,
    freq_hz,
    delays,
    amps,
    num_amps,
    norm_to_zenith,
    parallactic,
    latitude_rad,
    iau_order,
    jones,
):
    """Get the Jones matrix of one tile in one direction.

    :param delays: The 16 dipole delays of the tile.
    :param amps: The 16 or 32 dipole gains of the tile.
    :param num_amps: Number of gains in ``amps``.
    :param norm_to_zenith: 1 to normalise to the zenith response.
    :param parallactic: 1 to apply parallactic-angle correction.
    :param latitude_rad: Array latitude, or None.
    :param iau_order: 1 to reverse the element order after correction.
    :param jones: float64 array of at least 8 values receiving the result.
    """
    beam = get_object(fee_beam, FEEBeam)
    delays, amps = tile_arrays(delays, amps, 1, num_amps)
    result = beam.calc_jones(
        az_rad,
        za_rad,
        freq_hz,
        delays[0],
        amps[0],
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        parallactic=flag(parallactic, "parallactic"),
        latitude_rad=optional_double(latitude_rad),
        iau_order=flag(iau_order, "iau_order"),
    )
    write_jones(jones, result)


@error_checking
def fee_calc_jones_array(
    fee_beam,
    num_azza,
    az_rad,
    za_rad,
    freq_hz,
    delays,
    amps,
    num_amps,
    norm_to_zenith,
    parallactic,
    latitude_rad,
    iau_order,
    jones,
    num_threads=0,
):
    """Get the Jones matrices of one tile for several directions.

    ``jones`` must hold at least ``8 * num_azza`` float64 values.
    The other parameters are as for :func:`fee_calc_jones`.
    """
    beam = get_object(fee_beam, FEEBeam)
    az, za = directions(num_azza, az_rad, za_rad)
    delays, amps = tile_arrays(delays, amps, 1, num_amps)
    result = beam.calc_jones_array(
        az,
        za,
        freq_hz,
        delays[0],
        amps[0],
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        parallactic=flag(parallactic, "parallactic"),
        latitude_rad=optional_double(latitude_rad),
        iau_order=flag(iau_order, "iau_order"),
        num_threads=num_threads,
    )
    write_jones(jones, result)


@error_checking
def get_fee_beam_freqs(fee_beam, freqs, num_freqs):
    """Get the frequencies stored in the beam model.

    :param freqs: uint32 array receiving the frequencies, or None to
        only get their number.
    :param num_freqs: ``ctypes.c_size_t`` receiving the number of
        frequencies.
    """
    beam_freqs = get_object(fee_beam, FEEBeam).get_freqs()
    if num_freqs is None:
        raise MissingParameterError("No out-parameter given for num_freqs")
    num_freqs.value = beam_freqs.size
    if freqs is not None:
        write_map(freqs, beam_freqs)


@error_checking
def fee_closest_freq(fee_beam, freq_hz, closest_freq_hz):
    """Get the model frequency closest to ``freq_hz``.

    :param closest_freq_hz: ``ctypes.c_uint32`` receiving the frequency.
    """
    closest = get_object(fee_beam, FEEBeam).find_closest_freq(freq_hz)
    if closest_freq_hz is None:
        raise MissingParameterError("No out-parameter given for the frequency")
    closest_freq_hz.value = closest


@error_checking
def new_gpu_fee_beam(
    fee_beam,
    freqs_hz,
    delays,
    amps,
    num_freqs,
    num_tiles,
    num_amps,
    norm_to_zenith,
    gpu_fee_beam,
    precision=Precision.DOUBLE,
):
    """Prepare an FEE beam for GPU calculations on a batch.

    :param freqs_hz: The ``num_freqs`` requested frequencies.
    :param delays: ``num_tiles * 16`` dipole delays, tile by tile.
    :param amps: ``num_tiles * num_amps`` dipole gains, tile by tile.
    :param gpu_fee_beam: ``ctypes.c_void_p`` receiving the handle, which
        must be released with :func:`free_gpu_fee_beam`.
    :param precision: Precision of all calculations with the handle.
    """
    beam = get_object(fee_beam, FEEBeam)
    delays, amps = tile_arrays(delays, amps, num_tiles, num_amps)
    freqs = numpy.ravel(freqs_hz)[:num_freqs]
    gpu_beam = beam.gpu_prepare(
        freqs,
        delays,
        amps,
        norm_to_zenith=flag(norm_to_zenith, "norm_to_zenith"),
        precision=precision,
    )
    set_out_handle(gpu_fee_beam, gpu_beam)


@error_checking
def fee_calc_jones_gpu(
    gpu_fee_beam,
    num_azza,
    az_rad,
    za_rad,
    parallactic,
    latitude_rad,
    iau_order,
    jones,
):
    """Get Jones matrices from the GPU, copied into host memory.

    ``jones`` must hold ``8 * num_unique_tiles * num_unique_freqs *
    num_azza`` reals of the handle's precision.
    """
    gpu_beam = get_object(gpu_fee_beam, FEEBeamGpu)
    az, za = directions(num_azza, az_rad, za_rad)
    result = gpu_beam.calc_jones(
        az,
        za,
        parallactic=flag(parallactic, "parallactic"),
        latitude_rad=optional_double(latitude_rad),
        iau_order=flag(iau_order, "iau_order"),
    )
    write_jones(jones, result)


@error_checking
def fee_calc_jones_gpu_device(
    gpu_fee_beam,
    num_azza,
    az_rad,
    za_rad,
    parallactic,
    latitude_rad,
    iau_order,
    d_jones,
):
    """Get Jones matrices left in device memory.

    :param d_jones: Either a ``ctypes.c_void_p`` receiving the handle of
        a new device buffer, which must be released with
        ``free_device_buffer``, or a device array to fill.
    """
    gpu_beam = get_object(gpu_fee_beam, FEEBeamGpu)
    az, za = directions(num_azza, az_rad, za_rad)
    options = dict(
        parallactic=flag(parallactic, "parallactic"),
        latitude_rad=optional_double(latitude_rad),
        iau_order=flag(iau_order, "iau_order"),
    )
    calc_device(
        gpu_beam,
        lambda out: gpu_beam.calc_jones_device(az, za, d_jones=out, **options),
        d_jones,
        num_azza,
    )


@error_checking
def fee_calc_jones_gpu_device_inner(
    gpu_fee_beam,
    num_azza,
    d_az_rad,
    d_za_rad,
    parallactic,
    latitude_rad,
    iau_order,
    d_jones,
):
    """As :func:`fee_calc_jones_gpu_device`, with directions on the device."""
    gpu_beam = get_object(gpu_fee_beam, FEEBeamGpu)
    options = dict(
        parallactic=flag(parallactic, "parallactic"),
        latitude_rad=optional_double(latitude_rad),
        iau_order=flag(iau_order, "iau_order"),
    )
    calc_device(
        gpu_beam,
        lambda out: gpu_beam.calc_jones_device_inner(
            d_az_rad[:num_azza], d_za_rad[:num_azza], d_jones=out, **options
        ),
        d_jones,
        num_azza,
    )


@error_checking
def get_fee_tile_map(gpu_fee_beam, tile_map):
    """Copy the tile map into an int32 array with one entry per tile."""
    write_map(tile_map, get_object(gpu_fee_beam, FEEBeamGpu).tile_map)


@error_checking
def get_fee_freq_map(gpu_fee_beam, freq_map):
    """Copy the frequency map into an int32 array with one entry per frequency."""
    write_map(freq_map, get_object(gpu_fee_beam, FEEBeamGpu).freq_map)


@error_checking
def get_fee_device_tile_map(gpu_fee_beam, d_tile_map):
    """Store the device pointer of the tile map in a ``ctypes.c_void_p``."""
    gpu_beam = get_object(gpu_fee_beam, FEEBeamGpu)
    if d_tile_map is None:
        raise MissingParameterError("No out-parameter given for the map")
    d_tile_map.value = gpu_beam.device_tile_map.data.ptr


@error_checking
def get_fee_device_freq_map(gpu_fee_beam, d_freq_map):
    """Store the device pointer of the frequency map in a ``ctypes.c_void_p``."""
    gpu_beam = get_object(gpu_fee_beam, FEEBeamGpu)
    if d_freq_map is None:
        raise MissingParameterError("No out-parameter given for the map")
    d_freq_map.value = gpu_beam.device_freq_map.data.ptr


def get_num_unique_fee_tiles(gpu_fee_beam) -> int:
    """Return the number of unique tiles of a GPU beam, or -1 on error."""
    return num_unique(gpu_fee_beam, "num_unique_tiles", FEEBeamGpu)


def get_num_unique_fee_freqs(gpu_fee_beam) -> int:
    """Return the number of unique frequencies of a GPU beam, or -1 on error."""
    return num_unique(gpu_fee_beam, "num_unique_freqs", FEEBeamGpu)


@error_checking
def free_gpu_fee_beam(gpu_fee_beam):
    """Release a GPU FEE beam and its device memory."""
    release_object(gpu_fee_beam, FEEBeamGpu)
