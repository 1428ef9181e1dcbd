# See the LICENSE file at the top-level directory of this distribution.

"""Test the C-style interface: handles, status codes and the last error."""

import ctypes

import numpy

try:
    import cupy
except ImportError:
    cupy = None

from mwa_beam import ffi
from mwa_beam.constants import MWA_LAT_RAD
from mwa_beam.fee import BEAM_FILE_ENV
from mwa_beam.utility import Precision

FREQ = 168960000
DELAYS = numpy.array([3, 2, 1, 0] * 4, dtype=numpy.uint32)
AMPS = numpy.ones(16)


def _last_error():
    length = ffi.last_error_length()
    buffer = ctypes.create_string_buffer(length)
    ffi.last_error_message(buffer, length)
    return buffer.value.decode()


def _new_fee_beam(beam_file):
    handle = ctypes.c_void_p()
    assert ffi.new_fee_beam(str(beam_file).encode(), handle) == 0
    assert handle.value
    return handle


def test_fee_lifecycle(beam_file):
    """A handle works until it is freed, then reports an invalid handle."""
    handle = _new_fee_beam(beam_file)
    jones = numpy.zeros(8)
    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 16, 1, 0, None, 0, jones
    )
    assert status == 0
    assert numpy.any(jones != 0)

    assert ffi.free_fee_beam(handle) == 0
    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 16, 1, 0, None, 0, jones
    )
    assert status == 5
    assert "handle" in _last_error()
    assert ffi.free_fee_beam(handle) == 5


def test_fee_beam_creation_errors(tmp_path, monkeypatch, beam_file):
    """Missing or unreadable files are reported with status codes."""
    handle = ctypes.c_void_p()
    assert ffi.new_fee_beam(str(tmp_path / "missing.h5"), handle) == 3
    assert handle.value is None
    assert ffi.new_fee_beam(None, handle) == 2

    monkeypatch.delenv(BEAM_FILE_ENV, raising=False)
    assert ffi.new_fee_beam_from_env(handle) == 2
    assert BEAM_FILE_ENV in _last_error()
    monkeypatch.setenv(BEAM_FILE_ENV, str(beam_file))
    assert ffi.new_fee_beam_from_env(handle) == 0
    assert ffi.free_fee_beam(handle) == 0


def test_fee_status_codes(beam_file):
    """Invalid requests return their status code and leave a message."""
    handle = _new_fee_beam(beam_file)
    jones = numpy.zeros(8)

    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 20, 1, 0, None, 0, jones
    )
    assert status == 1
    message = "A value other than 16 or 32 was used for num_amps (20)"
    assert _last_error() == message
    assert ffi.last_error_length() == len(message) + 1

    # The message is truncated to fit the buffer.
    buffer = ctypes.create_string_buffer(10)
    assert ffi.last_error_message(buffer, 10) == 9
    assert buffer.value == message[:9].encode()

    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 16, 1, 1, None, 0, jones
    )
    assert status == 2
    assert "latitude" in _last_error()
    assert numpy.all(jones == 0)

    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 16, 2, 0, None, 0, jones
    )
    assert status == 1
    assert "norm_to_zenith" in _last_error()

    status = ffi.fee_calc_jones(
        handle, 0.3, 0.4, FREQ, DELAYS, AMPS, 16, 1, 0, None, 0, numpy.zeros(4)
    )
    assert status == 1
    assert ffi.free_fee_beam(handle) == 0


def test_fee_jones_layout(beam_file, fee_beam, directions):
    """Jones matrices are written as 8 reals each."""
    az, za = directions
    handle = _new_fee_beam(beam_file)
    jones = numpy.zeros(8 * az.size)
    status = ffi.fee_calc_jones_array(
        handle,
        az.size,
        az,
        za,
        FREQ,
        DELAYS,
        AMPS,
        16,
        1,
        1,
        ctypes.c_double(MWA_LAT_RAD),
        0,
        jones,
    )
    assert status == 0
    expected = fee_beam.calc_jones_array(
        az,
        za,
        FREQ,
        DELAYS,
        AMPS,
        parallactic=True,
        latitude_rad=MWA_LAT_RAD,
    )
    numpy.testing.assert_allclose(jones[0::2], expected.real.reshape(-1))
    numpy.testing.assert_allclose(jones[1::2], expected.imag.reshape(-1))
    assert ffi.free_fee_beam(handle) == 0


def test_fee_freqs(beam_file):
    """Stored frequencies and the closest one can be queried."""
    handle = _new_fee_beam(beam_file)
    num_freqs = ctypes.c_size_t()
    assert ffi.get_fee_beam_freqs(handle, None, num_freqs) == 0
    assert num_freqs.value == 3
    freqs = numpy.zeros(num_freqs.value, dtype=numpy.uint32)
    assert ffi.get_fee_beam_freqs(handle, freqs, num_freqs) == 0
    numpy.testing.assert_array_equal(
        freqs, [167680000, 168960000, 170240000]
    )

    closest = ctypes.c_uint32()
    assert ffi.fee_closest_freq(handle, 169500000, closest) == 0
    assert closest.value == 168960000
    assert ffi.fee_closest_freq(handle, 169500000, None) == 2
    assert ffi.free_fee_beam(handle) == 0


def test_analytic(directions):
    """The analytic beam is reachable through handles too."""
    az, za = directions
    handle = ctypes.c_void_p()
    assert ffi.new_analytic_beam(1, None, handle) == 0
    jones = numpy.zeros(8 * az.size)
    status = ffi.analytic_calc_jones_array(
        handle, az.size, az, za, FREQ, DELAYS, AMPS, 16, None, 1, jones
    )
    assert status == 0
    single = numpy.zeros(8)
    status = ffi.analytic_calc_jones(
        handle, az[3], za[3], FREQ, DELAYS, AMPS, 16, None, 1, single
    )
    assert status == 0
    numpy.testing.assert_allclose(single, jones[24:32], atol=1e-12)

    status = ffi.analytic_calc_jones(
        handle, az[3], za[3], FREQ, DELAYS, AMPS, 31, None, 1, single
    )
    assert status == 1

    # The wrong kind of handle is refused.
    assert ffi.free_fee_beam(handle) == 5
    assert ffi.free_analytic_beam(handle) == 0
    assert ffi.free_analytic_beam(handle) == 5

    assert ffi.new_analytic_beam(5, None, handle) == 1
    assert ffi.new_analytic_beam(0, 0.0, handle) == 1


def test_unique_counts_of_bad_handles():
    """Count getters return -1 for unknown handles."""
    assert ffi.get_num_unique_tiles(12345678) == -1
    assert "12345678" in _last_error()
    assert ffi.get_num_unique_fee_freqs(None) == -1
    assert ffi.get_num_unique_analytic_tiles(0) == -1


def test_gpu_fee(beam_file, fee_beam, directions):
    """GPU handles report their maps and results through the interface."""
    if cupy:
        az, za = directions
        handle = _new_fee_beam(beam_file)
        freqs = numpy.array([167680000, 168000000], dtype=numpy.uint32)
        delays = numpy.concatenate([DELAYS, DELAYS, numpy.zeros(16)])
        amps = numpy.ones(3 * 16)
        gpu_handle = ctypes.c_void_p()
        status = ffi.new_gpu_fee_beam(
            handle, freqs, delays, amps, 2, 3, 16, 1, gpu_handle
        )
        assert status == 0
        assert ffi.get_num_unique_fee_tiles(gpu_handle) == 2
        assert ffi.get_num_unique_fee_freqs(gpu_handle) == 1
        assert ffi.get_num_unique_tiles(gpu_handle) == 2

        tile_map = numpy.zeros(3, dtype=numpy.int32)
        assert ffi.get_fee_tile_map(gpu_handle, tile_map) == 0
        numpy.testing.assert_array_equal(tile_map, [0, 0, 1])
        freq_map = numpy.zeros(2, dtype=numpy.int32)
        assert ffi.get_fee_freq_map(gpu_handle, freq_map) == 0
        numpy.testing.assert_array_equal(freq_map, [0, 0])
        d_tile_map = ctypes.c_void_p()
        assert ffi.get_fee_device_tile_map(gpu_handle, d_tile_map) == 0
        assert d_tile_map.value

        jones = numpy.zeros(8 * 2 * az.size)
        status = ffi.fee_calc_jones_gpu(
            gpu_handle, az.size, az, za, 0, None, 0, jones
        )
        assert status == 0
        expected = fee_beam.calc_jones_batch(
            az, za, freqs, delays.reshape(3, 16), amps.reshape(3, 16)
        ).jones
        numpy.testing.assert_allclose(
            jones.view(numpy.complex128), expected.reshape(-1), atol=1e-10
        )

        d_jones = ctypes.c_void_p()
        status = ffi.fee_calc_jones_gpu_device(
            gpu_handle, az.size, az, za, 0, None, 0, d_jones
        )
        assert status == 0
        assert ffi.free_device_buffer(d_jones) == 0
        assert ffi.free_device_buffer(d_jones) == 5

        d_out = cupy.zeros(8 * 2 * az.size)
        status = ffi.fee_calc_jones_gpu_device_inner(
            gpu_handle,
            az.size,
            cupy.asarray(az),
            cupy.asarray(za),
            0,
            None,
            0,
            d_out,
        )
        assert status == 0
        numpy.testing.assert_allclose(cupy.asnumpy(d_out), jones)

        status = ffi.fee_calc_jones_gpu(
            gpu_handle, az.size, az, za, 1, None, 0, jones
        )
        assert status == 2

        assert ffi.free_gpu_fee_beam(gpu_handle) == 0
        assert ffi.get_num_unique_fee_tiles(gpu_handle) == -1
        assert ffi.free_fee_beam(handle) == 0


def test_gpu_analytic(directions):
    """GPU analytic handles follow the same conventions."""
    if cupy:
        az, za = directions
        handle = ctypes.c_void_p()
        assert ffi.new_analytic_beam(0, None, handle) == 0
        gpu_handle = ctypes.c_void_p()
        status = ffi.new_gpu_analytic_beam(
            handle,
            [150000000],
            DELAYS,
            AMPS,
            1,
            1,
            16,
            1,
            gpu_handle,
            Precision.SINGLE,
        )
        assert status == 0
        assert ffi.get_num_unique_analytic_freqs(gpu_handle) == 1
        jones = numpy.zeros(8 * az.size, dtype=numpy.float32)
        status = ffi.analytic_calc_jones_gpu(
            gpu_handle, az.size, az, za, None, jones
        )
        assert status == 0
        assert numpy.any(jones != 0)

        d_tile_map = ctypes.c_void_p()
        assert ffi.get_analytic_device_tile_map(gpu_handle, d_tile_map) == 0
        assert d_tile_map.value
        d_freq_map = ctypes.c_void_p()
        assert ffi.get_analytic_device_freq_map(gpu_handle, d_freq_map) == 0
        assert d_freq_map.value
        assert ffi.get_analytic_device_freq_map(gpu_handle, None) == 2

        d_out = cupy.zeros(8 * az.size, dtype=numpy.float32)
        status = ffi.analytic_calc_jones_gpu_device_inner(
            gpu_handle,
            az.size,
            cupy.asarray(az, dtype=numpy.float32),
            cupy.asarray(za, dtype=numpy.float32),
            None,
            d_out,
        )
        assert status == 0
        numpy.testing.assert_allclose(cupy.asnumpy(d_out), jones, atol=1e-6)

        assert ffi.free_gpu_analytic_beam(gpu_handle) == 0
        assert ffi.get_analytic_device_tile_map(gpu_handle, d_tile_map) == 5
        assert ffi.free_analytic_beam(handle) == 0
