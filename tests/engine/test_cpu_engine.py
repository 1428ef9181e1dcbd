# See the LICENSE file at the top-level directory of this distribution.

"""Test the threaded CPU block executor."""

import threading

import numpy
import pytest

from mwa_beam import build_maps, tile_configurations
from mwa_beam.engine import BeamResponse, run_blocks
from mwa_beam.engine.cpu import resolve_num_threads


def _block(tile, freq, start, stop):
    values = numpy.arange(start, stop) + 1000 * tile + 100 * freq
    return numpy.repeat(values[:, None], 4, axis=1).astype(numpy.complex128)


def test_blocks_fill_output():
    """Every chunk lands in its own part of the output."""
    out = numpy.zeros((2, 3, 10, 4), dtype=numpy.complex128)
    result = run_blocks(_block, 2, 3, 10, out, num_threads=3, chunk_size=4)
    assert result is out
    for tile in range(2):
        for freq in range(3):
            numpy.testing.assert_array_equal(
                out[tile, freq], _block(tile, freq, 0, 10)
            )


def test_chunk_sizes():
    """Chunks never hold more than chunk_size directions."""
    sizes = []
    lock = threading.Lock()

    def compute(tile, freq, start, stop):
        with lock:
            sizes.append(stop - start)
        return _block(tile, freq, start, stop)

    out = numpy.zeros((1, 1, 10, 4), dtype=numpy.complex128)
    run_blocks(compute, 1, 1, 10, out, chunk_size=4)
    assert sorted(sizes) == [2, 4, 4]

    # Nothing to do without directions.
    empty = numpy.zeros((1, 1, 0, 4), dtype=numpy.complex128)
    run_blocks(compute, 1, 1, 0, empty)
    assert len(sizes) == 3


def test_failure_propagates():
    """The first failing chunk stops the run and its error is raised."""

    def compute(tile, freq, start, stop):
        if freq == 1:
            raise RuntimeError("bad block")
        return _block(tile, freq, start, stop)

    out = numpy.zeros((2, 2, 20, 4), dtype=numpy.complex128)
    with pytest.raises(RuntimeError, match="bad block"):
        run_blocks(compute, 2, 2, 20, out, num_threads=2, chunk_size=5)


def test_bad_arguments():
    """Output shape and chunk size are checked before any work."""
    with pytest.raises(ValueError):
        run_blocks(_block, 2, 2, 5, numpy.zeros((2, 2, 4, 4)))
    with pytest.raises(ValueError):
        run_blocks(_block, 1, 1, 5, numpy.zeros((1, 1, 5, 4)), chunk_size=0)


def test_num_threads():
    """Zero or None means one thread per CPU."""
    assert resolve_num_threads(3) == 3
    assert resolve_num_threads(0) >= 1
    assert resolve_num_threads(None) == resolve_num_threads(0)
    with pytest.raises(ValueError):
        resolve_num_threads(-2)


def test_expand_response():
    """Expanding a response restores one entry per requested tile and frequency."""
    delays = numpy.zeros((3, 16), dtype=int)
    amps = numpy.ones((3, 16))
    amps[1] = 0.0
    maps = build_maps(tile_configurations(delays, amps), [100, 200, 100, 100])
    jones = numpy.arange(2 * 2 * 5 * 4).reshape(2, 2, 5, 4)
    full = BeamResponse(jones, maps).expand()
    assert full.shape == (3, 4, 5, 4)
    numpy.testing.assert_array_equal(full[2, 3], jones[0, 0])
    numpy.testing.assert_array_equal(full[1, 1], jones[1, 1])
