# See the LICENSE file at the top-level directory of this distribution.

"""Test the FEE coefficient store."""

import h5py
import numpy
import pytest

from mwa_beam.fee import CoefficientStore, ModeTable
from mwa_beam.utility import EmptyModelError, ModelLookupError


def test_read_store(store, model_freqs):
    """The file is read fully into memory."""
    numpy.testing.assert_array_equal(store.freqs, model_freqs)
    assert len(store) == 3
    assert len(store.modes) == 15
    assert store.modes.n_max == 3
    coeffs = store.lookup(model_freqs[1])
    assert coeffs.freq_hz == model_freqs[1]
    assert coeffs.q1.shape == (2, 16, 15)
    assert not coeffs.q1.flags.writeable


def test_coefficients_from_magnitude_and_phase(
    tmp_path, store, make_beam_file, model_freqs
):
    """Coefficients are built from magnitudes and phases in degrees."""
    path = make_beam_file(tmp_path / "beam.h5")
    with h5py.File(path, "r") as h5_file:
        mag, phase = h5_file[f"Y5_{model_freqs[0]}"][()]
    expected = mag * numpy.exp(1j * numpy.radians(phase))
    coeffs = store.lookup(model_freqs[0])
    num_modes = len(store.modes)
    numpy.testing.assert_allclose(coeffs.q1[1, 4], expected[:num_modes])
    numpy.testing.assert_allclose(coeffs.q2[1, 4], expected[num_modes:])


def test_lookup_needs_exact_frequency(store):
    """Only stored frequencies can be looked up."""
    with pytest.raises(ModelLookupError):
        store.lookup(168000000)


def test_empty_store():
    """An empty store fails on lookup."""
    modes = ModeTable([1, 2], [0, 0], [1, 1])
    store = CoefficientStore(modes, {})
    assert len(store) == 0
    with pytest.raises(EmptyModelError):
        store.lookup(150000000)


def test_mode_table():
    """Both mode types must list the same orders and degrees."""
    modes = ModeTable([1, 1, 2, 2], [1, -1, 1, -1], [1, 1, 1, 1])
    numpy.testing.assert_array_equal(modes.abs_m, [1, 1])
    # Odd positive orders carry a sign flip.
    assert modes.norm[0] < 0 < modes.norm[1]
    numpy.testing.assert_allclose(
        abs(modes.norm[0]), numpy.sqrt(0.75) / numpy.sqrt(2)
    )
    with pytest.raises(ModelLookupError):
        ModeTable([1, 1, 2, 2], [1, -1, -1, 1], [1, 1, 1, 1])
    with pytest.raises(ModelLookupError):
        ModeTable([1, 3], [0, 0], [1, 1])


def test_malformed_files(tmp_path, make_beam_file, model_freqs):
    """Missing files and datasets are lookup errors."""
    with pytest.raises(ModelLookupError):
        CoefficientStore.from_hdf5(tmp_path / "missing.h5")

    path = make_beam_file(tmp_path / "beam.h5")
    with h5py.File(path, "a") as h5_file:
        del h5_file[f"X16_{model_freqs[2]}"]
    with pytest.raises(ModelLookupError):
        CoefficientStore.from_hdf5(path)

    with h5py.File(tmp_path / "no_modes.h5", "w") as h5_file:
        h5_file.create_dataset("X1_100", data=numpy.zeros((2, 2)))
    with pytest.raises(ModelLookupError):
        CoefficientStore.from_hdf5(tmp_path / "no_modes.h5")
