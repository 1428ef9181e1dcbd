# See the LICENSE file at the top-level directory of this distribution.

"""Shared fixtures: a small synthetic FEE coefficient file."""

import h5py
import numpy
import pytest

from mwa_beam.fee import CoefficientStore, FEEBeam

# Frequencies of the synthetic beam model, 1.28 MHz apart.
MODEL_FREQS = [167680000, 168960000, 170240000]

# (m, n) of each mode, shared by both mode types.
MODE_MN = [(m, n) for n in (1, 2, 3) for m in range(-n, n + 1)]


def write_beam_file(path, freqs=MODEL_FREQS, seed=1):
    """Write an FEE beam file with random coefficients."""
    rng = numpy.random.default_rng(seed)
    m = [mn[0] for mn in MODE_MN]
    n = [mn[1] for mn in MODE_MN]
    modes = numpy.array([[1] * len(m) + [2] * len(m), m + m, n + n])
    with h5py.File(path, "w") as h5_file:
        h5_file.create_dataset("modes", data=modes)
        for freq in freqs:
            for pol in "XY":
                for dipole in range(1, 17):
                    mag = rng.uniform(0.1, 1.0, modes.shape[1])
                    phase = rng.uniform(-180.0, 180.0, modes.shape[1])
                    h5_file.create_dataset(
                        f"{pol}{dipole}_{freq}", data=numpy.array([mag, phase])
                    )
    return path


@pytest.fixture(scope="session")
def beam_file(tmp_path_factory):
    """Path of a synthetic FEE beam file."""
    path = tmp_path_factory.mktemp("beam") / "mwa_full_embedded_element.h5"
    return write_beam_file(path)


@pytest.fixture(scope="session")
def store(beam_file):
    """Coefficient store read from the synthetic beam file."""
    return CoefficientStore.from_hdf5(beam_file)


@pytest.fixture
def fee_beam(store):
    """An FEE beam, freed after the test."""
    beam = FEEBeam(store)
    yield beam
    beam.free()


@pytest.fixture
def directions():
    """Azimuths and zenith angles spread over the visible sky."""
    rng = numpy.random.default_rng(42)
    az = rng.uniform(0, 2 * numpy.pi, 50)
    za = rng.uniform(0, 0.49 * numpy.pi, 50)
    return az, za


@pytest.fixture
def make_beam_file():
    """Function writing a synthetic FEE beam file."""
    return write_beam_file


@pytest.fixture
def model_freqs():
    """Frequencies of the synthetic beam model."""
    return list(MODEL_FREQS)
