# See the LICENSE file at the top-level directory of this distribution.

"""Spherical-harmonic coefficients of the MWA FEE beam model."""

import logging
import math
import re
from typing import Dict, Mapping

import h5py
import numpy

from ..constants import NUM_DIPOLES
from ..utility import EmptyModelError, ModelLookupError

logger = logging.getLogger(__name__)

_COEFF_DATASET = re.compile(r"^([XY])(\d+)_(\d+)$")


class ModeTable:
    """Spherical-harmonic modes shared by all coefficient sets.

    Each mode has a type s (1 or 2), an order m and a degree n. Modes of
    both types must come in the same (m, n) sequence, so that the
    coefficients of the two types can be paired mode by mode.
    """

    def __init__(self, s, m, n):
        s = numpy.asarray(s, dtype=int)
        m = numpy.asarray(m, dtype=int)
        n = numpy.asarray(n, dtype=int)
        if not s.shape == m.shape == n.shape or s.ndim != 1:
            raise ModelLookupError("Mode arrays must be 1D and of equal size")
        self.q1_index = numpy.flatnonzero(s == 1)
        self.q2_index = numpy.flatnonzero(s == 2)
        if self.q1_index.size + self.q2_index.size != s.size:
            raise ModelLookupError("Mode types other than 1 or 2 found")
        if self.q1_index.size == 0:
            raise ModelLookupError("No modes found")
        if not (
            numpy.array_equal(m[self.q1_index], m[self.q2_index])
            and numpy.array_equal(n[self.q1_index], n[self.q2_index])
        ):
            raise ModelLookupError(
                "Modes of type 1 and 2 do not match in order and degree"
            )
        self.num_total = s.size
        self.m = m[self.q1_index]
        self.n = n[self.q1_index]
        if numpy.any(self.n < 1) or numpy.any(numpy.abs(self.m) > self.n):
            raise ModelLookupError("Mode orders and degrees are inconsistent")
        self.abs_m = numpy.abs(self.m)
        self.n_max = int(self.n.max())

        # Normalisation of each mode, including the sign of odd positive m.
        norm = numpy.array(
            [
                math.sqrt(
                    0.5
                    * (2 * n + 1)
                    * math.factorial(n - abs_m)
                    / math.factorial(n + abs_m)
                )
                / math.sqrt(n * (n + 1))
                for n, abs_m in zip(self.n, self.abs_m)
            ]
        )
        sign = numpy.where((self.m > 0) & (self.m % 2 == 1), -1.0, 1.0)
        self.norm = norm * sign
        self.j_pow_n = 1j ** self.n

    def __len__(self):
        return self.m.size

    @classmethod
    def from_array(cls, modes) -> "ModeTable":
        """Create a table from a (3, N) array of mode types, m and n."""
        modes = numpy.asarray(modes)
        if modes.ndim != 2 or modes.shape[0] != 3:
            raise ModelLookupError("Expected a (3, N) array of modes")
        return cls(modes[0], modes[1], modes[2])


class FrequencyCoefficients:
    """Per-dipole coefficients of the X and Y elements at one frequency.

    ``q1`` and ``q2`` hold the coefficients of modes of type 1 and 2,
    with shape (2, 16, num_modes): polarisation (X, Y), dipole and mode.
    """

    def __init__(self, freq_hz: int, q1, q2):
        self.freq_hz = int(freq_hz)
        self.q1 = numpy.asarray(q1, dtype=numpy.complex128)
        self.q2 = numpy.asarray(q2, dtype=numpy.complex128)
        if self.q1.shape != self.q2.shape or self.q1.shape[:2] != (
            2,
            NUM_DIPOLES,
        ):
            raise ModelLookupError(
                f"Malformed coefficients at {self.freq_hz} Hz: "
                f"shapes {self.q1.shape} and {self.q2.shape}"
            )
        self.q1.flags.writeable = False
        self.q2.flags.writeable = False


class CoefficientStore:
    """Immutable collection of FEE coefficient sets, keyed by frequency."""

    def __init__(
        self,
        modes: ModeTable,
        coefficients: Mapping[int, FrequencyCoefficients],
    ):
        self.modes = modes
        self._coefficients: Dict[int, FrequencyCoefficients] = dict(
            coefficients
        )
        for freq, coeffs in self._coefficients.items():
            if coeffs.q1.shape[2] != len(modes):
                raise ModelLookupError(
                    f"Coefficients at {freq} Hz do not match the mode table"
                )
        self._freqs = numpy.array(sorted(self._coefficients), dtype=numpy.int64)
        self._freqs.flags.writeable = False

    def __len__(self):
        return self._freqs.size

    @property
    def freqs(self) -> numpy.ndarray:
        """Return the stored frequencies in ascending order, in Hz."""
        return self._freqs

    def lookup(self, freq_hz: int) -> FrequencyCoefficients:
        """Return the coefficients of an exactly stored frequency."""
        if self._freqs.size == 0:
            raise EmptyModelError("The beam model holds no frequencies")
        try:
            return self._coefficients[int(freq_hz)]
        except KeyError:
            raise ModelLookupError(
                f"No coefficients stored for {freq_hz} Hz"
            ) from None

    @classmethod
    def from_hdf5(cls, path) -> "CoefficientStore":
        """Read a store from an MWA FEE beam HDF5 file.

        The file holds a ``modes`` dataset of shape (3, N) with the type,
        order and degree of each mode, and for every frequency and dipole
        d in 1..16 the datasets ``X{d}_{freq}`` and ``Y{d}_{freq}`` of
        shape (2, N), holding magnitudes and phases (in degrees).
        """
        logger.debug("Loading FEE beam coefficients from %s", path)
        try:
            with h5py.File(path, "r") as h5_file:
                store = cls._read(h5_file)
        except OSError as err:
            raise ModelLookupError(
                f"Cannot read beam file {path}: {err}"
            ) from err
        logger.debug(
            "Loaded %d frequencies and %d modes from %s",
            len(store),
            len(store.modes),
            path,
        )
        return store

    @classmethod
    def _read(cls, h5_file) -> "CoefficientStore":
        if "modes" not in h5_file:
            raise ModelLookupError("Beam file has no 'modes' dataset")
        modes = ModeTable.from_array(h5_file["modes"][()])

        freqs = set()
        for name in h5_file.keys():
            match = _COEFF_DATASET.match(name)
            if match:
                freqs.add(int(match.group(3)))

        coefficients = {}
        for freq in sorted(freqs):
            q = numpy.empty((2, NUM_DIPOLES, modes.num_total), complex)
            for pol_index, pol in enumerate("XY"):
                for dipole in range(NUM_DIPOLES):
                    name = f"{pol}{dipole + 1}_{freq}"
                    if name not in h5_file:
                        raise ModelLookupError(
                            f"Beam file is missing dataset {name}"
                        )
                    data = h5_file[name][()]
                    if data.shape != (2, modes.num_total):
                        raise ModelLookupError(
                            f"Dataset {name} has shape {data.shape}, "
                            f"expected {(2, modes.num_total)}"
                        )
                    q[pol_index, dipole] = data[0] * numpy.exp(
                        1j * numpy.deg2rad(data[1])
                    )
            coefficients[freq] = FrequencyCoefficients(
                freq, q[..., modes.q1_index], q[..., modes.q2_index]
            )
        return cls(modes, coefficients)
