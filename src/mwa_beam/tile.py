# See the LICENSE file at the top-level directory of this distribution.

"""Dipole delay and gain configuration of an MWA tile."""

from typing import Sequence, Tuple

import numpy

from .constants import DEAD_DIPOLE_DELAY, NUM_DIPOLES, VALID_NUM_AMPS
from .utility import ConfigurationError, InvalidAmpsError, InvalidDelaysError


def check_amps(num_amps: int) -> None:
    """Raise InvalidAmpsError unless there are 16 or 32 amplitudes."""
    if num_amps not in VALID_NUM_AMPS:
        raise InvalidAmpsError(
            f"A value other than 16 or 32 was used for num_amps ({num_amps})"
        )


def check_delays(num_delays: int) -> None:
    """Raise InvalidDelaysError unless there are 16 delays."""
    if num_delays != NUM_DIPOLES:
        raise InvalidDelaysError(
            f"Expected {NUM_DIPOLES} dipole delays, got {num_delays}"
        )


class DipoleConfiguration:
    """Delays and gains of the 16 dipoles of a tile.

    Two configurations are equal (and hash equally) if their delay and
    amplitude sequences are identical, whichever tile they came from.

    Delays are in units of the delay-line quantum and shared by the X and
    Y elements of each dipole. Amplitudes are dipole gains (usually 1 or
    0, not digital gains): 16 values apply to both X and Y, 32 values give
    X (first 16) and Y (last 16) separately. A delay of 32 marks a dead
    dipole, whose gains are treated as zero.
    """

    __slots__ = ("delays", "amps", "_key")

    def __init__(self, delays: Sequence[int], amps: Sequence[float]):
        raw_delays = numpy.ravel(delays)
        check_delays(raw_delays.size)
        if numpy.any(raw_delays < 0) or numpy.any(
            raw_delays != numpy.round(raw_delays)
        ):
            raise InvalidDelaysError(
                f"Dipole delays must be non-negative integers, got {raw_delays}"
            )
        delays = tuple(int(d) for d in raw_delays)
        amps = tuple(float(a) for a in numpy.ravel(amps))
        check_amps(len(amps))
        self.delays = delays
        self.amps = amps
        self._key = (delays, amps)

    @property
    def key(self) -> Tuple[Tuple[int, ...], Tuple[float, ...]]:
        """Content key used for de-duplication."""
        return self._key

    def __eq__(self, other):
        if not isinstance(other, DipoleConfiguration):
            return NotImplemented
        return self._key == other._key

    def __hash__(self):
        return hash(self._key)

    def __repr__(self):
        return f"DipoleConfiguration(delays={self.delays}, amps={self.amps})"

    def amps_xy(self) -> numpy.ndarray:
        """Return the (2, 16) X and Y gains, with dead dipoles zeroed."""
        amps = numpy.asarray(self.amps, dtype=numpy.float64)
        if amps.size == NUM_DIPOLES:
            amps = numpy.concatenate((amps, amps))
        amps = amps.reshape(2, NUM_DIPOLES)
        dead = numpy.asarray(self.delays) == DEAD_DIPOLE_DELAY
        amps[:, dead] = 0.0
        return amps

    def delays_array(self) -> numpy.ndarray:
        """Return the delays as a float array, with dead dipoles at 0."""
        delays = numpy.asarray(self.delays, dtype=numpy.float64)
        delays[delays == DEAD_DIPOLE_DELAY] = 0.0
        return delays


def tile_configurations(delays, amps) -> list:
    """Build one DipoleConfiguration per row of 2D delay and gain arrays.

    :param delays: ``int[num_tiles, 16]`` dipole delays.
    :param amps: ``float[num_tiles, 16 or 32]`` dipole gains.
    """
    delays = numpy.asarray(delays)
    amps = numpy.asarray(amps)
    if delays.ndim != 2 or amps.ndim != 2:
        raise ConfigurationError(
            "Delays and amps must be 2D arrays with one row per tile"
        )
    if delays.shape[0] != amps.shape[0]:
        raise ConfigurationError(
            f"Got delays for {delays.shape[0]} tiles "
            f"but amps for {amps.shape[0]} tiles"
        )
    check_delays(delays.shape[1])
    check_amps(amps.shape[1])
    return [DipoleConfiguration(d, a) for d, a in zip(delays, amps)]
