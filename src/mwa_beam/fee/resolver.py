# See the LICENSE file at the top-level directory of this distribution.

"""Map requested frequencies to the nearest frequency of a beam model."""

import logging
import threading
from typing import Dict

import numpy

from ..utility import EmptyModelError

logger = logging.getLogger(__name__)


class FrequencyResolver:
    """Find the stored frequency closest to a requested frequency.

    When a request lies exactly halfway between two stored frequencies,
    the lower one is used. Results are cached per requested frequency.
    """

    def __init__(self, freqs_hz):
        self._freqs = numpy.sort(numpy.asarray(freqs_hz, dtype=numpy.int64))
        self._cache: Dict[int, int] = {}
        self._mutex = threading.Lock()

    def resolve(self, freq_hz: int) -> int:
        """Return the stored frequency nearest to ``freq_hz``, in Hz.

        Raises:
            EmptyModelError: if no frequencies are stored.
        """
        freq_hz = int(freq_hz)
        cached = self._cache.get(freq_hz)
        if cached is not None:
            return cached
        if self._freqs.size == 0:
            raise EmptyModelError("The beam model holds no frequencies")

        # Index of the first stored frequency not below the request.
        upper = int(numpy.searchsorted(self._freqs, freq_hz, side="left"))
        if upper == 0:
            nearest = self._freqs[0]
        elif upper == self._freqs.size:
            nearest = self._freqs[-1]
        else:
            below = self._freqs[upper - 1]
            above = self._freqs[upper]
            nearest = above if above - freq_hz < freq_hz - below else below
        nearest = int(nearest)

        with self._mutex:
            self._cache[freq_hz] = nearest
        logger.debug("Resolved %d Hz to stored %d Hz", freq_hz, nearest)
        return nearest

    def __call__(self, freq_hz: int) -> int:
        return self.resolve(freq_hz)

    def cache_size(self) -> int:
        """Return the number of cached requests."""
        return len(self._cache)
