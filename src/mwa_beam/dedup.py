# See the LICENSE file at the top-level directory of this distribution.

"""De-duplication of tile configurations and frequencies in a batch."""

import logging
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy

from .tile import DipoleConfiguration

logger = logging.getLogger(__name__)


def _first_appearance(items: Sequence[Hashable]) -> Tuple[numpy.ndarray, list]:
    """Return the index map and the unique items, in order of first use."""
    seen: Dict[Hashable, int] = {}
    unique = []
    index_map = numpy.empty(len(items), dtype=numpy.int32)
    for i, item in enumerate(items):
        index = seen.get(item)
        if index is None:
            index = len(unique)
            seen[item] = index
            unique.append(item)
        index_map[i] = index
    return index_map, unique


class UniqueMaps:
    """Result of de-duplicating a batch of tiles and frequencies.

    ``tile_map[i]`` is the index into ``unique_tiles`` of the
    configuration of requested tile ``i``, and ``freq_map[j]`` the index
    into ``unique_freqs`` of the (resolved) requested frequency ``j``.
    Unique indices follow the order of first appearance, so the same
    batch always gives the same maps.
    """

    def __init__(
        self,
        tile_map: numpy.ndarray,
        unique_tiles: List[DipoleConfiguration],
        freq_map: numpy.ndarray,
        unique_freqs: List[int],
    ):
        self.tile_map = tile_map
        self.unique_tiles = unique_tiles
        self.freq_map = freq_map
        self.unique_freqs = unique_freqs

    @property
    def num_unique_tiles(self) -> int:
        """Return the number of distinct tile configurations."""
        return len(self.unique_tiles)

    @property
    def num_unique_freqs(self) -> int:
        """Return the number of distinct frequencies."""
        return len(self.unique_freqs)

    @property
    def num_unique(self) -> int:
        """Return the number of distinct (tile, frequency) pairs."""
        return self.num_unique_tiles * self.num_unique_freqs

    def __repr__(self):
        return (
            f"UniqueMaps(tile_map={self.tile_map.tolist()}, "
            f"freq_map={self.freq_map.tolist()}, "
            f"unique_freqs={self.unique_freqs})"
        )


def build_maps(
    tile_configs: Sequence[DipoleConfiguration],
    freqs_hz: Sequence[int],
    resolve: Optional[Callable[[int], int]] = None,
) -> UniqueMaps:
    """Find the unique tile configurations and frequencies of a batch.

    :param tile_configs: Configuration of each requested tile.
    :param freqs_hz: Requested frequencies, in Hz.
    :param resolve: Optional function mapping a requested frequency to
        the frequency actually used, applied before de-duplication.
        Without it, frequencies are compared by exact value.
    """
    tile_map, unique_tiles = _first_appearance(list(tile_configs))
    freqs = [int(f) for f in numpy.ravel(freqs_hz)]
    if resolve is not None:
        freqs = [int(resolve(f)) for f in freqs]
    freq_map, unique_freqs = _first_appearance(freqs)
    maps = UniqueMaps(tile_map, unique_tiles, freq_map, unique_freqs)
    logger.debug(
        "Reduced %d tiles to %d and %d frequencies to %d",
        len(tile_map),
        maps.num_unique_tiles,
        len(freq_map),
        maps.num_unique_freqs,
    )
    return maps
