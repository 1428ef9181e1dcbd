# See the LICENSE file at the top-level directory of this distribution.

"""Threaded execution of beam computations on the CPU."""

import logging
import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, NamedTuple, Optional

import numpy

from ..dedup import UniqueMaps

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class BeamResponse(NamedTuple):
    """Jones matrices of the unique tiles and frequencies of a batch.

    ``jones`` has shape (num_unique_tiles, num_unique_freqs,
    num_directions, 4); use ``maps`` to find the entry of any requested
    tile and frequency.
    """

    jones: numpy.ndarray
    maps: UniqueMaps

    def expand(self) -> numpy.ndarray:
        """Return responses for every requested tile and frequency."""
        return self.jones[self.maps.tile_map[:, None], self.maps.freq_map]


def resolve_num_threads(num_threads: Optional[int]) -> int:
    """Return the number of worker threads to use; 0 or None means all CPUs."""
    if not num_threads:
        return os.cpu_count() or 1
    if num_threads < 0:
        raise ValueError("num_threads must not be negative")
    return num_threads


def run_blocks(
    compute_block: Callable[[int, int, int, int], numpy.ndarray],
    num_tiles: int,
    num_freqs: int,
    num_directions: int,
    out: numpy.ndarray,
    num_threads: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> numpy.ndarray:
    """Fill an output buffer block by block on a pool of threads.

    Every (tile, freq) pair is split into chunks of at most
    ``chunk_size`` directions, and ``compute_block(tile, freq, start,
    stop)`` must return the Jones matrices for directions
    ``start:stop`` of that pair, with shape (stop - start, 4). Chunks
    write to disjoint parts of ``out``, of shape
    (num_tiles, num_freqs, num_directions, 4).

    If any chunk fails, chunks not yet started are cancelled and the
    first exception is raised; the contents of ``out`` are then
    undefined.
    """
    if out.shape != (num_tiles, num_freqs, num_directions, 4):
        raise ValueError(
            f"Output buffer has shape {out.shape}, expected "
            f"{(num_tiles, num_freqs, num_directions, 4)}"
        )
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    tasks = [
        (tile, freq, start, min(start + chunk_size, num_directions))
        for tile in range(num_tiles)
        for freq in range(num_freqs)
        for start in range(0, num_directions, chunk_size)
    ]
    if not tasks:
        return out

    def _run(tile, freq, start, stop):
        out[tile, freq, start:stop] = compute_block(tile, freq, start, stop)

    num_workers = min(resolve_num_threads(num_threads), len(tasks))
    logger.debug(
        "Running %d chunks on %d threads", len(tasks), num_workers
    )
    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = [executor.submit(_run, *task) for task in tasks]
        done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        for future in not_done:
            future.cancel()
        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()
    return out
