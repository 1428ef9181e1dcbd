# See the LICENSE file at the top-level directory of this distribution.

"""The MWA FEE beam."""

import logging
import os
import threading
from typing import Dict, Tuple

import numpy

from ..coords import as_directions, correction_latitude
from ..dedup import UniqueMaps, build_maps
from ..engine.cpu import DEFAULT_CHUNK_SIZE, BeamResponse, run_blocks
from ..tile import DipoleConfiguration, tile_configurations
from ..utility import MissingParameterError, Precision, StructWrapper
from .algorithm import accumulate, fee_jones, zenith_norm
from .gpu import FEEBeamGpu
from .resolver import FrequencyResolver
from .store import CoefficientStore

logger = logging.getLogger(__name__)

BEAM_FILE_ENV = "MWA_BEAM_FILE"


class FEEBeam(StructWrapper):
    """MWA Fully Embedded Element beam.

    The object owns a loaded coefficient store together with caches of
    accumulated tile coefficients and zenith normalisations. Caches are
    private to the object, so independent beams never share state.
    Call :meth:`free` (or use the object as a context manager) to
    release them.
    """

    def __init__(self, store: CoefficientStore):
        """Create a beam from a loaded coefficient store.

        :param store: Coefficients of the beam model.
        :type store: mwa_beam.fee.CoefficientStore
        """
        self._store = store
        self._resolver = FrequencyResolver(store.freqs)
        self._coeff_cache: Dict[Tuple, Tuple[numpy.ndarray, ...]] = {}
        self._norm_cache: Dict[int, numpy.ndarray] = {}
        self._mutex = threading.Lock()
        super().__init__(FEEBeam._release)

    @staticmethod
    def _release(beam) -> None:
        with beam._mutex:
            beam._coeff_cache.clear()
            beam._norm_cache.clear()
        beam._store = None

    @classmethod
    def from_file(cls, path) -> "FEEBeam":
        """Load the beam from an HDF5 coefficient file."""
        return cls(CoefficientStore.from_hdf5(path))

    @classmethod
    def from_env(cls) -> "FEEBeam":
        """Load the beam from the file named by ``MWA_BEAM_FILE``."""
        path = os.environ.get(BEAM_FILE_ENV)
        if not path:
            raise MissingParameterError(
                f"Environment variable {BEAM_FILE_ENV} is not set"
            )
        return cls.from_file(path)

    @property
    def store(self) -> CoefficientStore:
        """Return the coefficient store of the beam."""
        self._check_ready()
        return self._store

    def get_freqs(self) -> numpy.ndarray:
        """Return the frequencies of the beam model, in Hz."""
        return self.store.freqs

    def find_closest_freq(self, freq_hz: int) -> int:
        """Return the model frequency closest to ``freq_hz``, in Hz."""
        self._check_ready()
        return self._resolver.resolve(freq_hz)

    def _coefficients(self, config: DipoleConfiguration, freq_hz: int):
        key = (config.key, freq_hz)
        cached = self._coeff_cache.get(key)
        if cached is not None:
            return cached
        logger.debug("Accumulating coefficients at %d Hz", freq_hz)
        coeffs = accumulate(self._store.lookup(freq_hz), config)
        with self._mutex:
            self._coeff_cache[key] = coeffs
        return coeffs

    def _zenith_norm(self, freq_hz: int) -> numpy.ndarray:
        cached = self._norm_cache.get(freq_hz)
        if cached is not None:
            return cached
        logger.debug("Computing zenith normalisation at %d Hz", freq_hz)
        norm = zenith_norm(self._store.modes, self._store.lookup(freq_hz))
        with self._mutex:
            self._norm_cache[freq_hz] = norm
        return norm

    def _unique_inputs(self, maps: UniqueMaps, norm_to_zenith: bool):
        """Gather coefficients and normalisations for a de-duplicated batch.

        Returns q1 and q2 of shape (tiles, freqs, 2, modes), and norms of
        shape (freqs, 4) or None.
        """
        num_modes = len(self._store.modes)
        shape = (maps.num_unique_tiles, maps.num_unique_freqs, 2, num_modes)
        q1 = numpy.empty(shape, dtype=numpy.complex128)
        q2 = numpy.empty(shape, dtype=numpy.complex128)
        for i, config in enumerate(maps.unique_tiles):
            for j, freq in enumerate(maps.unique_freqs):
                q1[i, j], q2[i, j] = self._coefficients(config, freq)
        norms = None
        if norm_to_zenith:
            norms = numpy.array(
                [self._zenith_norm(freq) for freq in maps.unique_freqs]
            ).reshape(-1, 4)
        return q1, q2, norms

    def _build_maps(self, freqs_hz, delays, amps) -> UniqueMaps:
        configs = tile_configurations(delays, amps)
        return build_maps(configs, freqs_hz, self._resolver)

    def calc_jones_batch(
        self,
        az_rad,
        za_rad,
        freqs_hz,
        delays,
        amps,
        norm_to_zenith: bool = True,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
        precision: Precision = Precision.DOUBLE,
        num_threads=None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> BeamResponse:
        """Compute Jones matrices for every unique tile and frequency.

        :param az_rad: Azimuths, in radians.
        :param za_rad: Zenith angles, in radians.
        :param freqs_hz: Requested frequencies, in Hz.
        :param delays: ``int[num_tiles, 16]`` dipole delays.
        :param amps: ``float[num_tiles, 16 or 32]`` dipole gains.
        :param norm_to_zenith: Normalise the response to the zenith.
        :param parallactic: Apply parallactic-angle correction.
        :param latitude_rad: Array latitude, needed for the correction.
        :param iau_order: Reverse the element order after correction.
        :param precision: Precision of the computation.
        :param num_threads: Number of worker threads, 0 or None for all.
        :param chunk_size: Maximum number of directions per work item.
        :returns: The Jones matrices of shape (num_unique_tiles,
            num_unique_freqs, num_directions, 4), with the maps of the
            batch.
        """
        self._check_ready()
        latitude = correction_latitude(parallactic, latitude_rad)
        az, za = as_directions(az_rad, za_rad)
        maps = self._build_maps(freqs_hz, delays, amps)
        q1, q2, norms = self._unique_inputs(maps, norm_to_zenith)
        modes = self._store.modes

        def compute_block(tile, freq, start, stop):
            block_norms = None if norms is None else norms[freq][None]
            return fee_jones(
                az[start:stop],
                za[start:stop],
                modes,
                q1[tile, freq][None],
                q2[tile, freq][None],
                norms=block_norms,
                latitude_rad=latitude,
                iau_order=iau_order,
                precision=precision,
            )[0]

        out = numpy.empty(
            (maps.num_unique_tiles, maps.num_unique_freqs, az.size, 4),
            dtype=precision.complex_dtype,
        )
        run_blocks(
            compute_block,
            maps.num_unique_tiles,
            maps.num_unique_freqs,
            az.size,
            out,
            num_threads=num_threads,
            chunk_size=chunk_size,
        )
        return BeamResponse(out, maps)

    def calc_jones_array(
        self,
        az_rad,
        za_rad,
        freq_hz: int,
        delays,
        amps,
        norm_to_zenith: bool = True,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
        precision: Precision = Precision.DOUBLE,
        num_threads=None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> numpy.ndarray:
        """Compute Jones matrices of one tile for many directions.

        :param delays: The 16 dipole delays of the tile.
        :param amps: The 16 or 32 dipole gains of the tile.
        :returns: Array of shape (num_directions, 4).

        The other parameters are as for :meth:`calc_jones_batch`.
        """
        response = self.calc_jones_batch(
            az_rad,
            za_rad,
            [freq_hz],
            numpy.reshape(delays, (1, -1)),
            numpy.reshape(amps, (1, -1)),
            norm_to_zenith=norm_to_zenith,
            parallactic=parallactic,
            latitude_rad=latitude_rad,
            iau_order=iau_order,
            precision=precision,
            num_threads=num_threads,
            chunk_size=chunk_size,
        )
        return response.jones[0, 0]

    def calc_jones(
        self,
        az_rad: float,
        za_rad: float,
        freq_hz: int,
        delays,
        amps,
        norm_to_zenith: bool = True,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
        precision: Precision = Precision.DOUBLE,
    ) -> numpy.ndarray:
        """Compute the Jones matrix of one tile in one direction.

        :returns: The four matrix elements (j00, j01, j10, j11).
        """
        return self.calc_jones_array(
            [az_rad],
            [za_rad],
            freq_hz,
            delays,
            amps,
            norm_to_zenith=norm_to_zenith,
            parallactic=parallactic,
            latitude_rad=latitude_rad,
            iau_order=iau_order,
            precision=precision,
            num_threads=1,
        )[0]

    def gpu_prepare(
        self,
        freqs_hz,
        delays,
        amps,
        norm_to_zenith: bool = True,
        precision: Precision = Precision.DOUBLE,
    ) -> FEEBeamGpu:
        """Upload the unique inputs of a batch to the GPU.

        :param freqs_hz: Requested frequencies, in Hz.
        :param delays: ``int[num_tiles, 16]`` dipole delays.
        :param amps: ``float[num_tiles, 16 or 32]`` dipole gains.
        :param norm_to_zenith: Normalise the response to the zenith.
        :param precision: Precision of the device computation.
        :returns: A GPU beam object, to be freed by the caller.
        """
        self._check_ready()
        maps = self._build_maps(freqs_hz, delays, amps)
        q1, q2, norms = self._unique_inputs(maps, norm_to_zenith)
        return FEEBeamGpu(self._store.modes, maps, q1, q2, norms, precision)
