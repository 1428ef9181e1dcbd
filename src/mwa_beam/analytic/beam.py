# See the LICENSE file at the top-level directory of this distribution.

"""The MWA analytic beam."""

import logging

import numpy

from ..coords import as_directions
from ..dedup import UniqueMaps, build_maps
from ..engine.cpu import DEFAULT_CHUNK_SIZE, BeamResponse, run_blocks
from ..tile import tile_configurations
from ..utility import ConfigurationError, Precision, StructWrapper
from .algorithm import AnalyticType, analytic_jones
from .gpu import AnalyticBeamGpu

logger = logging.getLogger(__name__)


class AnalyticBeam(StructWrapper):
    """Analytic MWA tile beam of the RTS or mwa_pb flavour.

    Unlike the FEE beam it needs no coefficient file; the object only
    holds the variant and the dipole height.
    """

    def __init__(
        self,
        analytic_type: AnalyticType = AnalyticType.MWA_PB,
        dipole_height_m=None,
    ):
        """Create an analytic beam.

        :param analytic_type: Variant of the element pattern.
        :param dipole_height_m: Dipole height above the ground screen,
            in metres; the default of the variant if None.
        """
        try:
            self.analytic_type = AnalyticType(analytic_type)
        except ValueError:
            raise ConfigurationError(
                f"Unknown analytic beam type {analytic_type}"
            ) from None
        if dipole_height_m is None:
            dipole_height_m = self.analytic_type.default_dipole_height
        if not dipole_height_m > 0:
            raise ConfigurationError("Dipole height must be positive")
        self.dipole_height_m = float(dipole_height_m)
        super().__init__()

    def __repr__(self):
        return (
            f"AnalyticBeam({self.analytic_type.name}, "
            f"dipole_height_m={self.dipole_height_m})"
        )

    @staticmethod
    def _unique_inputs(maps: UniqueMaps):
        """Return delays (tiles, 16) and gains (tiles, 2, 16) of unique tiles."""
        delays = numpy.array([c.delays_array() for c in maps.unique_tiles])
        amps = numpy.array([c.amps_xy() for c in maps.unique_tiles])
        return delays, amps

    def calc_jones_batch(
        self,
        az_rad,
        za_rad,
        freqs_hz,
        delays,
        amps,
        norm_to_zenith: bool = True,
        latitude_rad=None,
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
        :param latitude_rad: Array latitude for the RTS variant;
            the MWA site if None.
        :param precision: Precision of the computation.
        :param num_threads: Number of worker threads, 0 or None for all.
        :param chunk_size: Maximum number of directions per work item.
        """
        self._check_ready()
        az, za = as_directions(az_rad, za_rad)
        maps = build_maps(tile_configurations(delays, amps), freqs_hz)
        unique_delays, unique_amps = self._unique_inputs(maps)
        freqs = numpy.asarray(maps.unique_freqs, dtype=numpy.float64)

        def compute_block(tile, freq, start, stop):
            return analytic_jones(
                az[start:stop],
                za[start:stop],
                freqs[freq : freq + 1],
                unique_delays[tile][None],
                unique_amps[tile][None],
                analytic_type=self.analytic_type,
                dipole_height_m=self.dipole_height_m,
                latitude_rad=latitude_rad,
                norm_to_zenith=norm_to_zenith,
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
        latitude_rad=None,
        precision: Precision = Precision.DOUBLE,
        num_threads=None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> numpy.ndarray:
        """Compute Jones matrices of one tile for many directions.

        Returns an array of shape (num_directions, 4).
        """
        response = self.calc_jones_batch(
            az_rad,
            za_rad,
            [freq_hz],
            numpy.reshape(delays, (1, -1)),
            numpy.reshape(amps, (1, -1)),
            norm_to_zenith=norm_to_zenith,
            latitude_rad=latitude_rad,
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
        latitude_rad=None,
        precision: Precision = Precision.DOUBLE,
    ) -> numpy.ndarray:
        """Compute the Jones matrix of one tile in one direction."""
        return self.calc_jones_array(
            [az_rad],
            [za_rad],
            freq_hz,
            delays,
            amps,
            norm_to_zenith=norm_to_zenith,
            latitude_rad=latitude_rad,
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
    ) -> AnalyticBeamGpu:
        """Upload the unique inputs of a batch to the GPU.

        :returns: A GPU beam object, to be freed by the caller.
        """
        self._check_ready()
        maps = build_maps(tile_configurations(delays, amps), freqs_hz)
        unique_delays, unique_amps = self._unique_inputs(maps)
        return AnalyticBeamGpu(
            self.analytic_type,
            self.dipole_height_m,
            maps,
            unique_delays,
            unique_amps,
            norm_to_zenith,
            precision,
        )
