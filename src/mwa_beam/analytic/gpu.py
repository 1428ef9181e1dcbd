# See the LICENSE file at the top-level directory of this distribution.

"""Analytic beam responses computed on a GPU."""

import numpy

try:
    import cupy
except ImportError:
    cupy = None

from ..dedup import UniqueMaps
from ..engine.gpu import GpuBeam, to_device
from ..utility import Precision
from .algorithm import AnalyticType, analytic_jones


class AnalyticBeamGpu(GpuBeam):
    """Analytic beam prepared for one batch of tiles and frequencies.

    Objects are created by :meth:`mwa_beam.analytic.AnalyticBeam.gpu_prepare`.
    Every unique (tile, frequency) pair is laid out on the device once,
    tile-major, so a launch covers all of them and all directions.
    """

    def __init__(
        self,
        analytic_type: AnalyticType,
        dipole_height_m: float,
        maps: UniqueMaps,
        delays,
        amps,
        norm_to_zenith: bool = True,
        precision: Precision = Precision.DOUBLE,
    ):
        super().__init__(maps, precision)
        self.analytic_type = analytic_type
        self.dipole_height_m = dipole_height_m
        self.norm_to_zenith = norm_to_zenith
        num_freqs = maps.num_unique_freqs
        real = precision.real_dtype
        freqs = numpy.asarray(maps.unique_freqs, dtype=real)
        self._device["freqs"] = to_device(numpy.tile(freqs, len(delays)))
        self._device["delays"] = to_device(
            numpy.repeat(delays, num_freqs, axis=0), real
        )
        self._device["amps"] = to_device(
            numpy.repeat(amps, num_freqs, axis=0), real
        )

    def _kernel(self, d_az, d_za, latitude_rad=None):
        return analytic_jones(
            d_az,
            d_za,
            self._device["freqs"],
            self._device["delays"],
            self._device["amps"],
            analytic_type=self.analytic_type,
            dipole_height_m=self.dipole_height_m,
            latitude_rad=latitude_rad,
            norm_to_zenith=self.norm_to_zenith,
            precision=self.precision,
            xp=cupy,
        )

    def calc_jones(self, az_rad, za_rad, latitude_rad=None):
        """Compute Jones matrices and copy them back to the host.

        :returns: numpy array of shape
            (num_unique_tiles, num_unique_freqs, num_directions, 4).
        """
        return self._calc_host(az_rad, za_rad, latitude_rad=latitude_rad)

    def calc_jones_device(self, az_rad, za_rad, latitude_rad=None, d_jones=None):
        """Compute Jones matrices and leave them on the device.

        Returns a caller-owned :class:`mwa_beam.utility.DeviceJonesBuffer`,
        or fills and returns ``d_jones`` if given.
        """
        self._check_ready()
        d_az, d_za = self._upload_directions(az_rad, za_rad)
        return self._calc_device(d_az, d_za, d_jones, latitude_rad=latitude_rad)

    def calc_jones_device_inner(
        self, d_az_rad, d_za_rad, latitude_rad=None, d_jones=None
    ):
        """As :meth:`calc_jones_device`, with directions already on the device."""
        return self._calc_device(
            d_az_rad, d_za_rad, d_jones, latitude_rad=latitude_rad
        )
