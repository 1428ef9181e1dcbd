# See the LICENSE file at the top-level directory of this distribution.

"""FEE beam responses computed on a GPU."""

import logging

try:
    import cupy
except ImportError:
    cupy = None

from ..coords import correction_latitude
from ..dedup import UniqueMaps
from ..engine.gpu import GpuBeam, to_device
from ..utility import Precision
from .algorithm import fee_jones
from .store import ModeTable

logger = logging.getLogger(__name__)


class FEEBeamGpu(GpuBeam):
    """FEE beam prepared for one batch of tiles and frequencies on a GPU.

    Objects are created by :meth:`mwa_beam.fee.FEEBeam.gpu_prepare`,
    which uploads the accumulated coefficients of every unique tile and
    frequency once. Results always have shape (num_unique_tiles,
    num_unique_freqs, num_directions, 4).
    """

    def __init__(
        self,
        modes: ModeTable,
        maps: UniqueMaps,
        q1,
        q2,
        norms,
        precision: Precision = Precision.DOUBLE,
    ):
        """Upload the coefficients of a prepared batch.

        :param modes: Mode table of the coefficient store.
        :param maps: De-duplication maps of the batch.
        :param q1: Accumulated type 1 coefficients,
            shape (num_unique_tiles, num_unique_freqs, 2, num_modes).
        :param q2: Accumulated type 2 coefficients, same shape.
        :param norms: Zenith normalisation of each unique frequency,
            shape (num_unique_freqs, 4), or None.
        :param precision: Precision of the device computation.
        """
        super().__init__(maps, precision)
        self._modes = modes
        num_modes = q1.shape[-1]
        cplx = precision.complex_dtype
        self._device["q1"] = to_device(q1.reshape(-1, 2, num_modes), cplx)
        self._device["q2"] = to_device(q2.reshape(-1, 2, num_modes), cplx)
        if norms is not None:
            norms = norms[None].repeat(maps.num_unique_tiles, axis=0)
            self._device["norms"] = to_device(
                norms.reshape(-1, 4), precision.real_dtype
            )
        logger.debug(
            "Uploaded FEE coefficients for %d tiles and %d frequencies",
            maps.num_unique_tiles,
            maps.num_unique_freqs,
        )

    def _kernel(self, d_az, d_za, latitude_rad=None, iau_order=False):
        return fee_jones(
            d_az,
            d_za,
            self._modes,
            self._device["q1"],
            self._device["q2"],
            norms=self._device.get("norms"),
            latitude_rad=latitude_rad,
            iau_order=iau_order,
            precision=self.precision,
            xp=cupy,
        )

    def calc_jones(
        self,
        az_rad,
        za_rad,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
    ):
        """Compute Jones matrices and copy them back to the host.

        :param az_rad: Azimuths, in radians.
        :param za_rad: Zenith angles, in radians.
        :param parallactic: Apply parallactic-angle correction.
        :param latitude_rad: Array latitude, needed for the correction.
        :param iau_order: Reverse the element order after correction.
        :returns: numpy array of shape
            (num_unique_tiles, num_unique_freqs, num_directions, 4).
        """
        latitude = correction_latitude(parallactic, latitude_rad)
        return self._calc_host(
            az_rad, za_rad, latitude_rad=latitude, iau_order=iau_order
        )

    def calc_jones_device(
        self,
        az_rad,
        za_rad,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
        d_jones=None,
    ):
        """Compute Jones matrices and leave them on the device.

        If ``d_jones`` is None a new buffer is allocated and returned as
        a :class:`mwa_beam.utility.DeviceJonesBuffer` owned by the
        caller; otherwise ``d_jones`` must be a device array of the
        result shape and precision, and is filled and returned.
        """
        self._check_ready()
        latitude = correction_latitude(parallactic, latitude_rad)
        d_az, d_za = self._upload_directions(az_rad, za_rad)
        return self._calc_device(
            d_az, d_za, d_jones, latitude_rad=latitude, iau_order=iau_order
        )

    def calc_jones_device_inner(
        self,
        d_az_rad,
        d_za_rad,
        parallactic: bool = False,
        latitude_rad=None,
        iau_order: bool = False,
        d_jones=None,
    ):
        """As :meth:`calc_jones_device`, with directions already on the device."""
        latitude = correction_latitude(parallactic, latitude_rad)
        return self._calc_device(
            d_az_rad,
            d_za_rad,
            d_jones,
            latitude_rad=latitude,
            iau_order=iau_order,
        )
