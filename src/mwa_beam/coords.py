# See the LICENSE file at the top-level directory of this distribution.

"""Direction handling and parallactic-angle geometry.

The functions here operate on numpy or cupy arrays alike; pass the array
module as ``xp``.
"""

from typing import NamedTuple

import numpy

from .utility import ConfigurationError, MissingLatitudeError


class Direction(NamedTuple):
    """A direction on the sky, as azimuth and zenith angle in radians."""

    az_rad: float
    za_rad: float


def as_directions(az_rad, za_rad, dtype=numpy.float64, xp=numpy):
    """Return azimuths and zenith angles as matching 1D arrays.

    Raises:
        ConfigurationError: if the arrays have different lengths.
    """
    az = xp.ravel(xp.asarray(az_rad, dtype=dtype))
    za = xp.ravel(xp.asarray(za_rad, dtype=dtype))
    if az.shape != za.shape:
        raise ConfigurationError(
            f"Got {az.size} azimuths but {za.size} zenith angles"
        )
    return az, za


def azel_to_hadec(az_rad, el_rad, latitude_rad, xp=numpy):
    """Convert horizon coordinates to hour angle and declination."""
    s_az, c_az = xp.sin(az_rad), xp.cos(az_rad)
    s_el, c_el = xp.sin(el_rad), xp.cos(el_rad)
    s_lat, c_lat = numpy.sin(latitude_rad), numpy.cos(latitude_rad)
    x = -c_az * c_el * s_lat + s_el * c_lat
    y = -s_az * c_el
    z = c_az * c_el * c_lat + s_el * s_lat
    r = xp.hypot(x, y)
    ha = xp.where(r != 0, xp.arctan2(y, x), 0)
    dec = xp.arctan2(z, r)
    return ha, dec


def parallactic_angle(ha_rad, dec_rad, latitude_rad, xp=numpy):
    """Return the parallactic angle of positions at the given latitude."""
    s_lat, c_lat = numpy.sin(latitude_rad), numpy.cos(latitude_rad)
    sqsz = c_lat * xp.sin(ha_rad)
    cqsz = s_lat * xp.cos(dec_rad) - c_lat * xp.sin(dec_rad) * xp.cos(ha_rad)
    nonzero = (sqsz != 0) | (cqsz != 0)
    return xp.where(nonzero, xp.arctan2(sqsz, cqsz), 0)


def parallactic_rotation(az_rad, za_rad, latitude_rad, xp=numpy):
    """Return cos and sin of the feed rotation for each direction.

    The rotation angle is the parallactic angle plus pi/2.
    """
    ha, dec = azel_to_hadec(az_rad, numpy.pi / 2 - za_rad, latitude_rad, xp)
    rot = parallactic_angle(ha, dec, latitude_rad, xp) + numpy.pi / 2
    return xp.cos(rot), xp.sin(rot)


def apply_parallactic_correction(
    jones, az_rad, za_rad, latitude_rad, iau_order=False, xp=numpy
):
    """Rotate Jones matrices into the sky frame, in place.

    ``jones`` has the four matrix elements in its last dimension and the
    directions in the one before. Each matrix is multiplied on the left
    by the rotation, mixing the theta and phi responses of each dipole.
    If ``iau_order`` is set, the elements are then reversed so the
    north-south dipole comes first.
    """
    c_rot, s_rot = parallactic_rotation(az_rad, za_rad, latitude_rad, xp)
    c_rot = c_rot.astype(jones.real.dtype, copy=False)
    s_rot = s_rot.astype(jones.real.dtype, copy=False)
    j00 = jones[..., 0].copy()
    j01 = jones[..., 1].copy()
    j10 = jones[..., 2].copy()
    j11 = jones[..., 3].copy()
    jones[..., 0] = j00 * c_rot - j10 * s_rot
    jones[..., 1] = j01 * c_rot - j11 * s_rot
    jones[..., 2] = j00 * s_rot + j10 * c_rot
    jones[..., 3] = j01 * s_rot + j11 * c_rot
    if iau_order:
        jones[...] = jones[..., ::-1].copy()
    return jones


def correction_latitude(parallactic: bool, latitude_rad):
    """Return the latitude to correct for, or None without correction.

    Raises:
        MissingLatitudeError: if correction is requested without a latitude.
    """
    if not parallactic:
        return None
    if latitude_rad is None:
        raise MissingLatitudeError(
            "Parallactic-angle correction requires the array latitude"
        )
    return float(latitude_rad)
