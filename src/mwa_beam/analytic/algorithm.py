# See the LICENSE file at the top-level directory of this distribution.

"""Closed-form Jones matrices of an MWA tile.

A tile is modelled as a 4x4 grid of short dipoles above a ground screen.
The array factor and ground-plane pattern are shared by both analytic
variants; they differ only in the element pattern. Functions work on
numpy or cupy arrays, selected with ``xp``.
"""

import enum

import numpy

from ..constants import (
    DELAY_STEP_S,
    MWA_DPL_HGT,
    MWA_DPL_HGT_RTS,
    MWA_DPL_SEP,
    MWA_LAT_RAD,
    NUM_DIPOLES,
    VEL_C,
)
from ..coords import azel_to_hadec
from ..utility import Precision


class AnalyticType(enum.IntEnum):
    """Variants of the analytic beam."""

    MWA_PB = 0
    RTS = 1

    @property
    def default_dipole_height(self) -> float:
        """Return the dipole height used when none is given, in metres."""
        if self is AnalyticType.RTS:
            return MWA_DPL_HGT_RTS
        return MWA_DPL_HGT


def dipole_positions():
    """Return east and north offsets of the 16 dipoles, in metres.

    Dipoles are numbered row by row from the north-west corner.
    """
    index = numpy.arange(NUM_DIPOLES)
    row, col = index // 4, index % 4
    east = (col - 1.5) * MWA_DPL_SEP
    north = (1.5 - row) * MWA_DPL_SEP
    return east, north


def _element_pattern(analytic_type, az, za, latitude_rad, xp):
    """Return the (j00, j01, j10, j11) element pattern of a dipole pair."""
    s_az, c_az = xp.sin(az), xp.cos(az)
    if analytic_type is AnalyticType.RTS:
        ha, dec = azel_to_hadec(az, numpy.pi / 2 - za, latitude_rad, xp)
        s_lat, c_lat = numpy.sin(latitude_rad), numpy.cos(latitude_rad)
        s_ha, c_ha = xp.sin(ha), xp.cos(ha)
        s_dec, c_dec = xp.sin(dec), xp.cos(dec)
        return (
            c_lat * c_dec + s_lat * s_dec * c_ha,
            s_dec * s_ha,
            -s_lat * s_ha,
            c_ha,
        )
    c_za = xp.cos(za)
    return (c_za * s_az, c_za * c_az, c_az, -s_az)


def analytic_jones(
    az_rad,
    za_rad,
    freqs_hz,
    delays,
    amps_xy,
    analytic_type: AnalyticType = AnalyticType.MWA_PB,
    dipole_height_m=None,
    latitude_rad=None,
    norm_to_zenith: bool = True,
    precision: Precision = Precision.DOUBLE,
    xp=numpy,
):
    """Compute analytic Jones matrices for a block of tiles and directions.

    :param az_rad: Azimuth of each direction, shape (D,).
    :param za_rad: Zenith angle of each direction, shape (D,).
    :param freqs_hz: Frequency of each block entry, shape (B,).
    :param delays: Dipole delays of each block entry, shape (B, 16),
        with dead dipoles already at zero delay.
    :param amps_xy: X and Y dipole gains of each block entry,
        shape (B, 2, 16).
    :param analytic_type: Variant of the element pattern.
    :param dipole_height_m: Dipole height; the variant's default if None.
    :param latitude_rad: Array latitude, used by the RTS variant;
        the MWA site if None.
    :param norm_to_zenith: Divide by the ground-plane gain at zenith.
    :returns: Complex array of shape (B, D, 4).
    """
    real = precision.real_dtype
    cplx = precision.complex_dtype
    analytic_type = AnalyticType(analytic_type)
    if latitude_rad is None:
        latitude_rad = MWA_LAT_RAD
    if dipole_height_m is None:
        dipole_height_m = analytic_type.default_dipole_height

    az = xp.asarray(az_rad, dtype=real)
    za = xp.asarray(za_rad, dtype=real)
    freqs = xp.asarray(freqs_hz, dtype=real)
    delays = xp.asarray(delays, dtype=real)
    amps_xy = xp.asarray(amps_xy, dtype=real)

    # Wavenumber of each block entry, shape (B, 1).
    k = (2 * numpy.pi * freqs / real(VEL_C))[:, None]

    east, north = dipole_positions()
    east = xp.asarray(east, dtype=real)
    north = xp.asarray(north, dtype=real)
    s_za = xp.sin(za)
    proj_e = s_za * xp.sin(az)
    proj_n = s_za * xp.cos(az)

    # Geometric path of each dipole for each direction, shape (D, 16),
    # and the path added by its delay line, shape (B, 16).
    geometric = proj_e[:, None] * east + proj_n[:, None] * north
    delay_path = delays * real(VEL_C * DELAY_STEP_S)
    phase = k[:, :, None] * (geometric[None] - delay_path[:, None, :])
    steering = (xp.cos(phase) + 1j * xp.sin(phase)).astype(cplx, copy=False)
    array_factor = xp.einsum(
        "bdk,bpk->bdp", steering, amps_xy.astype(cplx)
    ) / real(NUM_DIPOLES)

    height = real(dipole_height_m)
    c_za = xp.cos(za)
    ground_plane = 2 * xp.sin(k * height * c_za[None, :])
    ground_plane = xp.where(za[None, :] <= numpy.pi / 2, ground_plane, 0)
    if norm_to_zenith:
        ground_plane = ground_plane / (2 * xp.sin(k * height))
    ground_plane = ground_plane.astype(real, copy=False)

    j00, j01, j10, j11 = _element_pattern(
        analytic_type, az, za, latitude_rad, xp
    )
    gain_x = ground_plane * array_factor[..., 0]
    gain_y = ground_plane * array_factor[..., 1]
    jones = xp.empty((freqs.shape[0], az.shape[0], 4), dtype=cplx)
    jones[..., 0] = j00 * gain_x
    jones[..., 1] = j01 * gain_y
    jones[..., 2] = j10 * gain_x
    jones[..., 3] = j11 * gain_y
    return jones
