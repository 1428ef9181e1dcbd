# See the LICENSE file at the top-level directory of this distribution.

"""Jones matrices of the MWA FEE beam from spherical-harmonic coefficients.

The functions here work on numpy or cupy arrays, selected with ``xp``,
and in single or double precision, selected with ``precision``.
Jones matrices are returned with their four elements
(j00, j01, j10, j11) in the last dimension: the columns hold the X and Y
dipole responses, the rows their theta and phi components.
"""

import numpy

from ..constants import DELAY_STEP_S, NUM_DIPOLES
from ..coords import apply_parallactic_correction
from ..tile import DipoleConfiguration
from ..utility import ModelLookupError, Precision
from .legendre import legendre_terms
from .store import FrequencyCoefficients, ModeTable

# FEKO azimuths at which each Jones element peaks at the zenith,
# converted to MWA azimuths (phi = pi/2 - az).
_ZENITH_NORM_AZ = numpy.array(
    [numpy.pi / 2, 0.0, numpy.pi, numpy.pi / 2], dtype=numpy.float64
)


def excitations(config: DipoleConfiguration, freq_hz: int) -> numpy.ndarray:
    """Return the complex (2, 16) X and Y excitation of each dipole."""
    phase = -2.0 * numpy.pi * freq_hz * DELAY_STEP_S * config.delays_array()
    return config.amps_xy() * numpy.exp(1j * phase)


def accumulate(coeffs: FrequencyCoefficients, config: DipoleConfiguration):
    """Sum the dipole coefficients of a tile, weighted by excitation.

    Returns the accumulated coefficients of both mode types, each with
    shape (2, num_modes).
    """
    weights = excitations(config, coeffs.freq_hz)
    q1 = numpy.einsum("pd,pdm->pm", weights, coeffs.q1)
    q2 = numpy.einsum("pd,pdm->pm", weights, coeffs.q2)
    return q1, q2


def accumulate_unpointed(coeffs: FrequencyCoefficients):
    """Accumulate coefficients for a zenith-pointed tile at full gain."""
    unpointed = DipoleConfiguration([0] * NUM_DIPOLES, [1.0] * NUM_DIPOLES)
    return accumulate(coeffs, unpointed)


def fee_jones(
    az_rad,
    za_rad,
    modes: ModeTable,
    q1,
    q2,
    norms=None,
    latitude_rad=None,
    iau_order: bool = False,
    precision: Precision = Precision.DOUBLE,
    xp=numpy,
):
    """Compute FEE Jones matrices for a block of tiles and directions.

    :param az_rad: Azimuth of each direction, shape (D,).
    :param za_rad: Zenith angle of each direction, shape (D,).
    :param modes: Mode table of the coefficient store.
    :param q1: Accumulated coefficients of type 1 modes, shape (B, 2, M).
    :param q2: Accumulated coefficients of type 2 modes, shape (B, 2, M).
    :param norms: Optional zenith normalisation, shape (B, 4).
    :param latitude_rad: If given, apply parallactic correction
        for an array at this latitude.
    :param iau_order: Reverse the element order after correction.
    :returns: Complex array of shape (B, D, 4).
    """
    real = precision.real_dtype
    cplx = precision.complex_dtype
    az = xp.asarray(az_rad, dtype=real)
    za = xp.asarray(za_rad, dtype=real)
    u = xp.cos(za)
    s = xp.sin(za)

    p1sin, p1 = legendre_terms(
        u, s, modes.n, modes.abs_m, modes.n_max, xp
    )
    mode_norm = xp.asarray(modes.norm)
    p1sin = (p1sin * mode_norm).astype(real)
    p1 = (p1 * mode_norm).astype(real)

    m = xp.asarray(modes.m, dtype=real)
    abs_m = xp.asarray(modes.abs_m, dtype=real)
    phi = real(numpy.pi / 2) - az
    ang = phi[:, None] * m[None, :]
    e_phi = (xp.cos(ang) + 1j * xp.sin(ang)).astype(cplx, copy=False)
    x_term = e_phi * p1sin
    y_term = e_phi * p1

    num_blocks = q1.shape[0]
    num_modes = q1.shape[-1]
    j_pow_n = xp.asarray(modes.j_pow_n)
    q1 = xp.asarray(q1) * j_pow_n
    q2 = xp.asarray(q2) * j_pow_n

    def _cols(values):
        return values.reshape(num_blocks * 2, num_modes).astype(cplx).T

    u_col = u[:, None]
    sigma_t = (
        u_col * (x_term @ _cols(abs_m * q2))
        - x_term @ _cols(m * q1)
        + y_term @ _cols(q2)
    )
    sigma_p = (
        x_term @ _cols(1j * m * q2)
        - u_col * (x_term @ _cols(1j * abs_m * q1))
        - y_term @ _cols(1j * q1)
    )
    sigma_t = sigma_t.reshape(-1, num_blocks, 2).transpose(1, 0, 2)
    sigma_p = sigma_p.reshape(-1, num_blocks, 2).transpose(1, 0, 2)

    jones = xp.empty((num_blocks, az.shape[0], 4), dtype=cplx)
    jones[..., 0] = sigma_t[..., 0]
    jones[..., 1] = sigma_t[..., 1]
    jones[..., 2] = -sigma_p[..., 0]
    jones[..., 3] = -sigma_p[..., 1]

    if norms is not None:
        jones /= xp.asarray(norms, dtype=real)[:, None, :]
    if latitude_rad is not None:
        apply_parallactic_correction(
            jones, az, za, latitude_rad, iau_order=iau_order, xp=xp
        )
    return jones


def zenith_norm(modes: ModeTable, coeffs: FrequencyCoefficients):
    """Return the zenith normalisation of each Jones element at a frequency.

    This is the magnitude of the response of a zenith-pointed tile at
    full gain, each element taken at the azimuth where it peaks.
    """
    q1, q2 = accumulate_unpointed(coeffs)
    jones = fee_jones(
        _ZENITH_NORM_AZ,
        numpy.zeros(4),
        modes,
        q1[None],
        q2[None],
    )
    norm = numpy.abs(jones[0, numpy.arange(4), numpy.arange(4)])
    if not numpy.all(norm > 0):
        raise ModelLookupError(
            f"Zero zenith response at {coeffs.freq_hz} Hz; cannot normalise"
        )
    return norm
