# See the LICENSE file at the top-level directory of this distribution.

"""Associated Legendre functions for the spherical-harmonic synthesis.

Values are computed in double precision for numpy and cupy arrays
alike, since the unnormalised functions of high degree exceed the range
of single-precision floats.
"""

import numpy


def legendre_table(cos_theta, n_max: int, xp=numpy):
    """Return reduced associated Legendre functions for all degrees.

    The reduced function is Q_n^m(u) = P_n^m(u) / sin(theta)^m, with the
    Condon-Shortley phase, which stays finite at the poles.

    :param cos_theta: Cosine of the zenith angle of each direction.
    :param n_max: Largest degree needed.
    :param xp: Array module (numpy or cupy).
    :returns: Array of shape (num_directions, n_max + 1, n_max + 2),
        indexed by degree n and order m; entries with m > n are zero.
    """
    u = xp.asarray(cos_theta, dtype=numpy.float64)
    table = xp.zeros((u.shape[0], n_max + 1, n_max + 2), dtype=numpy.float64)
    diag = 1.0
    for m in range(n_max + 1):
        if m > 0:
            diag *= -(2 * m - 1)
        table[:, m, m] = diag
        if m + 1 <= n_max:
            table[:, m + 1, m] = u * (2 * m + 1) * diag
        for n in range(m + 2, n_max + 1):
            table[:, n, m] = (
                (2 * n - 1) * u * table[:, n - 1, m]
                - (n + m - 1) * table[:, n - 2, m]
            ) / (n - m)
    return table


def legendre_terms(cos_theta, sin_theta, n, abs_m, n_max: int, xp=numpy):
    """Return the two Legendre terms used by each mode.

    For every direction and mode (n, |m|) these are
    ``P1sin = P_n^|m|(cos theta) / sin theta`` and
    ``P1 = dP_n^|m|(cos theta) / d theta``, both evaluated without
    dividing by zero at the zenith.

    :param n: Degree of each mode.
    :param abs_m: Absolute order of each mode.
    :returns: Two arrays of shape (num_directions, num_modes).
    """
    u = xp.asarray(cos_theta, dtype=numpy.float64)[:, None]
    s = xp.asarray(sin_theta, dtype=numpy.float64)[:, None]
    table = legendre_table(cos_theta, n_max, xp)
    n = xp.asarray(n)
    abs_m = xp.asarray(abs_m)
    q_nm = table[:, n, abs_m]
    q_nm1 = table[:, n, abs_m + 1]
    s_pow = s ** xp.maximum(abs_m - 1, 0)
    p1sin = xp.where(abs_m > 0, q_nm * s_pow, 0.0)
    p1 = q_nm1 * s ** (abs_m + 1) + abs_m * u * p1sin
    return p1sin, p1
