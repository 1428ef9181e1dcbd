# See the LICENSE file at the top-level directory of this distribution.

"""Test direction and parallactic-angle geometry."""

import numpy
import pytest

from mwa_beam.constants import MWA_LAT_RAD
from mwa_beam.coords import (
    Direction,
    apply_parallactic_correction,
    as_directions,
    azel_to_hadec,
    correction_latitude,
    parallactic_angle,
)
from mwa_beam.utility import ConfigurationError, MissingLatitudeError


def test_zenith_is_at_latitude():
    """The zenith has hour angle 0 and declination equal to the latitude."""
    ha, dec = azel_to_hadec(
        numpy.array([0.3]), numpy.array([numpy.pi / 2]), MWA_LAT_RAD
    )
    numpy.testing.assert_allclose(ha, 0.0, atol=1e-12)
    numpy.testing.assert_allclose(dec, MWA_LAT_RAD, atol=1e-12)


def test_hadec_matches_elevation():
    """Converted coordinates reproduce the elevation."""
    rng = numpy.random.default_rng(7)
    az = rng.uniform(0, 2 * numpy.pi, 100)
    el = rng.uniform(0.05, numpy.pi / 2, 100)
    ha, dec = azel_to_hadec(az, el, MWA_LAT_RAD)
    s_lat, c_lat = numpy.sin(MWA_LAT_RAD), numpy.cos(MWA_LAT_RAD)
    sin_el = s_lat * numpy.sin(dec) + c_lat * numpy.cos(dec) * numpy.cos(ha)
    numpy.testing.assert_allclose(sin_el, numpy.sin(el), atol=1e-12)


def test_parallactic_angle_on_meridian():
    """Sources on the meridian have a parallactic angle of 0 or pi."""
    pa = parallactic_angle(
        numpy.zeros(2), numpy.array([-0.8, 0.2]), MWA_LAT_RAD
    )
    numpy.testing.assert_allclose(numpy.abs(pa), [0.0, numpy.pi], atol=1e-12)


def test_correction_preserves_column_power():
    """The rotation mixes rows within each column only."""
    rng = numpy.random.default_rng(11)
    jones = rng.normal(size=(2, 20, 4)) + 1j * rng.normal(size=(2, 20, 4))
    az = rng.uniform(0, 2 * numpy.pi, 20)
    za = rng.uniform(0, 1.4, 20)
    rotated = apply_parallactic_correction(jones.copy(), az, za, MWA_LAT_RAD)
    for col in (0, 1):
        before = abs(jones[..., col]) ** 2 + abs(jones[..., col + 2]) ** 2
        after = abs(rotated[..., col]) ** 2 + abs(rotated[..., col + 2]) ** 2
        numpy.testing.assert_allclose(after, before)

    reordered = apply_parallactic_correction(
        jones.copy(), az, za, MWA_LAT_RAD, iau_order=True
    )
    numpy.testing.assert_allclose(reordered, rotated[..., ::-1])


def test_directions():
    """Direction arrays must match in length."""
    assert Direction(1.0, 0.5).za_rad == 0.5
    az, za = as_directions([0.0, 1.0], [0.1, 0.2], numpy.float32)
    assert az.dtype == numpy.float32 and za.shape == (2,)
    with pytest.raises(ConfigurationError):
        as_directions([0.0, 1.0], [0.1])


def test_correction_latitude():
    """Correction without a latitude is a missing parameter."""
    assert correction_latitude(False, None) is None
    assert correction_latitude(True, -0.5) == -0.5
    with pytest.raises(MissingLatitudeError):
        correction_latitude(True, None)
