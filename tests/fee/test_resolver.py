# See the LICENSE file at the top-level directory of this distribution.

"""Test frequency resolution."""

import pytest

from mwa_beam.fee import FrequencyResolver
from mwa_beam.utility import EmptyModelError, ModelLookupError


def test_nearest_frequency():
    """Requests resolve to the nearest stored frequency."""
    resolver = FrequencyResolver([170240000, 167680000, 168960000])
    assert resolver.resolve(167680000) == 167680000
    assert resolver.resolve(168000000) == 167680000
    assert resolver.resolve(168700000) == 168960000
    assert resolver.resolve(50000000) == 167680000
    assert resolver(250000000) == 170240000
    assert resolver(250000001) == 170240000


def test_ties_resolve_low():
    """A request halfway between two frequencies gets the lower one."""
    resolver = FrequencyResolver([100, 200])
    assert resolver.resolve(150) == 100
    assert resolver.resolve(151) == 200


def test_cache():
    """Each requested frequency is resolved once."""
    resolver = FrequencyResolver([100, 200])
    assert resolver.cache_size() == 0
    first = resolver.resolve(120)
    second = resolver.resolve(120)
    assert first == second == 100
    assert resolver.cache_size() == 1
    resolver.resolve(130)
    assert resolver.cache_size() == 2


def test_empty_model():
    """Resolving against an empty model fails."""
    resolver = FrequencyResolver([])
    with pytest.raises(EmptyModelError):
        resolver.resolve(150000000)
    assert issubclass(EmptyModelError, ModelLookupError)


def test_beam_closest_freq(fee_beam):
    """The beam exposes its frequencies and the resolver."""
    assert list(fee_beam.get_freqs()) == [167680000, 168960000, 170240000]
    assert fee_beam.find_closest_freq(168320000) == 167680000
    assert fee_beam.find_closest_freq(169000000) == 168960000
