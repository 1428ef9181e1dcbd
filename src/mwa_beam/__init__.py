# See the LICENSE file at the top-level directory of this distribution.

"""Import functions that we want to expose under mwa_beam"""

from .analytic import AnalyticBeam, AnalyticBeamGpu, AnalyticType
from .coords import Direction
from .dedup import UniqueMaps, build_maps
from .engine import BeamResponse, run_blocks
from .fee import CoefficientStore, FEEBeam, FEEBeamGpu, FrequencyResolver
from .tile import DipoleConfiguration, tile_configurations
from .utility import DeviceJonesBuffer, Precision
