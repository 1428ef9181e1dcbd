# See the LICENSE file at the top-level directory of this distribution.

"""Import functions that we want to expose under mwa_beam.analytic"""

from .algorithm import AnalyticType
from .beam import AnalyticBeam
from .gpu import AnalyticBeamGpu
