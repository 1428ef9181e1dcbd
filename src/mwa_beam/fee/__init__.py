# See the LICENSE file at the top-level directory of this distribution.

"""Import functions that we want to expose under mwa_beam.fee"""

from .beam import BEAM_FILE_ENV, FEEBeam
from .gpu import FEEBeamGpu
from .resolver import FrequencyResolver
from .store import CoefficientStore, FrequencyCoefficients, ModeTable
