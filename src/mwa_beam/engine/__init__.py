# See the LICENSE file at the top-level directory of this distribution.

"""Import functions that we want to expose under mwa_beam.engine"""

from .cpu import BeamResponse, run_blocks
