# See the LICENSE file at the top-level directory of this distribution.

"""Physical constants and MWA tile geometry."""

import math

from scipy.constants import speed_of_light

VEL_C = speed_of_light

NUM_DIPOLES = 16

# Amplitude arrays may hold one gain per dipole (shared by X and Y)
# or one per dipole element (X first, then Y).
VALID_NUM_AMPS = (16, 32)

# A delay of this value means the dipole is dead.
DEAD_DIPOLE_DELAY = 32

# Delay line quantum, in seconds.
DELAY_STEP_S = 435e-12

# Dipole separation within a tile, in metres.
MWA_DPL_SEP = 1.100

# Default dipole heights above the ground screen, in metres.
MWA_DPL_HGT = 0.278
MWA_DPL_HGT_RTS = 0.30

# Latitude of the MWA site.
MWA_LAT_RAD = math.radians(-26.703319405555554)
