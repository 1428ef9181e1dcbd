# See the LICENSE file at the top-level directory of this distribution.

"""Import functions that we want to expose under mwa_beam.utility"""

from .error import (
    BeamError,
    ConfigurationError,
    DeviceError,
    EmptyModelError,
    HandleStateError,
    InvalidAmpsError,
    InvalidDelaysError,
    MissingLatitudeError,
    MissingParameterError,
    ModelLookupError,
)
from .error_checking import (
    error_checking,
    error_sentinel,
    last_error_length,
    last_error_message,
    update_last_error,
)
from .mem import DeviceJonesBuffer, MemLocation
from .precision import Precision
from .registry import HandleRegistry
from .struct_wrapper import StructWrapper
