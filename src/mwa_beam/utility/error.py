# See the LICENSE file at the top-level directory of this distribution.

"""Exceptions raised by beam functions, and their error codes."""

from typing import Dict

ERROR_CODE_MEANING: Dict[int, str] = {
    0: "No error",
    1: "Invalid tile configuration",
    2: "Missing parameter",
    3: "Beam model lookup failure",
    4: "Device failure",
    5: "Invalid handle",
    -1: "Unexpected failure",
}

DEFAULT_ERROR_MSG = "Unknown error"


class BeamError(Exception):
    """Base class for errors raised by beam functions."""

    code = -1


class ConfigurationError(BeamError):
    """Raised for malformed dipole delays, amplitudes or directions."""

    code = 1


class InvalidAmpsError(ConfigurationError):
    """Raised when the number of dipole amplitudes is not 16 or 32."""


class InvalidDelaysError(ConfigurationError):
    """Raised when the number of dipole delays is not 16."""


class MissingParameterError(BeamError):
    """Raised when an option needs a parameter that was not supplied."""

    code = 2


class MissingLatitudeError(MissingParameterError):
    """Raised when parallactic correction is requested without a latitude."""


class ModelLookupError(BeamError):
    """Raised for empty, malformed or incomplete coefficient stores."""

    code = 3


class EmptyModelError(ModelLookupError):
    """Raised when a coefficient store holds no frequencies."""


class DeviceError(BeamError):
    """Raised when device memory allocation, transfer or a launch fails."""

    code = 4


class HandleStateError(BeamError):
    """Raised when a released handle or buffer is used."""

    code = 5


def error_meaning(code: int) -> str:
    """Return the description of an error code."""
    return ERROR_CODE_MEANING.get(code, DEFAULT_ERROR_MSG)
