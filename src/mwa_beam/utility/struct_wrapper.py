# See the LICENSE file at the top-level directory of this distribution.

"""Base class for any object that owns beam resources."""

import logging
from typing import Any, Callable, Optional

from .error import HandleStateError

logger = logging.getLogger(__name__)


class StructWrapper:
    """
    Base class for any long-lived object owning host or device resources
    (a loaded beam model, uploaded coefficients, device buffers). Its role
    consists of:
    * Tracking the lifecycle of the object: it is ready once constructed,
        and destroyed once free() has been called.
    * Refusing any use of the object after it has been destroyed, by
        raising HandleStateError from _check_ready().

    Each derived class gets a distinct name for its handle, used in error
    messages and by the handle registry of the C-style API.
    """

    _HANDLE_NAME: Optional[str] = None

    def __init_subclass__(cls) -> None:
        cls._HANDLE_NAME = f"{cls.__name__}Handle"

    def __init__(self, free_func: Optional[Callable[[Any], None]] = None):
        """
        Mark the object as ready.

        Args:
            free_func: Optional function called once when the object is
                freed, receiving the object as its single argument.
        """
        if free_func is not None and not callable(free_func):
            raise ValueError("free_func must be callable")
        self._free_func = free_func
        self._ready = True

    def __del__(self):
        if getattr(self, "_ready", False):
            self.free()

    def __enter__(self):
        self._check_ready()
        return self

    def __exit__(self, *exc_info):
        self.free()

    @property
    def is_ready(self) -> bool:
        """True until the object has been freed."""
        return self._ready

    def free(self) -> None:
        """Release all resources owned by this object.

        Freeing an object twice is harmless; using it afterwards raises
        HandleStateError.
        """
        if not self._ready:
            return
        self._ready = False
        if self._free_func is not None:
            self._free_func(self)
        logger.debug("Freed %s", self._HANDLE_NAME)

    def _check_ready(self) -> None:
        if not self._ready:
            raise HandleStateError(
                f"{self._HANDLE_NAME} has already been freed"
            )

    @classmethod
    def handle_type(cls) -> str:
        """Return the name of the handle type of this class."""
        return cls._HANDLE_NAME
