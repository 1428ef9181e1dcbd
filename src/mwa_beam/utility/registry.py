# See the LICENSE file at the top-level directory of this distribution.

"""Registry of opaque integer handles for the C-style API."""

import itertools
import logging
import threading
from typing import Dict, Optional, Tuple, Type

from .error import HandleStateError
from .struct_wrapper import StructWrapper

logger = logging.getLogger(__name__)


class HandleRegistry:
    """Maps opaque integer handles to the objects they refer to.

    Handles are never reused, so a stale handle always fails to resolve
    instead of silently referring to a newer object.
    """

    def __init__(self):
        self._objects: Dict[int, StructWrapper] = {}
        self._counter = itertools.count(1)
        self._mutex = threading.Lock()

    def __len__(self) -> int:
        return len(self._objects)

    def register(self, obj: StructWrapper) -> int:
        """Store an object and return its new handle."""
        with self._mutex:
            handle = next(self._counter)
            self._objects[handle] = obj
        logger.debug("Registered %s as handle %d", obj.handle_type(), handle)
        return handle

    def get(
        self,
        handle: Optional[int],
        expected: Tuple[Type[StructWrapper], ...],
    ) -> StructWrapper:
        """Return the live object behind a handle.

        Raises:
            HandleStateError: if the handle is unknown, has been released,
                or refers to an object of an unexpected type.
        """
        obj = self._objects.get(handle) if handle else None
        if obj is None or not obj.is_ready:
            raise HandleStateError(f"Invalid or released handle: {handle}")
        if not isinstance(obj, expected):
            names = ", ".join(cls.handle_type() for cls in expected)
            raise HandleStateError(
                f"Handle {handle} is a {obj.handle_type()}, expected {names}"
            )
        return obj

    def release(
        self,
        handle: Optional[int],
        expected: Tuple[Type[StructWrapper], ...],
    ) -> None:
        """Free the object behind a handle and forget the handle."""
        obj = self.get(handle, expected)
        with self._mutex:
            self._objects.pop(handle, None)
        obj.free()
