# See the LICENSE file at the top-level directory of this distribution.

"""Utilities to turn exceptions into status codes for the C-style API,
and to keep the message of the last error for later retrieval."""

import ctypes
import functools
import logging
import threading
from typing import Callable, Optional

from .error import BeamError

logger = logging.getLogger(__name__)

_last_error = threading.local()


def update_last_error(message: str) -> None:
    """Record the message of the last error raised on this thread."""
    _last_error.message = message


def clear_last_error() -> None:
    """Forget the last error recorded on this thread."""
    _last_error.message = None


def get_last_error() -> Optional[str]:
    """Return the last error message recorded on this thread, if any."""
    return getattr(_last_error, "message", None)


def last_error_length() -> int:
    """Return the number of bytes needed to hold the last error message.

    The count includes the terminating NUL, so a buffer of this size
    receives the whole message. Returns 0 if there is no error.
    """
    message = get_last_error()
    if message is None:
        return 0
    return len(message.encode("utf-8")) + 1


def last_error_message(buffer, capacity: int) -> int:
    """Copy the last error message into a caller-supplied char buffer.

    At most ``capacity - 1`` bytes of the message are copied, followed by a
    NUL terminator, so the message is truncated if the buffer is too small.
    Truncation never splits a multi-byte character.

    Args:
        buffer: A ctypes char array, e.g. from ctypes.create_string_buffer.
        capacity: Number of bytes available in the buffer.

    Returns:
        The number of message bytes written, 0 if there is no error,
        or -1 if the buffer is missing or the capacity is not positive.
    """
    if buffer is None or capacity <= 0:
        return -1
    message = get_last_error()
    if message is None:
        return 0
    # Drop any character cut in half by the truncation.
    data = message.encode("utf-8")[: capacity - 1]
    data = data.decode("utf-8", "ignore").encode("utf-8")
    ctypes.memmove(buffer, data + b"\0", len(data) + 1)
    return len(data)


def error_checking(func: Callable) -> Callable:
    """
    Decorator for functions of the C-style API.
    Any BeamError raised by the wrapped function is recorded as the last
    error and its code returned instead; anything else unexpected is
    recorded and reported as -1. On success the wrapped function's own
    return value is passed through, or 0 if it returned None.
    """

    @functools.wraps(func)
    def wrapped(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except BeamError as err:
            update_last_error(str(err))
            return err.code
        except Exception as err:  # pylint: disable=broad-except
            logger.exception("Unexpected failure in %s", func.__name__)
            update_last_error(f"{type(err).__name__}: {err}")
            return -1
        return 0 if result is None else result

    return wrapped


def error_sentinel(sentinel: int) -> Callable[[Callable], Callable]:
    """
    Decorator for functions of the C-style API that return a value
    directly instead of a status code. Any failure is recorded as the
    last error and reported by returning ``sentinel``.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapped(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except BeamError as err:
                update_last_error(str(err))
            except Exception as err:  # pylint: disable=broad-except
                logger.exception("Unexpected failure in %s", func.__name__)
                update_last_error(f"{type(err).__name__}: {err}")
            return sentinel

        return wrapped

    return decorator
