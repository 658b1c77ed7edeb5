"""Helper utility functions for edit-locally."""

import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Callable, Tuple, Type, TypeVar

from ..core.errors import NetworkError
from .console import _rich_warning

T = TypeVar("T")


def is_tool_available(tool_name):
    """Check if a command-line tool is available.

    Args:
        tool_name (str): Name of the tool to check.

    Returns:
        bool: True if the tool is available, False otherwise.
    """
    return shutil.which(tool_name) is not None


def with_retry(operation: Callable[[], T], *, retries: int, description: str,
               transient: Tuple[Type[BaseException], ...], backoff: float = 1.0) -> T:
    """Run a network operation, retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument callable performing the network call
        retries: Number of extra attempts after the first failure
        description: Human readable description used in warnings and errors
        transient: Exception types that are worth retrying
        backoff: Initial delay in seconds, doubled after each failure

    Returns:
        Whatever ``operation`` returns

    Raises:
        NetworkError: If every attempt failed
    """
    attempts = max(retries, 0) + 1
    delay = backoff
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except transient as e:
            last_error = e
            if attempt == attempts:
                break
            _rich_warning(f"spurious network error ({attempts - attempt} tries remaining): {e}")
            if delay > 0:
                time.sleep(delay)
            delay *= 2

    raise NetworkError(f"failed to {description} after {attempts} attempt(s): {last_error}") from last_error


def atomic_write(path: Path, data: str) -> None:
    """Atomically write text data to path."""
    fd, tmp_name = tempfile.mkstemp(prefix=".edit-locally-", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(data)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except Exception:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
