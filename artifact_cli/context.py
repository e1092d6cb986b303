"""
Cancellable units of work.

Each top-level operation (push, pull, sync, describe) runs inside an
OperationContext. The context owns a CancellationToken that can be tripped by
a timeout or by SIGINT/SIGTERM, and a CleanupRegistry of temporary resources
that is drained when the operation ends, whatever the outcome.

Long-running loops call ``context.checkpoint()`` before each unit of work;
that is where cancellation is observed.
"""

import math
import os
import re
import shutil
import signal
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from artifact_cli.errors import CancelReason, ConfigurationError, OperationCancelled
from artifact_cli.logging_config import configure_module_logging

logger = configure_module_logging("context")

DEFAULT_TIMEOUT = 5 * 60.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_timeout(value: Optional[str], default: float = DEFAULT_TIMEOUT) -> float:
    """
    Parse a duration such as "30s", "5m", "1h30m" into seconds.

    A bare number is taken as seconds. Empty means the default.

    Raises:
        ConfigurationError: If the value is malformed or not positive
    """
    if value is None or not str(value).strip():
        return default
    text = str(value).strip()

    try:
        seconds = float(text)
    except ValueError:
        seconds = 0.0
        position = 0
        for match in _DURATION_PART.finditer(text):
            if match.start() != position:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            position = match.end()
        if position != len(text):
            raise ConfigurationError(f"invalid timeout format '{text}'")

    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigurationError(f"timeout must be positive, got: {text}")
    return seconds


class CancellationToken:
    """One-shot cancellation flag that remembers why it was tripped."""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[CancelReason] = None
        self._lock = threading.Lock()

    def cancel(self, reason: CancelReason) -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
                self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[CancelReason]:
        return self._reason

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str) -> None:
        if self._reason is not None:
            raise OperationCancelled(operation, self._reason)


class CleanupRegistry:
    """Temporary files, directories and callbacks to release at the end of a run."""

    def __init__(self):
        self._temp_files: List[str] = []
        self._temp_dirs: List[str] = []
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    def add_temp_file(self, path: str) -> None:
        with self._lock:
            self._temp_files.append(path)

    def add_temp_dir(self, path: str) -> None:
        with self._lock:
            self._temp_dirs.append(path)

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def create_temp_dir(self, prefix: str = "artifact-cli-") -> str:
        """Create a temporary directory and register it for cleanup."""
        path = tempfile.mkdtemp(prefix=prefix)
        self.add_temp_dir(path)
        return path

    def create_temp_file(self, prefix: str = "artifact-cli-") -> str:
        """Create a temporary file and register it for cleanup."""
        fd, path = tempfile.mkstemp(prefix=prefix)
        os.close(fd)
        self.add_temp_file(path)
        return path

    def cleanup(self) -> List[Exception]:
        """
        Release everything registered so far.

        The registry is emptied atomically before any resource is touched, so
        concurrent callers never release the same resource twice.

        Returns:
            Errors raised while cleaning up (never raised themselves)
        """
        with self._lock:
            callbacks, self._callbacks = self._callbacks, []
            temp_files, self._temp_files = self._temp_files, []
            temp_dirs, self._temp_dirs = self._temp_dirs, []

        errors: List[Exception] = []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                errors.append(e)
        for path in temp_files:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                errors.append(e)
        for path in temp_dirs:
            try:
                shutil.rmtree(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                errors.append(e)
        return errors


@dataclass
class OperationContext:
    """Cancellation token and cleanup registry owned by one top-level operation."""

    name: str
    timeout: float = DEFAULT_TIMEOUT
    token: CancellationToken = field(default_factory=CancellationToken)
    cleanup: CleanupRegistry = field(default_factory=CleanupRegistry)

    def checkpoint(self) -> None:
        """Raise OperationCancelled if the operation has been cancelled."""
        self.token.raise_if_cancelled(self.name)

    @property
    def cancelled_by_user(self) -> bool:
        return self.token.reason == CancelReason.USER_INTERRUPT


def _install_signal_handlers(context: OperationContext) -> dict:
    if threading.current_thread() is not threading.main_thread():
        return {}

    def _handler(signum, frame):
        if context.token.cancelled:
            # Second signal: stop right away
            raise KeyboardInterrupt
        logger.warning(
            f"Operation cancelled by user (signal: {signal.Signals(signum).name})"
        )
        context.token.cancel(CancelReason.USER_INTERRUPT)

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    return previous


@contextmanager
def operation_context(
    name: str,
    timeout: Optional[str] = None,
    handle_signals: bool = True,
) -> Iterator[OperationContext]:
    """
    Run a unit of work under a timeout and interrupt-aware cancellation token.

    Registered temporary resources are cleaned up on exit; cleanup failures
    are logged, not raised. An error raised after the user asked to stop is
    reported as a user-requested OperationCancelled.

    Args:
        name: Operation name used in cancellation messages
        timeout: Duration string (default five minutes)
        handle_signals: Install SIGINT/SIGTERM handlers (main thread only)
    """
    context = OperationContext(name=name, timeout=parse_timeout(timeout))

    timer = threading.Timer(context.timeout, context.token.cancel, args=(CancelReason.TIMEOUT,))
    timer.daemon = True
    timer.start()
    previous_handlers = _install_signal_handlers(context) if handle_signals else {}

    try:
        yield context
    except OperationCancelled:
        raise
    except KeyboardInterrupt:
        context.token.cancel(CancelReason.USER_INTERRUPT)
        raise OperationCancelled(name, CancelReason.USER_INTERRUPT)
    except Exception as e:
        if context.cancelled_by_user:
            raise OperationCancelled(name, CancelReason.USER_INTERRUPT) from e
        context.token.cancel(CancelReason.ERROR)
        raise
    finally:
        timer.cancel()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        for error in context.cleanup.cleanup():
            logger.warning(f"Warning: Cleanup failed: {error}")
