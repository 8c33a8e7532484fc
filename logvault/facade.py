# logvault/facade.py
"""
The logging entry point.

Usage:
    facade = LogFacade(backend, enabled=True)
    facade.info("User {id} logged in", {"id": 42})

    auth_log = facade.bind("auth")
    auth_log.warning("Too many attempts for {user}", {"user": "bob"})

Messages are interpolated and handed to the active backend. Nothing is
filtered by level; when logging is disabled every call is a no-op.
"""

import atexit
import sys
import threading
import traceback
from enum import Enum
from types import TracebackType
from typing import Any, Callable, Optional, Tuple, Type

from common.logger import get_app_logger
from logvault.interpolate import Context, interpolate
from logvault.levels import LevelLike, LogLevel
from logvault.naming import sanitize_stream
from logvault.storage import StorageBackend

logger = get_app_logger(__name__)

DEFAULT_STREAM = "default"
FATAL_STREAM = "fatal-error"

ExcInfo = Tuple[Type[BaseException], BaseException, Optional[TracebackType]]


class FacadeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class _SharedState:
    """State shared by a facade and every handle bound from it."""

    def __init__(self, backend: StorageBackend, enabled: bool) -> None:
        self.backend = backend
        self.enabled = enabled
        self.state = FacadeState.UNINITIALIZED
        self.lock = threading.Lock()

        self.last_fatal: Optional[ExcInfo] = None
        self.handling_fatal = False
        self.previous_excepthook: Optional[Callable[..., Any]] = None
        self.previous_threading_excepthook: Optional[Callable[..., Any]] = None


class LogFacade:
    """
    Eight-level logger writing to one storage backend.

    The current stream belongs to this handle: ``set_stream`` changes it until
    changed again, ``bind`` returns a sibling handle with its own stream, and
    the ``stream`` argument of ``log`` overrides it for one call.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        enabled: bool = False,
        stream: str = DEFAULT_STREAM,
    ) -> None:
        self._shared = _SharedState(backend, enabled)
        self._stream = sanitize_stream(stream)

    @classmethod
    def _sibling(cls, shared: _SharedState, stream: str) -> "LogFacade":
        handle = cls.__new__(cls)
        handle._shared = shared
        handle._stream = sanitize_stream(stream)
        return handle

    @property
    def backend(self) -> StorageBackend:
        return self._shared.backend

    @property
    def enabled(self) -> bool:
        return self._shared.enabled

    @property
    def state(self) -> FacadeState:
        return self._shared.state

    @property
    def stream(self) -> str:
        return self._stream

    def init(self) -> None:
        """Prepare the backend. Called implicitly by the first enabled write."""
        shared = self._shared
        if shared.state is FacadeState.READY:
            return
        with shared.lock:
            if shared.state is FacadeState.READY:
                return
            shared.backend.initialize()
            shared.state = FacadeState.READY
        logger.debug("Log facade ready", backend=shared.backend.name)

    def set_stream(self, name: str) -> None:
        """Make *name* the stream for subsequent calls on this handle."""
        self._stream = sanitize_stream(name)

    def bind(self, stream: str) -> "LogFacade":
        """Return a handle on the same backend that writes to *stream*."""
        return self._sibling(self._shared, stream)

    def log(
        self,
        level: LevelLike,
        message: str,
        context: Optional[Context] = None,
        stream: Optional[str] = None,
    ) -> None:
        """
        Interpolate *message* with *context* and write it.

        Args:
            level: A LogLevel or its name (case-insensitive)
            message: Template with ``{key}`` placeholders
            context: Values for the placeholders
            stream: Stream for this call only

        Raises:
            ValueError: Unknown level or empty stream name
            TypeError: Unsupported context value
            WriteError / StoreError: The backend could not persist the entry
        """
        if not self._shared.enabled:
            return

        level = LogLevel.coerce(level)
        target = sanitize_stream(stream) if stream is not None else self._stream
        text = interpolate(message, context)

        self.init()
        self._shared.backend.write(target, level, text)

    def emergency(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.EMERGENCY, message, context)

    def alert(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.ALERT, message, context)

    def critical(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.CRITICAL, message, context)

    def error(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.ERROR, message, context)

    def warning(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.WARNING, message, context)

    def notice(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.NOTICE, message, context)

    def info(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.INFO, message, context)

    def debug(self, message: str, context: Optional[Context] = None) -> None:
        self.log(LogLevel.DEBUG, message, context)

    # Fatal error capture

    def record_fatal(
        self,
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        """Remember an uncaught exception for ``handle_shutdown``."""
        self._shared.last_fatal = (exc_type, exc, tb)

    def install_fatal_handler(self) -> None:
        """
        Capture uncaught exceptions and log the last one at interpreter exit.

        The previous ``sys.excepthook`` and ``threading.excepthook`` still run.
        """
        shared = self._shared
        with shared.lock:
            if shared.previous_excepthook is not None:
                return
            shared.previous_excepthook = sys.excepthook
            shared.previous_threading_excepthook = threading.excepthook

            previous_hook = shared.previous_excepthook
            previous_thread_hook = shared.previous_threading_excepthook

            def _excepthook(exc_type, exc, tb):
                self.record_fatal(exc_type, exc, tb)
                previous_hook(exc_type, exc, tb)

            def _threading_excepthook(args):
                if args.exc_value is not None:
                    self.record_fatal(args.exc_type, args.exc_value, args.exc_traceback)
                previous_thread_hook(args)

            sys.excepthook = _excepthook
            threading.excepthook = _threading_excepthook
            atexit.register(self.handle_shutdown)

    def uninstall_fatal_handler(self) -> None:
        """Restore the hooks replaced by ``install_fatal_handler``."""
        shared = self._shared
        with shared.lock:
            if shared.previous_excepthook is None:
                return
            sys.excepthook = shared.previous_excepthook
            threading.excepthook = shared.previous_threading_excepthook
            shared.previous_excepthook = None
            shared.previous_threading_excepthook = None
            atexit.unregister(self.handle_shutdown)

    @staticmethod
    def format_fatal(exc_type: Type[BaseException], exc: BaseException, tb: Optional[TracebackType]) -> str:
        frames = traceback.extract_tb(tb) if tb is not None else []
        if frames:
            file_name, line = frames[-1].filename, frames[-1].lineno
        else:
            file_name, line = "unknown", 0
        return f"Fatal error: {exc_type.__name__}: {exc} in {file_name} on line {line}"

    def handle_shutdown(self) -> None:
        """
        Write the last uncaught exception, if any, to the fatal-error stream.

        Never raises; a nested call while one is running returns immediately.
        """
        shared = self._shared
        if shared.handling_fatal:
            return
        shared.handling_fatal = True
        try:
            fatal = shared.last_fatal
            if fatal is None:
                return
            shared.last_fatal = None
            self.log(LogLevel.CRITICAL, self.format_fatal(*fatal), stream=FATAL_STREAM)
        except Exception:
            try:
                logger.exception("Failed to record fatal error")
            except Exception:
                pass
        finally:
            shared.handling_fatal = False


__all__ = [
    "DEFAULT_STREAM",
    "FATAL_STREAM",
    "FacadeState",
    "LogFacade",
]
