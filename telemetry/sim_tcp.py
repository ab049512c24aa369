# telemetry/sim_tcp.py
"""
Driving simulator telemetry backend (TCP).

The simulator serves telemetry on a TCP port as a continuous stream of
JSON objects written back to back. This worker:

- Connects to the simulator (no retry; a failed connect ends the session)
- Splits the byte stream into objects with JsonObjectFramer
- Decodes each object with RecordDecoder
- Emits record_received for every record, in arrival order

A message that fails to decode is reported and skipped, unless the
worker runs in strict mode, where it ends the session.
"""

import logging
import socket
from typing import Optional

from PyQt5 import QtCore

from .decoder import DecodeError, RecordDecoder
from .framer import FramingError, JsonObjectFramer
from .protocol import DEFAULT_PROFILE, ProtocolProfile
from .settings import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_READ_SIZE

logger = logging.getLogger(__name__)


class SimTelemetryWorker(QtCore.QThread):
    """
    Background thread that reads the simulator's TCP telemetry stream.

    After the thread finishes, ``failure`` holds the reason the session
    ended abnormally, or None if the simulator closed the connection or
    stop() was called.
    """

    record_received = QtCore.pyqtSignal(object)  # one decoded record
    status_update = QtCore.pyqtSignal(str)       # status message
    decode_error = QtCore.pyqtSignal(str)        # skipped message
    framing_error = QtCore.pyqtSignal(str)       # stray bytes / dropped object

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        read_size: int = DEFAULT_READ_SIZE,
        connect_timeout: float = 5.0,
        strict: bool = False,
        max_document_bytes: Optional[int] = None,
        profile: ProtocolProfile = DEFAULT_PROFILE,
        parent=None,
    ):
        super().__init__(parent)
        self.host = host
        self.port = port
        self.read_size = read_size
        self.connect_timeout = connect_timeout
        self.strict = strict
        self.running = False
        self.failure: Optional[str] = None

        self.framer = JsonObjectFramer(
            on_error=self._on_framing_error,
            max_document_bytes=max_document_bytes,
        )
        self.decoder = RecordDecoder(profile)
        self.documents_framed = 0
        self.framing_errors = 0

        self._sock: Optional[socket.socket] = None

    # ------------------ Core QThread loop ------------------ #

    def run(self):
        self.failure = None
        self.running = True
        self.framer.reset()
        self.status_update.emit(f"Connecting to simulator at {self.host}:{self.port}...")

        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
            sock.settimeout(1.0)  # 1-second timeout to allow clean shutdown
            self._sock = sock
        except OSError as e:
            self.running = False
            self._fail(f"Could not connect to {self.host}:{self.port}: {e}")
            return

        self.status_update.emit("Connected to simulator.")

        try:
            while self.running:
                try:
                    data = sock.recv(self.read_size)
                except socket.timeout:
                    # Periodic timeout just so we can check self.running
                    continue
                except OSError as e:
                    if self.running:
                        self._fail(f"Read from simulator failed: {e}")
                    break

                if not data:
                    self.status_update.emit("Simulator closed the connection.")
                    break

                if not self.handle_chunk(data):
                    break

        finally:
            self.running = False
            self._close_socket()
            if self.framer.pending:
                logger.warning("Connection ended inside an object, %d bytes dropped", self.framer.pending)
            logger.info(
                "Session summary: framed %d, %s, framing errors %d",
                self.documents_framed, self.decoder.summary(), self.framing_errors,
            )
            self.status_update.emit("Simulator telemetry stopped.")

    def handle_chunk(self, data: bytes) -> bool:
        """
        Frame and decode one chunk of received bytes.

        Returns False when the session must end (strict mode decode error).
        """
        for document in self.framer.feed(data):
            self.documents_framed += 1
            try:
                record = self.decoder.decode(document)
            except DecodeError as e:
                if self.strict:
                    self._fail(f"Decode error: {e}")
                    return False
                logger.warning("Skipping message: %s (%r)", e, e.document[:200])
                self.decode_error.emit(str(e))
                continue

            self.record_received.emit(record)
        return True

    def stop(self):
        self.running = False
        self._close_socket()

    # ------------------ Internals ------------------ #

    def _on_framing_error(self, error: FramingError):
        self.framing_errors += 1
        logger.warning("Framing error: %s", error)
        self.framing_error.emit(str(error))

    def _fail(self, reason: str):
        self.failure = reason
        logger.error(reason)
        self.status_update.emit(f"ERROR: {reason}")

    def _close_socket(self):
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass
