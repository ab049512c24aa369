#!/usr/bin/env python3
"""
Simulator Telemetry Client - Main Entry Point

Connects to the driving simulator's TCP telemetry server and prints one
line per received message to stdout. Logs and status go to stderr.

Usage:
    python main.py                          # 127.0.0.1:1534
    python main.py --host 10.0.0.5 --port 1534
    python main.py --verbose                # show inputs, turn indicator, event descriptions
    python main.py --strict                 # stop on the first undecodable message

Settings can also come from the environment or a .env file
(see telemetry/settings.py).
"""
import logging
import signal
import sys
from typing import List, Optional

from PyQt5 import QtCore

from telemetry.protocol import DEFAULT_PROFILE, load_event_vocabulary
from telemetry.render import render_record
from telemetry.settings import ClientSettings
from telemetry.sim_tcp import SimTelemetryWorker

logger = logging.getLogger("main")


def _arg_value(argv: List[str], flag: str) -> Optional[str]:
    """Value following ``flag`` in argv, or None if the flag is absent."""
    if flag not in argv:
        return None
    index = argv.index(flag)
    if index + 1 >= len(argv):
        raise ValueError(f"{flag} needs a value")
    return argv[index + 1]


def settings_from_args(argv: List[str], settings: ClientSettings) -> ClientSettings:
    """Apply command line overrides on top of environment settings."""
    host = _arg_value(argv, "--host")
    if host:
        settings.host = host

    port = _arg_value(argv, "--port")
    if port is not None:
        try:
            settings.port = int(port)
        except ValueError:
            raise ValueError(f"--port must be an integer, got {port!r}") from None

    if "--strict" in argv:
        settings.strict = True
    if "--verbose" in argv:
        settings.verbose = True
    return settings


def main(settings: ClientSettings) -> int:
    """
    Run one telemetry session.

    Returns the process exit status: 0 when the simulator closed the
    connection, 1 when the session failed.
    """
    profile = DEFAULT_PROFILE
    if settings.event_vocabulary:
        profile = load_event_vocabulary(settings.event_vocabulary)

    app = QtCore.QCoreApplication(sys.argv)

    worker = SimTelemetryWorker(
        host=settings.host,
        port=settings.port,
        read_size=settings.read_size,
        connect_timeout=settings.connect_timeout,
        strict=settings.strict,
        max_document_bytes=settings.max_document_bytes,
        profile=profile,
    )

    # Connect signals
    worker.record_received.connect(
        lambda record: print(render_record(record, settings.verbose, profile), flush=True)
    )
    worker.status_update.connect(lambda msg: logger.info("[Status] %s", msg))
    worker.finished.connect(app.quit)

    # Qt's event loop never returns to Python on its own; poll so Ctrl+C is seen
    signal.signal(signal.SIGINT, lambda *_: worker.stop())
    heartbeat = QtCore.QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(200)

    worker.start()
    app.exec_()
    worker.wait()

    if worker.failure:
        print(f"Telemetry session failed: {worker.failure}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    try:
        settings = settings_from_args(sys.argv[1:], ClientSettings.from_env())

        # Configure logging FIRST - stdout is reserved for telemetry lines
        logging.basicConfig(
            level=settings.log_level,
            format='[%(levelname)s] %(name)s: %(message)s',
            stream=sys.stderr
        )
        logger.info("Settings: %s", settings)

        sys.exit(main(settings))
    except Exception as e:
        print("\n" + "="*60, file=sys.stderr)
        print("FATAL ERROR:", file=sys.stderr)
        print("="*60, file=sys.stderr)
        print(f"Error type: {type(e).__name__}", file=sys.stderr)
        print(f"Error message: {e}", file=sys.stderr)
        import traceback
        print("\nFull traceback:", file=sys.stderr)
        traceback.print_exc()
        print("="*60, file=sys.stderr)
        sys.exit(1)
