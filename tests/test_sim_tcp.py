import socket
import threading
import time

import pytest

QtCore = pytest.importorskip("PyQt5.QtCore")

from conftest import encode, make_message
from telemetry.model import EventRecord, ExerciseEndRecord, RecordKind, StreamRecord
from telemetry.sim_tcp import SimTelemetryWorker


@pytest.fixture(scope="module", autouse=True)
def qt_app():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


class FakeSimulator:
    """Accepts one client, sends the given chunks, then closes."""

    def __init__(self, chunks, delay=0.0):
        self.chunks = chunks
        self.delay = delay
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        conn, _ = self._server.accept()
        with conn:
            for chunk in self.chunks:
                conn.sendall(chunk)
                if self.delay:
                    time.sleep(self.delay)
        self._server.close()

    def join(self):
        self._thread.join(timeout=5)


def collect(worker):
    records, decode_errors, framing_errors = [], [], []
    worker.record_received.connect(records.append)
    worker.decode_error.connect(decode_errors.append)
    worker.framing_error.connect(framing_errors.append)
    return records, decode_errors, framing_errors


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_session_decodes_fragmented_stream_in_order():
    stream = b"".join([
        encode(make_message("ExerciseStart", ExerciseName="Parking {hard}")),
        encode(make_message("Stream", 0, 0, 1, 0, Speed=12, SpeedLimit=30, FuelConsumption=5.0)),
        encode(make_message("Event", 0, 0, 2, 0, Event="CurbCollision")),
        encode(make_message("ExerciseEnd", 0, 0, 3, 0)),
    ])
    chunks = [stream[i:i + 5] for i in range(0, len(stream), 5)]
    server = FakeSimulator(chunks, delay=0.001)

    worker = SimTelemetryWorker(port=server.port, read_size=7)
    records, decode_errors, _ = collect(worker)
    worker.run()
    server.join()

    assert worker.failure is None
    assert decode_errors == []
    assert [r.kind for r in records] == [
        RecordKind.EXERCISE_START, RecordKind.STREAM, RecordKind.EVENT, RecordKind.EXERCISE_END,
    ]
    assert records[0].exercise_name == "Parking {hard}"
    assert isinstance(records[1], StreamRecord) and records[1].speed == 12
    assert isinstance(records[3], ExerciseEndRecord)
    assert worker.documents_framed == 4


def test_bad_message_is_skipped_by_default():
    good = encode(make_message("Event", Event="Speeding"))
    bad = b'{"Type":"Event","Timestamp":{"Hour":"x"}}'
    server = FakeSimulator([good + bad + good])

    worker = SimTelemetryWorker(port=server.port)
    records, decode_errors, _ = collect(worker)
    worker.run()
    server.join()

    assert worker.failure is None
    assert len(records) == 2
    assert all(isinstance(r, EventRecord) for r in records)
    assert len(decode_errors) == 1
    assert worker.decoder.failed == 1


def test_strict_mode_stops_on_first_bad_message():
    good = encode(make_message("Event", Event="Speeding"))
    server = FakeSimulator([good + b'{"Type":}' + good])

    worker = SimTelemetryWorker(port=server.port, strict=True)
    records, decode_errors, _ = collect(worker)
    worker.run()
    server.join()

    assert worker.failure is not None
    assert "Decode error" in worker.failure
    assert len(records) == 1
    assert decode_errors == []


def test_framing_errors_are_reported_and_stream_continues():
    end = encode(make_message("ExerciseEnd"))
    server = FakeSimulator([b"noise" + end + b"}" + end])

    worker = SimTelemetryWorker(port=server.port)
    records, _, framing_errors = collect(worker)
    worker.run()
    server.join()

    assert len(records) == 2
    assert len(framing_errors) == 2
    assert worker.framing_errors == 2


def test_connection_refused_is_a_failure():
    statuses = []
    worker = SimTelemetryWorker(port=free_port(), connect_timeout=1.0)
    worker.status_update.connect(statuses.append)
    worker.run()

    assert worker.failure is not None
    assert "Could not connect" in worker.failure
    assert any(s.startswith("ERROR:") for s in statuses)


def test_handle_chunk_without_socket():
    worker = SimTelemetryWorker()
    records, _, _ = collect(worker)
    doc = encode(make_message("Event", Event="Roadkill"))
    assert worker.handle_chunk(doc[:10]) is True
    assert records == []
    assert worker.handle_chunk(doc[10:]) is True
    assert [r.event for r in records] == ["Roadkill"]


def test_stop_ends_threaded_session():
    server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server_sock.bind(("127.0.0.1", 0))
    server_sock.listen(1)
    port = server_sock.getsockname()[1]

    worker = SimTelemetryWorker(port=port)
    worker.start()
    conn, _ = server_sock.accept()
    try:
        worker.stop()
        assert worker.wait(5000)
        assert worker.failure is None
    finally:
        conn.close()
        server_sock.close()
