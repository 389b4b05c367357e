# =======================================================================================
# tests/test_reader_bridge.py - Serial Reader Bridge
# =======================================================================================
import json
import time
import pytest
from sqlalchemy import text
from campus_access.models.schemas import ReaderMessage
from campus_access.services import ReaderService
from campus_access.workers import SerialWorker


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reader(ledger, clock):
    return ReaderService(ledger, debounce_seconds=0.5, clock=clock)


def _count_taps(db):
    with db.get_connection() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM taps")).scalar()


def test_scan_records_entry_then_exit(db, registry, reader, clock, make_cardholder):
    registry.register_cardholder(make_cardholder(balance="3.50"))

    first = reader.process_reader_message(ReaderMessage(t="req", id=1, uid="A1"))
    clock.now += 5
    second = reader.process_reader_message(ReaderMessage(t="req", id=2, uid="A1"))

    assert first["t"] == "resp"
    assert first["id"] == 1
    assert (first["status"], first["event"]) == (1, 1)
    assert first["name"] == "Ann"
    assert first["balance"] == "3.50"
    assert (second["status"], second["event"]) == (1, 2)
    assert _count_taps(db) == 2


def test_repeated_reads_are_debounced(db, registry, reader, clock, make_cardholder):
    registry.register_cardholder(make_cardholder())

    first = reader.process_reader_message(ReaderMessage(t="req", id=1, uid="A1"))
    clock.now += 0.2
    repeat = reader.process_reader_message(ReaderMessage(t="req", id=2, uid="A1"))

    assert repeat["event"] == first["event"] == 1
    assert _count_taps(db) == 1


def test_explicit_direction_from_reader(registry, reader, make_cardholder):
    registry.register_cardholder(make_cardholder())

    response = reader.process_reader_message(ReaderMessage(t="req", id=1, uid="A1", dir="EXIT"))

    assert (response["status"], response["event"]) == (1, 2)


def test_unknown_badge_is_denied(db, reader):
    response = reader.process_reader_message(ReaderMessage(t="req", id=9, uid="ghost"))

    assert response["status"] == 0
    assert response["event"] == 0
    assert response["name"] == "Guest"
    assert _count_taps(db) == 0


def test_non_request_frames_are_ignored(reader):
    assert reader.process_reader_message(ReaderMessage(t="hello")) is None
    assert reader.process_reader_message(ReaderMessage(t="req", id=1)) is None


def test_worker_handles_lines(registry, reader, make_cardholder):
    registry.register_cardholder(make_cardholder())
    worker = SerialWorker(reader, port="")

    reply = worker.handle_line('{"t": "req", "id": 4, "uid": "A1", "dir": "entry"}\n')

    assert reply.endswith("\n")
    body = json.loads(reply)
    assert (body["id"], body["status"], body["event"]) == (4, 1, 1)
    assert worker.handle_line("not json") is None
    assert worker.handle_line("   ") is None
    assert worker.handle_line('{"t": "ping"}') is None


def test_worker_without_port_does_not_start(reader):
    worker = SerialWorker(reader, port="")

    assert worker.start() is False
    assert worker.running is False


class ExplodingReader:
    def process_reader_message(self, message):
        raise RuntimeError("reader service failure")


def test_failing_frame_does_not_kill_worker(registry, reader, make_cardholder):
    failing = SerialWorker(ExplodingReader(), port="")

    assert failing.handle_raw(b'{"t": "req", "id": 1, "uid": "A1"}\n') is None
    assert failing.handle_raw(b'{"t": "req", "id": 2, "uid": "A1"}\n') is None

    registry.register_cardholder(make_cardholder())
    worker = SerialWorker(reader, port="")
    reply = worker.handle_raw(b'{"t": "req", "id": 3, "uid": "A1", "dir": "entry"}\n')

    assert isinstance(reply, bytes)
    assert json.loads(reply)["id"] == 3
    assert worker.handle_raw(b"\xff\xfe garbage") is None


def test_stop_waits_for_worker_thread(reader, monkeypatch):
    worker = SerialWorker(reader, port="/dev/ttyUSB-test")

    def idle_connection():
        while worker.running:
            time.sleep(0.01)

    monkeypatch.setattr(worker, "_handle_serial_connection", idle_connection)

    assert worker.start() is True
    thread = worker._thread
    worker.stop(timeout=2)

    assert not thread.is_alive()
    assert worker._thread is None
    assert worker.running is False
