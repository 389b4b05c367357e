# =======================================================================================
# campus_access/workers/serial_worker.py - Background Serial Worker
# =======================================================================================
import json
import time
import logging
import threading
from typing import Optional
import serial
from pydantic import ValidationError
from ..models.schemas import ReaderMessage
from ..services.reader_service import ReaderService

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 3


class SerialWorker:
    """Background worker reading badge scans from the serial reader bridge."""

    def __init__(self, reader_service: ReaderService, port: str, baud: int = 115200, timeout: int = 1):
        self.reader_service = reader_service
        self.port = port
        self.baud = baud
        self.timeout = timeout
        self.running = False
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Start the worker thread; returns False when no port is configured."""
        if not self.port:
            logger.info("SERIAL_PORT not configured; tap reader bridge disabled")
            return False

        self.running = True
        self._thread = threading.Thread(target=self._run_loop, name="serial-worker", daemon=True)
        self._thread.start()
        logger.info("Serial worker started on %s", self.port)
        return True

    def stop(self, timeout: Optional[float] = None):
        """Signal the loop to exit and wait for the thread to finish."""
        self.running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout if timeout is not None else RECONNECT_DELAY_SECONDS + self.timeout)
            self._thread = None

    # ------------------------------------------------------------------
    # Line handling
    # ------------------------------------------------------------------
    def handle_line(self, line: str) -> Optional[str]:
        """Process one raw line from the bridge; returns the reply line, if any."""
        line = line.strip()
        if not line:
            return None

        try:
            message = ReaderMessage.model_validate_json(line)
        except ValidationError as exc:
            logger.warning("Unparseable reader frame %r: %s", line, exc)
            return None

        response = self.reader_service.process_reader_message(message)
        if response is None:
            return None
        return json.dumps(response) + "\n"

    def handle_raw(self, raw: bytes) -> Optional[bytes]:
        """Bytes in, bytes out. A frame that blows up is logged and skipped, the loop keeps reading."""
        try:
            reply = self.handle_line(raw.decode(errors="ignore"))
        except Exception:
            logger.exception("Failed to process reader frame %r", raw)
            return None
        return reply.encode() if reply else None

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def _run_loop(self):
        while self.running:
            try:
                self._handle_serial_connection()
            except serial.SerialException as exc:
                logger.error("Serial connection error: %s, retrying in %ss", exc, RECONNECT_DELAY_SECONDS)
                time.sleep(RECONNECT_DELAY_SECONDS)

    def _handle_serial_connection(self):
        logger.info("Opening %s @ %s", self.port, self.baud)

        with serial.Serial(self.port, self.baud, timeout=self.timeout) as ser:
            while self.running:
                raw = ser.readline()
                if not raw:
                    continue

                reply = self.handle_raw(raw)
                if reply:
                    ser.write(reply)
                    logger.debug("Sent: %s", reply.strip())
