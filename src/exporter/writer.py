"""Tile store writers.

The exporter produces the tile database as a stream of SQL text
statements. A writer runs a storage engine that consumes this stream while
the producer is still writing it: the producer runs in its own thread, the
engine in the calling thread, so neither can block the other on a full
pipe or queue.

- SqliteCliWriter pipes the statements into the ``sqlite3`` command
- SqliteLibraryWriter executes them with Python's sqlite3 module
"""

from __future__ import annotations

import logging
import queue
import shutil
import sqlite3
import subprocess
import threading
from pathlib import Path
from typing import Callable, Protocol, TextIO

from shared.errors import ExportError

logger = logging.getLogger(__name__)

Producer = Callable[[TextIO], None]


class TileStoreWriter(Protocol):
    def write(self, db_path: Path, produce: Producer) -> None:
        """Create ``db_path`` from the statements ``produce`` writes.

        Raises ExportError if the engine or the producer fails.
        """
        ...


class _ProducerThread(threading.Thread):
    """Runs the producer and closes its stream when done."""

    def __init__(self, produce: Producer, stream: TextIO):
        super().__init__(name="tile-store-producer", daemon=True)
        self._produce = produce
        self._stream = stream
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            with self._stream:
                self._produce(self._stream)
        except BrokenPipeError:
            # The consumer went away; its own exit status reports why.
            logger.debug("Tile store consumer closed the stream early")
        except Exception as e:
            logger.error("Tile producer failed: %s", e)
            self.error = e


class SqliteCliWriter:
    """Writes the database with the external ``sqlite3`` command."""

    def __init__(self, executable: str = "sqlite3"):
        self.executable = executable

    def write(self, db_path: Path, produce: Producer) -> None:
        cmd = [self.executable, "-bail", str(db_path)]
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise ExportError(f"cannot run {self.executable}: {e}") from e

        producer = _ProducerThread(produce, proc.stdin)
        producer.start()
        output = proc.stdout.read()
        proc.stdout.close()
        returncode = proc.wait()
        producer.join()

        if returncode != 0:
            raise ExportError(f"{self.executable} exited with status {returncode}", output.strip())
        if producer.error is not None:
            raise ExportError(f"writing tiles failed: {producer.error}", output.strip()) \
                from producer.error


class _QueueStream:
    """Write end of a bounded statement queue, closed with a None sentinel."""

    def __init__(self, maxsize: int):
        self.queue: queue.Queue[str | None] = queue.Queue(maxsize)
        self.broken = threading.Event()

    def write(self, s: str) -> int:
        if self.broken.is_set():
            raise BrokenPipeError("tile store writer stopped consuming")
        self.queue.put(s)
        return len(s)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.queue.put(None)

    def __enter__(self) -> _QueueStream:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SqliteLibraryWriter:
    """Writes the database in-process with the sqlite3 module."""

    def __init__(self, queue_size: int = 64):
        self.queue_size = queue_size

    def write(self, db_path: Path, produce: Producer) -> None:
        stream = _QueueStream(self.queue_size)
        # Transactions are controlled by the statements themselves.
        conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
        producer = _ProducerThread(produce, stream)
        producer.start()

        pending = ""
        failure: sqlite3.Error | None = None
        try:
            while (chunk := stream.queue.get()) is not None:
                if failure is not None:
                    continue  # drain so the producer can finish
                pending += chunk
                try:
                    pending = self._execute_complete(conn, pending)
                except sqlite3.Error as e:
                    logger.error("sqlite error: %s", e)
                    failure = e
                    stream.broken.set()
        finally:
            producer.join()
            conn.close()

        if failure is not None:
            raise ExportError(f"sqlite failed on {db_path}: {failure}") from failure
        if producer.error is not None:
            raise ExportError(f"writing tiles failed: {producer.error}") from producer.error
        if pending.strip():
            raise ExportError(f"incomplete statement at end of stream: {pending[:80]!r}")

    @staticmethod
    def _execute_complete(conn: sqlite3.Connection, text: str) -> str:
        """Execute every complete statement at the start of ``text``; return the rest."""
        start = 0
        end = text.find(";", start)
        while end != -1:
            stmt = text[start:end + 1]
            if sqlite3.complete_statement(stmt):
                conn.execute(stmt)
                start = end + 1
                end = text.find(";", start)
            else:
                end = text.find(";", end + 1)
        return text[start:]


def default_writer(executable: str = "sqlite3") -> TileStoreWriter:
    """The sqlite3 command if it is installed, the sqlite3 module otherwise."""
    if shutil.which(executable):
        return SqliteCliWriter(executable)
    logger.info("%s not found, writing the tile store with the sqlite3 module", executable)
    return SqliteLibraryWriter()
