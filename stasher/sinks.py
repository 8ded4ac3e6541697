"""Line sinks: anything with write(line) can receive pipeline output."""

import os
import sys
import threading


class StreamSink:
    """Writes lines to a text stream (stdout by default)."""

    def __init__(self, stream=None):
        self._stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def write(self, line: str) -> None:
        with self._lock:
            self._stream.write(line)
            self._stream.flush()

    def close(self):
        pass


class FileSink:
    """Append-only file writer; one write per line under a lock."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file = open(path, "a", encoding="utf-8")

    def write(self, line: str) -> None:
        with self._lock:
            if self._file is None:
                raise ValueError(f"FileSink for {self.path} is closed")
            self._file.write(line)
            self._file.flush()

    def close(self):
        if self._file is not None:
            with self._lock:
                self._file.close()
                self._file = None


def sink_for(log_file: str | None = None, stream: str | None = None):
    """Build a sink from config values; returns None if neither is set."""
    if log_file:
        return FileSink(log_file)
    if stream == "stdout":
        return StreamSink(sys.stdout)
    if stream == "stderr":
        return StreamSink(sys.stderr)
    if stream:
        raise ValueError(f"Unknown stream: {stream!r} (expected 'stdout' or 'stderr')")
    return None
