# records.py
import sys
import threading
from dataclasses import dataclass
from typing import Optional

FAILURE_STATUS = "ERR"


@dataclass(frozen=True)
class ResultRecord:
    """One measured request, printed as a single tab separated line."""

    identity: str
    timestamp_us: int
    latency_us: int
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_line(self) -> str:
        fields = [self.identity, str(self.timestamp_us), str(self.latency_us)]
        if self.ok:
            fields.append(str(self.status))
        else:
            # keep the record on one line no matter what the error says
            message = " ".join(self.error.split())
            fields += [FAILURE_STATUS, message]
        return "\t".join(fields)

    @classmethod
    def from_line(cls, line: str) -> "ResultRecord":
        parts = line.rstrip("\n").split("\t")
        if len(parts) == 4 and parts[3] != FAILURE_STATUS:
            identity, ts, latency, status = parts
            return cls(identity, int(ts), int(latency), status=int(status))
        if len(parts) == 5 and parts[3] == FAILURE_STATUS:
            identity, ts, latency, _, error = parts
            return cls(identity, int(ts), int(latency), error=error)
        raise ValueError(f"Malformed record line: {line!r}")


def failure_message(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class RecordWriter:
    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdout
        self.lock = threading.Lock()  # one record per write, even across threads

    def emit(self, record: ResultRecord):
        line = record.to_line() + "\n"
        with self.lock:
            self.stream.write(line)
            self.stream.flush()
