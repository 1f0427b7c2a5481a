"""InfluxDB line protocol rendering.

Each sample becomes one line::

    measurement,tag1=v1,tag2=v2 field1=1,field2=2 1700000000

Timestamps are Unix seconds; the writer uploads with ``precision=s``.
"""

import io
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

TAG_VALUE_LIMIT = 1024
ELLIPSIS = "..."


def escape_tag_value(value: str) -> str:
    """Escape free text for use as a line protocol tag value.

    Commas, equals signs and spaces are backslash-escaped, in that order.
    Values longer than TAG_VALUE_LIMIT code points after escaping are cut to
    ``TAG_VALUE_LIMIT - 3`` code points followed by ``...``.

    Args:
        value: Arbitrary text such as a workflow name.

    Returns:
        Escaped, length-capped tag value.
    """
    escaped = value.replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")
    if len(escaped) <= TAG_VALUE_LIMIT:
        return escaped
    return escaped[: TAG_VALUE_LIMIT - len(ELLIPSIS)] + ELLIPSIS


def unescape_tag_value(value: str) -> str:
    """Reverse escape_tag_value for values that were not truncated."""
    return value.replace("\\ ", " ").replace("\\=", "=").replace("\\,", ",")


@dataclass(frozen=True)
class MetricSample:
    """One line protocol record."""

    measurement: str
    tags: tuple[tuple[str, str], ...]
    fields: tuple[tuple[str, int], ...]
    timestamp: int

    @classmethod
    def create(
        cls,
        measurement: str,
        tags: dict[str, str],
        fields: dict[str, int],
        timestamp: datetime | int,
    ) -> "MetricSample":
        """Build a sample, keeping tag and field order as given.

        Args:
            measurement: Measurement name.
            tags: Tag values, already escaped where needed.
            fields: Integer field values.
            timestamp: Sample time as datetime or Unix seconds.
        """
        if isinstance(timestamp, datetime):
            timestamp = int(timestamp.timestamp())
        return cls(
            measurement=measurement,
            tags=tuple(tags.items()),
            fields=tuple(fields.items()),
            timestamp=timestamp,
        )

    def to_line(self) -> str:
        """Render the sample as a newline-terminated line."""
        tag_set = "".join(f",{key}={value}" for key, value in self.tags)
        field_set = ",".join(f"{key}={value}" for key, value in self.fields)
        return f"{self.measurement}{tag_set} {field_set} {self.timestamp}\n"


class CollectionBuffer:
    """Append-only accumulator for the lines of one export run.

    Appends are serialized with a single lock, so writers on any thread or
    task never interleave within a line.
    """

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._lock = threading.Lock()
        self._sample_count = 0

    def write(self, sample: MetricSample) -> None:
        """Append one sample."""
        self.extend((sample,))

    def extend(self, samples: Iterable[MetricSample]) -> None:
        """Append samples as one atomic write."""
        lines = [sample.to_line() for sample in samples]
        if not lines:
            return
        payload = "".join(lines).encode("utf-8")
        with self._lock:
            self._buffer.write(payload)
            self._sample_count += len(lines)

    @property
    def sample_count(self) -> int:
        """Number of samples written so far."""
        return self._sample_count

    def getvalue(self) -> bytes:
        """Accumulated newline-delimited payload."""
        with self._lock:
            return self._buffer.getvalue()

    def __len__(self) -> int:
        with self._lock:
            return self._buffer.tell()
