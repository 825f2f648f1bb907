"""
Streaming extraction of objects from a top-level JSON array.

The datasets are single JSON arrays of flat objects, some tens of megabytes
once decompressed. Rather than parsing the whole document, the scanner tracks
brace depth and cuts out one object at a time, decoding each independently
with orjson.

By default the scanner also tracks whether it is inside a quoted string
(honoring backslash escapes), so braces that appear inside string values do
not disturb the depth count. ``track_strings=False`` disables this and counts
every brace, matching the plain brace-depth behavior.
"""

import logging
import math
from typing import Any, Iterable, Iterator, Optional

import orjson

logger = logging.getLogger(__name__)

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


class ObjectScanner:
    """
    Incremental brace-depth scanner.

    Feed it text in arbitrary chunks; it yields the raw text of each complete
    top-level object inside the first top-level array. Scanner state survives
    across chunk boundaries. Input after that array's closing bracket is
    ignored.
    """

    def __init__(self, track_strings: bool = True):
        self.track_strings = track_strings
        self._in_array = False
        self._closed = False
        self._brackets = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self._buffer: list[str] = []

    @property
    def depth(self) -> int:
        return self._depth

    def feed(self, chunk: str) -> Iterator[str]:
        track_strings = self.track_strings
        buffer = self._buffer

        if self._closed:
            return

        for char in chunk:
            if not self._in_array:
                if char == "[":
                    self._in_array = True
                    self._brackets = 1
                continue

            if track_strings and self._in_string:
                if self._depth > 0:
                    buffer.append(char)
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
                continue

            if char == "{":
                if self._depth == 0:
                    buffer.clear()
                self._depth += 1
                buffer.append(char)
            elif char == "}":
                if self._depth == 0:
                    # Stray closing brace between objects
                    continue
                self._depth -= 1
                buffer.append(char)
                if self._depth == 0:
                    yield "".join(buffer)
                    buffer.clear()
            elif self._depth == 0 and char in "[]":
                self._brackets += 1 if char == "[" else -1
                if self._brackets == 0:
                    # Top-level array closed; ignore anything after it
                    self._closed = True
                    return
            else:
                if track_strings and char == '"':
                    self._in_string = True
                if self._depth > 0:
                    buffer.append(char)

    @property
    def pending(self) -> bool:
        """True if an object was started but never closed."""
        return self._depth > 0


def _as_chunks(source: str | Iterable[str]) -> Iterable[str]:
    if isinstance(source, str):
        return (source,)
    return source


def iter_json_objects(source: str | Iterable[str], track_strings: bool = True) -> Iterator[Any]:
    """
    Yield decoded objects from a top-level JSON array.

    Args:
        source: The whole document as a string, or an iterable of text chunks
                (e.g. an open text file or a generator of decoded blocks)
        track_strings: Ignore braces inside quoted strings (default True)

    Yields:
        Each decoded object, in document order. Objects that fail to decode
        are skipped.
    """
    scanner = ObjectScanner(track_strings=track_strings)
    emitted = 0
    skipped = 0

    for chunk in _as_chunks(source):
        for raw in scanner.feed(chunk):
            try:
                decoded = orjson.loads(raw)
            except orjson.JSONDecodeError as e:
                skipped += 1
                logger.debug(f"Skipping undecodable object ({len(raw)} chars): {e}")
                continue
            emitted += 1
            yield decoded

    if scanner.pending:
        logger.debug("Input ended inside an unterminated object; partial object dropped")
    logger.debug(f"Extracted {emitted:,} objects ({skipped:,} undecodable)")


def iter_named_records(source: str | Iterable[str], track_strings: bool = True) -> Iterator[dict[str, Any]]:
    """
    Yield only mapping records with a non-empty ``name``.

    Anything else (lists, scalars, objects without a usable name) is
    skipped silently; this is data cleanup, not an error.
    """
    for obj in iter_json_objects(source, track_strings=track_strings):
        if not isinstance(obj, dict):
            continue
        name = obj.get("name")
        if not name or (isinstance(name, str) and not name.strip()):
            continue
        yield obj


def estimate_record_count(text: str) -> int:
    """Rough record count for progress display (occurrences of ``"name"``)."""
    return text.count('"name"')


def sanitize_coordinate(value: Any, low: float, high: float) -> Optional[float]:
    """
    Parse a coordinate and keep it only if it lies within [low, high].

    Returns:
        The float value, or None for empty, unparsable or out-of-range input
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number < low or number > high:
        return None
    return number


def sanitize_latitude(value: Any) -> Optional[float]:
    return sanitize_coordinate(value, *LATITUDE_RANGE)


def sanitize_longitude(value: Any) -> Optional[float]:
    return sanitize_coordinate(value, *LONGITUDE_RANGE)
