"""Bencode codec used on the nREPL wire.

Grammar:
    string  := <length>:<bytes>      e.g. 4:spam
    integer := i<decimal>e           e.g. i-42e
    list    := l<value>*e
    dict    := d(<string><value>)*e

Encoding keeps dictionary insertion order. Decoding works on any binary
stream with a ``read(n)`` method (a socket ``makefile("rb")``, ``BytesIO``)
and reads exactly one value per call, so several frames can be pulled from
the same connection one after another.

Decoded strings are ``bytes``; dictionary keys are decoded to ``str``.
Text interpretation of values is left to the caller.
"""

import io
from typing import Any, BinaryIO, Dict, List, Mapping, Optional

from nrepleval.errors import MalformedFrame, ResponseTooLarge

_DIGITS = b"0123456789"
_READ_CHUNK = 64 * 1024


# ============================================================================
# Encoding
# ============================================================================

def encode(value: Any) -> bytes:
    """
    Encode a value to bencode.

    Args:
        value: bytes, str, int, list/tuple or mapping (nested freely)

    Returns:
        Encoded frame

    Raises:
        TypeError: If a value (or dictionary key) has an unsupported type
        ValueError: If a mapping contains the same key twice once encoded
    """
    buf = bytearray()
    _encode_into(buf, value)
    return bytes(buf)


def write_value(stream: BinaryIO, value: Any) -> None:
    """Encode a value and write it to a binary stream."""
    stream.write(encode(value))


def _encode_bytes(buf: bytearray, data: bytes) -> None:
    buf += str(len(data)).encode("ascii")
    buf += b":"
    buf += data


def _encode_into(buf: bytearray, value: Any) -> None:
    if isinstance(value, (bytes, bytearray, memoryview)):
        _encode_bytes(buf, bytes(value))
    elif isinstance(value, str):
        _encode_bytes(buf, value.encode("utf-8"))
    elif isinstance(value, bool):
        # bool is an int subclass; nREPL has no boolean type
        raise TypeError("Cannot bencode a bool")
    elif isinstance(value, int):
        buf += b"i%de" % value
    elif isinstance(value, (list, tuple)):
        buf += b"l"
        for item in value:
            _encode_into(buf, item)
        buf += b"e"
    elif isinstance(value, Mapping):
        buf += b"d"
        seen = set()
        for key, item in value.items():
            if isinstance(key, str):
                raw_key = key.encode("utf-8")
            elif isinstance(key, (bytes, bytearray)):
                raw_key = bytes(key)
            else:
                raise TypeError(f"Dictionary keys must be str or bytes, got {type(key).__name__}")
            if raw_key in seen:
                raise ValueError(f"Duplicate dictionary key: {raw_key!r}")
            seen.add(raw_key)
            _encode_bytes(buf, raw_key)
            _encode_into(buf, item)
        buf += b"e"
    else:
        raise TypeError(f"Cannot bencode value of type {type(value).__name__}")


# ============================================================================
# Decoding
# ============================================================================

class _ListFrame:
    __slots__ = ("items",)

    def __init__(self) -> None:
        self.items: List[Any] = []

    def add(self, value: Any) -> None:
        self.items.append(value)

    def close(self) -> List[Any]:
        return self.items


class _DictFrame:
    __slots__ = ("items", "pending_key")

    def __init__(self) -> None:
        self.items: Dict[str, Any] = {}
        self.pending_key: Optional[str] = None

    def add(self, value: Any) -> None:
        if self.pending_key is None:
            if not isinstance(value, bytes):
                raise MalformedFrame(
                    f"Dictionary key must be a string, got {type(value).__name__}"
                )
            try:
                key = value.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedFrame(f"Dictionary key is not UTF-8: {value!r}") from exc
            if key in self.items:
                raise MalformedFrame(f"Duplicate dictionary key: {key!r}")
            self.pending_key = key
        else:
            self.items[self.pending_key] = value
            self.pending_key = None

    def close(self) -> Dict[str, Any]:
        if self.pending_key is not None:
            raise MalformedFrame(f"Missing value for dictionary key {self.pending_key!r}")
        return self.items


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(min(remaining, _READ_CHUNK))
        if not chunk:
            raise MalformedFrame(
                f"Stream ended inside a string: expected {size} bytes, got {size - remaining}"
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _next_token(stream: BinaryIO) -> bytes:
    token = stream.read(1)
    if not token:
        raise MalformedFrame("Stream ended before the value was complete")
    return token


def _read_until(stream: BinaryIO, terminator: bytes, what: str) -> bytes:
    chars = bytearray()
    while True:
        char = stream.read(1)
        if not char:
            raise MalformedFrame(f"Stream ended inside {what}")
        if char == terminator:
            return bytes(chars)
        chars += char


def _read_int(stream: BinaryIO) -> int:
    raw = _read_until(stream, b"e", "an integer")
    digits = raw[1:] if raw.startswith(b"-") else raw
    if not digits or any(c not in _DIGITS for c in digits):
        raise MalformedFrame(f"Invalid integer: {raw!r}")
    return int(raw)


def _read_string(stream: BinaryIO, first: bytes, max_string: Optional[int]) -> bytes:
    raw = first + _read_until(stream, b":", "a string length prefix")
    if any(c not in _DIGITS for c in raw):
        raise MalformedFrame(f"Invalid string length: {raw!r}")
    size = int(raw)
    if max_string is not None and size > max_string:
        raise ResponseTooLarge(f"String of {size} bytes exceeds the {max_string} byte limit")
    return _read_exact(stream, size)


def _read_value(stream: BinaryIO, token: bytes, max_string: Optional[int]) -> Any:
    # Containers are tracked on an explicit stack so nesting depth is not
    # bounded by the interpreter recursion limit.
    stack: List[Any] = []
    while True:
        if token == b"l":
            stack.append(_ListFrame())
            token = _next_token(stream)
            continue
        if token == b"d":
            stack.append(_DictFrame())
            token = _next_token(stream)
            continue

        if token == b"e":
            if not stack:
                raise MalformedFrame("Unexpected end marker")
            value = stack.pop().close()
        elif token == b"i":
            value = _read_int(stream)
        elif token in (b"0", b"1", b"2", b"3", b"4", b"5", b"6", b"7", b"8", b"9"):
            value = _read_string(stream, token, max_string)
        else:
            raise MalformedFrame(f"Unexpected token {token!r}")

        if not stack:
            return value
        stack[-1].add(value)
        token = _next_token(stream)


def read_value(stream: BinaryIO, max_string: Optional[int] = None) -> Optional[Any]:
    """
    Read exactly one bencoded value from a binary stream.

    Args:
        stream: Object with a blocking ``read(n)`` method
        max_string: Largest string length accepted, checked against the
            length prefix before any of the payload is read

    Returns:
        The decoded value, or None if the stream ended cleanly before the
        first byte of a new value.

    Raises:
        MalformedFrame: If the bytes break the grammar or the stream ends
            (or is reset) in the middle of a value
        ResponseTooLarge: If a string is longer than ``max_string``
        ConnectionResetError: If the stream is reset before the first byte
    """
    token = stream.read(1)
    if not token:
        return None
    try:
        return _read_value(stream, token, max_string)
    except ConnectionResetError as exc:
        raise MalformedFrame("Connection reset in the middle of a value") from exc


def decode(data: bytes) -> Any:
    """
    Decode a buffer holding exactly one bencoded value.

    Raises:
        MalformedFrame: If the buffer is empty, malformed, or has trailing bytes
    """
    stream = io.BytesIO(data)
    value = read_value(stream)
    if value is None:
        raise MalformedFrame("Empty input")
    trailing = len(data) - stream.tell()
    if trailing:
        raise MalformedFrame(f"{trailing} trailing bytes after value")
    return value
