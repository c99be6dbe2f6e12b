"""Decoding utilities: strict ABI word access and integer reinterpretation."""

from __future__ import annotations

from depwatch.core.errors import DecodeError

WORD = 32


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word; raise if the data is too short."""
    start = WORD * i
    end = start + WORD
    if end > len(data):
        raise DecodeError(f"data too short for word {i}: {len(data)} bytes")
    return data[start:end]


def word_to_int(word: bytes) -> int:
    return int.from_bytes(word, "big", signed=False)


def dynamic_bytes_at(data: bytes, head_index: int) -> bytes:
    """Resolve a dynamic `bytes` value whose offset lives in head word `head_index`.

    Layout: head word → offset; at offset, one length word followed by
    `length` content bytes (right-padded to a word boundary, padding ignored).
    """
    offset = word_to_int(word_at(data, head_index))
    if offset % WORD or offset + WORD > len(data):
        raise DecodeError(f"field offset {offset} outside payload of {len(data)} bytes")
    length = word_to_int(data[offset : offset + WORD])
    start = offset + WORD
    if start + length > len(data):
        raise DecodeError(f"field length {length} at offset {offset} overruns payload of {len(data)} bytes")
    return data[start : start + length]


def topic_bytes(topic_hex: str) -> bytes:
    h = topic_hex[2:] if topic_hex.lower().startswith("0x") else topic_hex
    try:
        raw = bytes.fromhex(h)
    except ValueError as e:
        raise DecodeError(f"topic is not valid hex: {topic_hex!r}") from e
    if len(raw) != WORD:
        raise DecodeError(f"topic must be 32 bytes, got {len(raw)}")
    return raw


def le_uint64(raw: bytes) -> int:
    """Reinterpret the first 8 bytes as an unsigned little-endian integer."""
    if len(raw) < 8:
        raise DecodeError(f"need at least 8 bytes for a uint64, got {len(raw)}")
    return int.from_bytes(raw[:8], "little", signed=False)
