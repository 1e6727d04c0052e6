"""
MessagePack codec for presence frames.

Every frame on the wire is a single MessagePack map carrying a "type" key.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Raised when a frame is not a well-formed MessagePack map."""


# Pose frames are tiny; these limits only exist to bound hostile payloads.
MAX_BUFFER_LEN = 256 * 1024
MAX_STR_LEN = 16 * 1024
MAX_BIN_LEN = 16 * 1024
MAX_ARRAY_LEN = 1024
MAX_MAP_LEN = 256
MAX_EXT_LEN = 1024


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode one frame into a dict.

    Raises DecodeError if the frame is too large, malformed, or not a map.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result
