"""
EPP Framing

Handles EPP frame encoding/decoding per RFC 5734.
Each EPP message is prefixed with a 4-byte length header (network byte order)
that counts the header itself plus the XML payload.
"""

import struct
from typing import Callable

from pdt_epp.exceptions import EPPFrameError


HEADER_SIZE = 4

# Maximum frame size (10MB - reasonable limit)
MAX_FRAME_SIZE = 10 * 1024 * 1024

# Minimum frame size (header only)
MIN_FRAME_SIZE = HEADER_SIZE


def encode_frame(data: bytes) -> bytes:
    """
    Encode data with EPP 4-byte length prefix.

    The length includes the 4 header bytes themselves.

    Args:
        data: XML data to encode

    Returns:
        Framed data with length prefix

    Raises:
        EPPFrameError: If data is too large
    """
    total_length = len(data) + HEADER_SIZE

    if total_length > MAX_FRAME_SIZE:
        raise EPPFrameError(f"Frame too large: {total_length} bytes (max {MAX_FRAME_SIZE})")

    return struct.pack("!I", total_length) + data


def decode_frame_header(header: bytes) -> int:
    """
    Decode EPP frame header to get total length.

    Args:
        header: 4-byte header

    Returns:
        Total frame length (including header)

    Raises:
        EPPFrameError: If header is invalid
    """
    if len(header) != HEADER_SIZE:
        raise EPPFrameError(f"Invalid header length: {len(header)} (expected {HEADER_SIZE})")

    length = struct.unpack("!I", header)[0]

    if length < MIN_FRAME_SIZE:
        raise EPPFrameError(f"Frame length too small: {length}")

    if length > MAX_FRAME_SIZE:
        raise EPPFrameError(f"Frame length too large: {length}")

    return length


def read_frame(read_func: Callable[[int], bytes]) -> bytes:
    """
    Read one complete EPP frame.

    Consumes exactly the header and the declared payload; nothing beyond
    the frame is read.

    Args:
        read_func: Function returning up to n bytes, b"" on end of stream
            (e.g. socket.recv)

    Returns:
        Frame payload (without header)

    Raises:
        EPPFrameError: If the header is invalid or the stream ends early
    """
    header = _read_exactly(read_func, HEADER_SIZE)
    if not header:
        raise EPPFrameError("Connection closed while reading header")
    if len(header) != HEADER_SIZE:
        raise EPPFrameError(f"Connection closed with partial header ({len(header)} bytes)")

    payload_length = decode_frame_header(header) - HEADER_SIZE
    if payload_length == 0:
        return b""

    payload = _read_exactly(read_func, payload_length)
    if len(payload) != payload_length:
        raise EPPFrameError(f"Incomplete frame: got {len(payload)}, expected {payload_length}")

    return payload


def write_frame(write_func: Callable[[bytes], int], data: bytes) -> int:
    """
    Write a complete frame.

    Args:
        write_func: Function that writes bytes and returns the count written
            (e.g. socket.send)
        data: Frame payload

    Returns:
        Number of bytes written (including header)

    Raises:
        EPPFrameError: If the payload is too large or the write stalls
    """
    frame = encode_frame(data)
    total_written = 0

    while total_written < len(frame):
        written = write_func(frame[total_written:])
        if written is None or written <= 0:
            raise EPPFrameError("Failed to write frame")
        total_written += written

    return total_written


def _read_exactly(read_func: Callable[[int], bytes], length: int) -> bytes:
    """Read up to length bytes, stopping early only at end of stream."""
    chunks = []
    remaining = length

    while remaining > 0:
        chunk = read_func(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)

    return b"".join(chunks)
