"""Deflate + URL-safe base64 envelope for build payloads"""

import base64
import binascii
import json
import logging
import re
import zlib
from typing import Any
from exceptions import BuildDecodeError, TransportDecodeError

COMPRESSION_LEVEL = 9
MAX_PAYLOAD_BYTES = 64 * 1024
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def compress_payload(payload: bytes) -> str:
    """Deflate at max level and encode as base64url without padding."""
    compressed = zlib.compress(payload, COMPRESSION_LEVEL)
    token = base64.urlsafe_b64encode(compressed).decode().rstrip("=")
    logging.debug("Compressed %s byte payload into %s character token", len(payload), len(token))
    return token


def decompress_token(token: str) -> bytes:
    """Reverse ``compress_payload``. Any base64 or inflate failure raises TransportDecodeError."""
    if not token or not _TOKEN_RE.match(token):
        raise TransportDecodeError("Build token contains characters outside the URL-safe base64 alphabet")
    # Fix missing base64 padding
    padded = token + '==='[:(4 - len(token) % 4) % 4]
    try:
        compressed = base64.b64decode(padded.replace("-", "+").replace("_", "/"), validate=True)
    except binascii.Error as e:
        raise TransportDecodeError(f"Build token is not valid base64: {e}") from e
    try:
        inflater = zlib.decompressobj()
        payload = inflater.decompress(compressed, MAX_PAYLOAD_BYTES + 1)
        if len(payload) > MAX_PAYLOAD_BYTES or inflater.unconsumed_tail:
            raise TransportDecodeError(f"Build payload inflates past {MAX_PAYLOAD_BYTES} bytes")
        payload += inflater.flush(MAX_PAYLOAD_BYTES + 1 - len(payload))
    except zlib.error as e:
        raise TransportDecodeError(f"Build token does not inflate: {e}") from e
    if len(payload) > MAX_PAYLOAD_BYTES:
        raise TransportDecodeError(f"Build payload inflates past {MAX_PAYLOAD_BYTES} bytes")
    if not inflater.eof:
        raise TransportDecodeError("Build token does not inflate: incomplete or truncated stream")
    return payload


def compress_json(obj: Any) -> str:
    """Compact JSON, then the same envelope as binary payloads."""
    compact = json.dumps(obj, separators=(",", ":"))
    return compress_payload(compact.encode())


def parse_json(payload: bytes) -> Any:
    """Parse an inflated JSON payload, folding parse errors into BuildDecodeError."""
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise BuildDecodeError(f"Payload is not valid JSON: {e}") from e


def decompress_json(token: str) -> Any:
    return parse_json(decompress_token(token))
