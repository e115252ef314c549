"""Decodes every generation of the compressed ``build`` token.

Generations are told apart after inflating:

* generation 2: first byte is the binary version marker (2)
* generation 1: a JSON object with short keys, recognised by ``p``
* generation 0: any other JSON object, already in long field names

New generations must add a check here without touching the existing ones.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union
from binary_codec import FORMAT_VERSION, decode_binary, encode_binary
from build_model import BuildDescriptor, build_from_dict
from exceptions import TruncatedInputError, UnknownVersionError
from transport import compress_payload, decompress_token, parse_json

JSON_OBJECT_START = ord("{")

GENERATION1_KEYS = {
    "p": "profession",
    "g": "gameMode",
    "e": "equipment",
    "sk": "skills",
    "t": "traits",
    "r": "runeId",
    "rl": "relicId",
}
GENERATION1_EQUIPMENT_KEYS = {
    "s": "slot",
    "st": "stat",
    "w": "weaponType",
    "u": "upgrade",
    "s1": "sigil1Id",
    "s2": "sigil2Id",
    "i1": "infusion1",
    "i2": "infusion2",
    "i3": "infusion3",
}


@dataclass(frozen=True)
class Generation0Payload:
    """Literal JSON build with long field names."""
    data: Dict[str, Any]


@dataclass(frozen=True)
class Generation1Payload:
    """Compact JSON build with short keys."""
    data: Dict[str, Any]


@dataclass(frozen=True)
class Generation2Payload:
    """Binary build, see binary_codec."""
    data: bytes


Payload = Union[Generation0Payload, Generation1Payload, Generation2Payload]


def sniff_payload(raw: bytes) -> Payload:
    """Classify an inflated payload by its leading marker byte or JSON shape."""
    if not raw:
        raise TruncatedInputError("Build payload is empty")
    if raw[0] == FORMAT_VERSION:
        return Generation2Payload(raw)
    if raw.lstrip()[:1] != bytes([JSON_OBJECT_START]):
        raise UnknownVersionError(f"Unrecognised build payload marker 0x{raw[0]:02x}")

    obj = parse_json(raw)
    if not isinstance(obj, dict):
        raise UnknownVersionError("JSON build payload is not an object")
    if "p" in obj:
        return Generation1Payload(obj)
    return Generation0Payload(obj)


def expand_generation1(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map generation 1 short keys to generation 0 field names."""
    expanded = {GENERATION1_KEYS[k]: v for k, v in data.items() if k in GENERATION1_KEYS}
    equipment = expanded.get("equipment")
    if isinstance(equipment, list):
        expanded["equipment"] = [
            {GENERATION1_EQUIPMENT_KEYS.get(k, k): v for k, v in piece.items()}
            if isinstance(piece, dict) else piece
            for piece in equipment
        ]
    return expanded


def decode_payload(payload: Payload) -> BuildDescriptor:
    """Decode an already classified payload."""
    if isinstance(payload, Generation2Payload):
        return decode_binary(payload.data)
    if isinstance(payload, Generation1Payload):
        return build_from_dict(expand_generation1(payload.data))
    if isinstance(payload, Generation0Payload):
        return build_from_dict(payload.data)
    raise UnknownVersionError(f"Unsupported payload type {type(payload).__name__}")


def encode_build_token(build: BuildDescriptor) -> str:
    """Encode a build as a compressed generation 2 token."""
    return compress_payload(encode_binary(build))


def decode_build_token(token: str) -> BuildDescriptor:
    """Decode a ``build`` token of any generation."""
    payload = sniff_payload(decompress_token(token))
    logging.debug("Decoding %s", type(payload).__name__)
    return decode_payload(payload)
