"""Generation 2 binary build layout (current format).

Byte layout, in order:

    version           1 byte, always FORMAT_VERSION (2)
    profession/mode   1 byte, see ProfessionModeByte
    piece count       1 byte
    per piece         slot index byte, stat string, weapon type string,
                      upgrade string, sigil 1 varint, sigil 2 varint,
                      three infusion strings
    skills            5 varints: heal, utility1, utility2, utility3, elite
    specializations   3 x (spec varint, 3 tier choice varints)
    rune, relic       2 varints

Sigils are varints while infusions are strings. Older links depend on this,
don't change it without bumping the version byte.
"""

import logging
from typing import NamedTuple
from build_model import (
    BuildDescriptor, EquipmentPiece, SpecializationChoice,
    PROFESSIONS, GAME_MODES, EQUIPMENT_SLOTS, SKILL_SLOTS, SPECIALIZATION_SLOTS, TIERS,
    enum_index, enum_value, duplicate_slots,
)
from byte_buffer import ByteReader, write_string, write_varint
from exceptions import BuildDecodeError, FieldOutOfRangeError, UnknownVersionError

FORMAT_VERSION = 2
MAX_PIECES = 255


class ProfessionModeByte(NamedTuple):
    """Profession and game mode packed into a single byte.

    bits 0-1: game mode index (0-2)
    bits 2-5: profession index (0-8)
    bits 6-7: unused, always 0
    """
    profession_index: int
    mode_index: int

    MODE_BITS = 2
    MODE_MASK = 0b11
    PROFESSION_BITS = 4
    PROFESSION_MASK = 0b1111

    def pack(self) -> int:
        if not 0 <= self.mode_index <= self.MODE_MASK:
            raise FieldOutOfRangeError(f"Game mode index {self.mode_index} doesn't fit in 2 bits")
        if not 0 <= self.profession_index <= self.PROFESSION_MASK:
            raise FieldOutOfRangeError(f"Profession index {self.profession_index} doesn't fit in 4 bits")
        return (self.profession_index << self.MODE_BITS) | self.mode_index

    @classmethod
    def unpack(cls, byte: int) -> "ProfessionModeByte":
        if byte >> (cls.MODE_BITS + cls.PROFESSION_BITS):
            raise BuildDecodeError(f"Unused bits set in profession/mode byte 0x{byte:02x}")
        return cls(
            profession_index=(byte >> cls.MODE_BITS) & cls.PROFESSION_MASK,
            mode_index=byte & cls.MODE_MASK,
        )

    @classmethod
    def from_names(cls, profession: str, game_mode: str) -> "ProfessionModeByte":
        return cls(
            profession_index=enum_index(PROFESSIONS, profession, "profession"),
            mode_index=enum_index(GAME_MODES, game_mode, "game mode"),
        )

    @property
    def profession(self) -> str:
        return enum_value(PROFESSIONS, self.profession_index, "profession")

    @property
    def game_mode(self) -> str:
        return enum_value(GAME_MODES, self.mode_index, "game mode")


def _write_piece(buffer: bytearray, piece: EquipmentPiece):
    buffer.append(enum_index(EQUIPMENT_SLOTS, piece.slot, "equipment slot"))
    write_string(buffer, piece.stat)
    write_string(buffer, piece.weapon_type)
    write_string(buffer, piece.upgrade)
    write_varint(buffer, piece.sigil1_id)
    write_varint(buffer, piece.sigil2_id)
    for infusion in piece.infusions:
        write_string(buffer, infusion)


def _read_piece(reader: ByteReader) -> EquipmentPiece:
    slot = enum_value(EQUIPMENT_SLOTS, reader.read_byte(), "equipment slot")
    stat = reader.read_string()
    weapon_type = reader.read_optional_string()
    upgrade = reader.read_optional_string()
    sigil1_id = reader.read_optional_id()
    sigil2_id = reader.read_optional_id()
    infusions = [reader.read_optional_string() for _ in range(3)]
    return EquipmentPiece(
        slot=slot,
        stat=stat,
        weapon_type=weapon_type,
        upgrade=upgrade,
        sigil1_id=sigil1_id,
        sigil2_id=sigil2_id,
        infusion1=infusions[0],
        infusion2=infusions[1],
        infusion3=infusions[2],
    )


def encode_binary(build: BuildDescriptor) -> bytes:
    """Pack a build into the generation 2 byte layout."""
    if len(build.equipment) > MAX_PIECES:
        raise FieldOutOfRangeError(f"At most {MAX_PIECES} equipment pieces, got {len(build.equipment)}")
    dupes = duplicate_slots(build.equipment)
    if dupes:
        raise FieldOutOfRangeError(f"Equipment slots used more than once: {', '.join(dupes)}")

    buffer = bytearray([FORMAT_VERSION])
    buffer.append(ProfessionModeByte.from_names(build.profession, build.game_mode).pack())

    buffer.append(len(build.equipment))
    for piece in build.equipment:
        _write_piece(buffer, piece)

    for slot in SKILL_SLOTS:
        write_varint(buffer, build.skills.get(slot))

    for spec in build.traits:
        write_varint(buffer, spec.specialization_id)
        for choice in spec.choices:
            write_varint(buffer, choice)

    write_varint(buffer, build.rune_id)
    write_varint(buffer, build.relic_id)

    logging.debug("Encoded %s build into %s bytes", build.profession, len(buffer))
    return bytes(buffer)


def decode_binary(data: bytes) -> BuildDescriptor:
    """Unpack a generation 2 payload. Zero IDs and empty strings come back as None."""
    reader = ByteReader(data)
    version = reader.read_byte()
    if version != FORMAT_VERSION:
        raise UnknownVersionError(f"Expected binary format version {FORMAT_VERSION}, got {version}")

    packed = ProfessionModeByte.unpack(reader.read_byte())
    profession, game_mode = packed.profession, packed.game_mode

    count = reader.read_byte()
    equipment = [_read_piece(reader) for _ in range(count)]
    dupes = duplicate_slots(equipment)
    if dupes:
        raise BuildDecodeError(f"Equipment slots used more than once: {', '.join(dupes)}")

    skills = {}
    for slot in SKILL_SLOTS:
        skill_id = reader.read_optional_id()
        if skill_id is not None:
            skills[slot] = skill_id

    traits = []
    for _ in range(SPECIALIZATION_SLOTS):
        spec_id = reader.read_optional_id()
        choices = tuple(reader.read_optional_id() for _ in range(TIERS))
        traits.append(SpecializationChoice(spec_id, choices))

    rune_id = reader.read_optional_id()
    relic_id = reader.read_optional_id()

    if not reader.at_end():
        raise UnknownVersionError(
            f"{len(reader.data) - reader.pos} unexpected trailing bytes after version {FORMAT_VERSION} payload")

    return BuildDescriptor(
        profession=profession,
        game_mode=game_mode,
        equipment=equipment,
        skills=skills,
        traits=tuple(traits),
        rune_id=rune_id,
        relic_id=relic_id,
    )
