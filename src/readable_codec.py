"""Human-readable build links.

Instead of one opaque token the build is spread over query parameters:

    c  profession, 1-based index
    m  game mode, 0-based index
    g  equipment + rune/relic, compressed JSON (names are too long to inline)
    s  five skill IDs joined with ``_``, empty token for an unset slot
    t  per specialization slot: ``<spec id>_<tiers>`` where tiers is three
       letters out of t/m/b (top/mid/bottom in display order) or ``-``

Tier letters need each specialization's trait display order, which comes
from a TierOrderResolver. A failed lookup turns that slot's tiers into
``-`` (or ``None`` when decoding) and never fails the whole link.
"""

import logging
from typing import Dict, Mapping, Optional, Tuple
from build_model import (
    BuildDescriptor, SpecializationChoice, TraitChoices, NO_CHOICES,
    PROFESSIONS, GAME_MODES, SKILL_SLOTS, SPECIALIZATION_SLOTS, TIERS,
    enum_index, equipment_list_from_dicts, equipment_to_dict, optional_id,
)
from exceptions import BuildDecodeError, FieldOutOfRangeError
from trait_resolver import TierOrder, TierOrderResolver
from transport import compress_json, decompress_json

TIER_LETTERS = "tmb"
NO_CHOICE = "-"
SEPARATOR = "_"
READABLE_PARAMS = ("c", "m", "g", "s", "t")


async def _lookup_tier_order(resolver: TierOrderResolver, specialization_id: int) -> Optional[TierOrder]:
    """Resolve tier order, or None if the lookup fails for any reason."""
    try:
        order = await resolver.resolve_tier_order(specialization_id)
    except Exception as e:  # pylint: disable=broad-except
        logging.warning("Tier lookup failed for specialization %s: %s", specialization_id, e)
        return None
    if not order or len(order) != TIERS:
        logging.warning("Tier lookup returned no usable data for specialization %s", specialization_id)
        return None
    return order


def encode_tier_letters(choices: TraitChoices, order: Optional[TierOrder]) -> str:
    """Three letters giving each chosen trait's position within its tier."""
    letters = []
    for tier, trait_id in enumerate(choices):
        if trait_id is None or order is None or trait_id not in order[tier][:len(TIER_LETTERS)]:
            letters.append(NO_CHOICE)
        else:
            letters.append(TIER_LETTERS[order[tier].index(trait_id)])
    return "".join(letters)


def decode_tier_letters(letters: str, order: Optional[TierOrder]) -> TraitChoices:
    """Inverse of encode_tier_letters. Unresolvable positions decode as None."""
    if len(letters) != TIERS or any(ch not in TIER_LETTERS + NO_CHOICE for ch in letters):
        raise BuildDecodeError(f"Invalid tier choice string: {letters!r}")
    choices = []
    for tier, letter in enumerate(letters):
        position = TIER_LETTERS.find(letter)
        if position < 0 or order is None or position >= len(order[tier]):
            choices.append(None)
        else:
            choices.append(order[tier][position])
    return tuple(choices)


def encode_skills(skills: Mapping[str, int]) -> str:
    """Always five positions so an unset slot can't shift the ones after it."""
    if not any(skills.get(slot) for slot in SKILL_SLOTS):
        return ""
    return SEPARATOR.join(str(skills[slot]) if skills.get(slot) else "" for slot in SKILL_SLOTS)


def _parse_id(token: str, name: str) -> Optional[int]:
    if not token:
        return None
    if not (token.isascii() and token.isdigit()):
        raise BuildDecodeError(f"Invalid {name} value: {token!r}")
    return optional_id(int(token), name)


def decode_skills(value: str) -> Dict[str, int]:
    """Parse ``s``. Fewer than five tokens is the older compacted form, filled from heal onwards."""
    if not value:
        return {}
    tokens = value.split(SEPARATOR)
    if len(tokens) > len(SKILL_SLOTS):
        raise BuildDecodeError(f"Too many skills in {value!r}")
    if len(tokens) < len(SKILL_SLOTS):
        tokens = [t for t in tokens if t]
    skills = {}
    for slot, token in zip(SKILL_SLOTS, tokens):
        skill_id = _parse_id(token, "skill")
        if skill_id is not None:
            skills[slot] = skill_id
    return skills


async def encode_traits(traits: Tuple[SpecializationChoice, ...], resolver: TierOrderResolver) -> str:
    """Spec ID and tier letters for every slot up to the last occupied one.

    Tier letters are relative to a specialization, so choices in a slot
    without one can't be written and are rejected.
    """
    for n, spec in enumerate(traits, start=1):
        if spec.specialization_id is None and spec.choices != NO_CHOICES:
            raise FieldOutOfRangeError(f"Trait choices in slot {n} have no specialization")
    occupied = [n for n, spec in enumerate(traits) if spec.specialization_id is not None]
    if not occupied:
        return ""
    tokens = []
    for spec in traits[:occupied[-1] + 1]:
        if spec.specialization_id is None:
            tokens += ["0", NO_CHOICE * TIERS]
            continue
        order = None
        if spec.choices != NO_CHOICES:
            order = await _lookup_tier_order(resolver, spec.specialization_id)
        tokens += [str(spec.specialization_id), encode_tier_letters(spec.choices, order)]
    return SEPARATOR.join(tokens)


async def decode_traits(value: str, resolver: TierOrderResolver) -> Tuple[SpecializationChoice, ...]:
    if not value:
        return ()
    tokens = value.split(SEPARATOR)
    if len(tokens) % 2 or len(tokens) // 2 > SPECIALIZATION_SLOTS:
        raise BuildDecodeError(f"Invalid trait parameter: {value!r}")
    traits = []
    for spec_token, letters in zip(tokens[::2], tokens[1::2]):
        spec_id = _parse_id(spec_token, "specialization")
        if spec_id is None:
            decode_tier_letters(letters, None)
            traits.append(SpecializationChoice())
            continue
        order = None
        if letters != NO_CHOICE * TIERS:
            order = await _lookup_tier_order(resolver, spec_id)
        traits.append(SpecializationChoice(spec_id, decode_tier_letters(letters, order)))
    return tuple(traits)


async def encode_readable(build: BuildDescriptor, resolver: TierOrderResolver) -> Dict[str, str]:
    """Query parameters for a build, in c, m, g, s, t order. Empty parameters are left out."""
    params = {
        "c": str(enum_index(PROFESSIONS, build.profession, "profession") + 1),
        "m": str(enum_index(GAME_MODES, build.game_mode, "game mode")),
    }
    gear = {"equipment": [equipment_to_dict(piece) for piece in build.equipment]}
    if build.rune_id is not None:
        gear["runeId"] = build.rune_id
    if build.relic_id is not None:
        gear["relicId"] = build.relic_id
    if build.equipment or len(gear) > 1:
        params["g"] = compress_json(gear)
    skills = encode_skills(build.skills)
    if skills:
        params["s"] = skills
    traits = await encode_traits(build.traits, resolver)
    if traits:
        params["t"] = traits
    return params


def _parse_index(value: Optional[str], name: str, base: int, size: int) -> int:
    if value is None or not (value.isascii() and value.isdigit()) or not base <= int(value) < base + size:
        raise BuildDecodeError(f"Invalid {name} parameter: {value!r}")
    return int(value) - base


async def decode_readable(params: Mapping[str, str], resolver: TierOrderResolver) -> BuildDescriptor:
    """Rebuild a descriptor from readable query parameters."""
    profession = PROFESSIONS[_parse_index(params.get("c"), "profession", 1, len(PROFESSIONS))]
    game_mode = GAME_MODES[_parse_index(params.get("m", "0"), "game mode", 0, len(GAME_MODES))]

    gear = {}
    if params.get("g"):
        gear = decompress_json(params["g"])
        if not isinstance(gear, dict):
            raise BuildDecodeError("Equipment parameter is not a JSON object")

    return BuildDescriptor(
        profession=profession,
        game_mode=game_mode,
        equipment=equipment_list_from_dicts(gear.get("equipment")),
        skills=decode_skills(params.get("s", "")),
        traits=await decode_traits(params.get("t", ""), resolver),
        rune_id=optional_id(gear.get("runeId"), "runeId"),
        relic_id=optional_id(gear.get("relicId"), "relicId"),
    )
