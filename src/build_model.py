"""In-memory build descriptor shared by every codec, plus its JSON field mapping"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from exceptions import BuildDecodeError, FieldOutOfRangeError


# Closed enumerations. Index order is part of the wire format; append only.
PROFESSIONS = (
    "Guardian", "Warrior", "Engineer", "Ranger", "Thief",
    "Elementalist", "Mesmer", "Necromancer", "Revenant",
)
GAME_MODES = ("PvE", "PvP", "WvW")
EQUIPMENT_SLOTS = (
    "Helm", "Shoulders", "Coat", "Gloves", "Leggings", "Boots",
    "MainHand1", "OffHand1", "MainHand2", "OffHand2",
    "Backpack", "Accessory1", "Accessory2", "Amulet", "Ring1", "Ring2",
)
SKILL_SLOTS = ("heal", "utility1", "utility2", "utility3", "elite")
SPECIALIZATION_SLOTS = 3
TIERS = 3

TraitChoices = Tuple[Optional[int], Optional[int], Optional[int]]
NO_CHOICES: TraitChoices = (None, None, None)


@dataclass
class EquipmentPiece:
    """One equipped item. Slots are unique within a descriptor."""
    slot: str
    stat: str
    weapon_type: Optional[str] = None
    upgrade: Optional[str] = None
    sigil1_id: Optional[int] = None
    sigil2_id: Optional[int] = None
    infusion1: Optional[str] = None
    infusion2: Optional[str] = None
    infusion3: Optional[str] = None

    @property
    def infusions(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        return (self.infusion1, self.infusion2, self.infusion3)


@dataclass
class SpecializationChoice:
    """A specialization slot and the trait picked in each of its three tiers."""
    specialization_id: Optional[int] = None
    choices: TraitChoices = NO_CHOICES

    def __post_init__(self):
        self.choices = tuple(self.choices)

    @property
    def is_empty(self) -> bool:
        return self.specialization_id is None and self.choices == NO_CHOICES


def _empty_traits() -> Tuple[SpecializationChoice, ...]:
    return tuple(SpecializationChoice() for _ in range(SPECIALIZATION_SLOTS))


@dataclass
class BuildDescriptor:
    """Profession, game mode, equipment, skills and traits of one build.

    ``skills`` only holds the slots that are set. ``traits`` always holds
    exactly three slots; unused ones are empty SpecializationChoice values.
    """
    profession: str
    game_mode: str = "PvE"
    equipment: List[EquipmentPiece] = field(default_factory=list)
    skills: Dict[str, int] = field(default_factory=dict)
    traits: Tuple[SpecializationChoice, ...] = field(default_factory=_empty_traits)
    rune_id: Optional[int] = None
    relic_id: Optional[int] = None

    def __post_init__(self):
        self.traits = normalize_traits(self.traits)
        self.skills = {slot: skill for slot, skill in self.skills.items() if skill}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the long (generation 0) field names, omitting absent fields."""
        return build_to_dict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "BuildDescriptor":
        """Rebuild from the long (generation 0) field names."""
        return build_from_dict(data)


def normalize_traits(traits) -> Tuple[SpecializationChoice, ...]:
    """Pad or validate a trait sequence to exactly three slots."""
    traits = tuple(traits or ())
    if len(traits) > SPECIALIZATION_SLOTS:
        raise FieldOutOfRangeError(f"At most {SPECIALIZATION_SLOTS} specializations, got {len(traits)}")
    for choice in traits:
        if len(choice.choices) != TIERS:
            raise FieldOutOfRangeError(f"Trait choices must have {TIERS} positions: {choice.choices!r}")
    return traits + tuple(SpecializationChoice() for _ in range(SPECIALIZATION_SLOTS - len(traits)))


def enum_index(values: Tuple[str, ...], value: str, field_name: str) -> int:
    """Index of an enumerated value, or FieldOutOfRangeError when it isn't known."""
    try:
        return values.index(value)
    except ValueError:
        raise FieldOutOfRangeError(f"Unknown {field_name}: {value!r}") from None


def enum_value(values: Tuple[str, ...], index: int, field_name: str) -> str:
    """Enumerated value at a decoded index, or BuildDecodeError when out of range."""
    if not 0 <= index < len(values):
        raise BuildDecodeError(f"{field_name} index {index} is out of range")
    return values[index]


def duplicate_slots(equipment: List[EquipmentPiece]) -> List[str]:
    """Slots claimed by more than one piece."""
    seen = set()
    dupes = []
    for piece in equipment:
        if piece.slot in seen and piece.slot not in dupes:
            dupes.append(piece.slot)
        seen.add(piece.slot)
    return dupes


# JSON mapping ------------------------------------------------------------

_EQUIPMENT_FIELDS = (
    ("slot", "slot"),
    ("stat", "stat"),
    ("weapon_type", "weaponType"),
    ("upgrade", "upgrade"),
    ("sigil1_id", "sigil1Id"),
    ("sigil2_id", "sigil2Id"),
    ("infusion1", "infusion1"),
    ("infusion2", "infusion2"),
    ("infusion3", "infusion3"),
)
_EQUIPMENT_ID_FIELDS = ("sigil1_id", "sigil2_id")


def optional_id(value: Any, field_name: str) -> Optional[int]:
    """Positive integer ID, with None and 0 both meaning absent."""
    if value is None or value == 0:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BuildDecodeError(f"{field_name} must be a positive integer, got {value!r}")
    return value


def optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise BuildDecodeError(f"{field_name} must be a string, got {value!r}")
    return value


def equipment_to_dict(piece: EquipmentPiece) -> Dict[str, Any]:
    out = {}
    for attr, key in _EQUIPMENT_FIELDS:
        value = getattr(piece, attr)
        if value is not None:
            out[key] = value
    return out


def equipment_from_dict(data: Any) -> EquipmentPiece:
    if not isinstance(data, dict):
        raise BuildDecodeError(f"Equipment entry must be an object, got {data!r}")
    slot = data.get("slot")
    if slot not in EQUIPMENT_SLOTS:
        raise BuildDecodeError(f"Unknown equipment slot: {slot!r}")
    stat = optional_text(data.get("stat"), "stat")
    if stat is None:
        raise BuildDecodeError(f"Equipment in slot {slot} has no stat combo")
    kwargs = {}
    for attr, key in _EQUIPMENT_FIELDS[2:]:
        if attr in _EQUIPMENT_ID_FIELDS:
            kwargs[attr] = optional_id(data.get(key), key)
        else:
            kwargs[attr] = optional_text(data.get(key), key)
    return EquipmentPiece(slot=slot, stat=stat, **kwargs)


def equipment_list_from_dicts(entries: Any) -> List[EquipmentPiece]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise BuildDecodeError("equipment must be a list")
    equipment = [equipment_from_dict(entry) for entry in entries]
    dupes = duplicate_slots(equipment)
    if dupes:
        raise BuildDecodeError(f"Equipment slots used more than once: {', '.join(dupes)}")
    return equipment


def skills_from_dict(data: Any) -> Dict[str, int]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BuildDecodeError("skills must be an object")
    skills = {}
    for slot in SKILL_SLOTS:
        skill_id = optional_id(data.get(slot), slot)
        if skill_id is not None:
            skills[slot] = skill_id
    return skills


def traits_to_dict(traits: Tuple[SpecializationChoice, ...]) -> Dict[str, Any]:
    out = {}
    for n, choice in enumerate(traits, start=1):
        if choice.specialization_id is not None:
            out[f"spec{n}"] = choice.specialization_id
        if choice.choices != NO_CHOICES:
            out[f"spec{n}Choices"] = list(choice.choices)
    return out


def traits_from_dict(data: Any) -> Tuple[SpecializationChoice, ...]:
    if data is None:
        return _empty_traits()
    if not isinstance(data, dict):
        raise BuildDecodeError("traits must be an object")
    traits = []
    for n in range(1, SPECIALIZATION_SLOTS + 1):
        spec_id = optional_id(data.get(f"spec{n}"), f"spec{n}")
        raw_choices = data.get(f"spec{n}Choices")
        if raw_choices is None:
            choices = NO_CHOICES
        elif isinstance(raw_choices, list) and len(raw_choices) == TIERS:
            choices = tuple(optional_id(c, f"spec{n}Choices") for c in raw_choices)
        else:
            raise BuildDecodeError(f"spec{n}Choices must be a list of {TIERS} entries")
        traits.append(SpecializationChoice(spec_id, choices))
    return tuple(traits)


def build_to_dict(build: BuildDescriptor) -> Dict[str, Any]:
    out = {
        "profession": build.profession,
        "gameMode": build.game_mode,
        "equipment": [equipment_to_dict(piece) for piece in build.equipment],
        "skills": {slot: build.skills[slot] for slot in SKILL_SLOTS if build.skills.get(slot)},
        "traits": traits_to_dict(build.traits),
    }
    if build.rune_id is not None:
        out["runeId"] = build.rune_id
    if build.relic_id is not None:
        out["relicId"] = build.relic_id
    return out


def build_from_dict(data: Any) -> BuildDescriptor:
    if not isinstance(data, dict):
        raise BuildDecodeError("Build must be a JSON object")
    profession = data.get("profession")
    if profession not in PROFESSIONS:
        raise BuildDecodeError(f"Unknown profession: {profession!r}")
    # gameMode postdates the first share links; those were all PvE builds
    game_mode = data.get("gameMode") or "PvE"
    if game_mode not in GAME_MODES:
        raise BuildDecodeError(f"Unknown game mode: {game_mode!r}")
    return BuildDescriptor(
        profession=profession,
        game_mode=game_mode,
        equipment=equipment_list_from_dicts(data.get("equipment")),
        skills=skills_from_dict(data.get("skills")),
        traits=traits_from_dict(data.get("traits")),
        rune_id=optional_id(data.get("runeId"), "runeId"),
        relic_id=optional_id(data.get("relicId"), "relicId"),
    )
