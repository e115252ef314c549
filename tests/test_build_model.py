import pytest
from build_model import BuildDescriptor, EquipmentPiece, SpecializationChoice, build_from_dict
from exceptions import BuildDecodeError, FieldOutOfRangeError


def test_traits_are_padded_to_three_slots():
    build = BuildDescriptor(profession="Guardian", traits=(SpecializationChoice(42, [101, None, 103]),))
    assert len(build.traits) == 3
    assert build.traits[0].choices == (101, None, 103)
    assert build.traits[1].is_empty and build.traits[2].is_empty


def test_too_many_specializations():
    with pytest.raises(FieldOutOfRangeError):
        BuildDescriptor(profession="Guardian", traits=[SpecializationChoice()] * 4)


def test_choices_need_three_positions():
    with pytest.raises(FieldOutOfRangeError):
        BuildDescriptor(profession="Guardian", traits=(SpecializationChoice(42, (101, 102)),))


def test_unset_skills_are_dropped():
    build = BuildDescriptor(profession="Guardian", skills={"heal": 9153, "elite": 0, "utility1": None})
    assert build.skills == {"heal": 9153}


def test_to_dict_omits_absent_fields(full_build):
    data = full_build.to_dict()
    assert data["equipment"][1] == {"slot": "Coat", "stat": "Marauder"}
    assert data["traits"]["spec2Choices"] == [None, 202, None]
    assert build_from_dict(data) == full_build


def test_zero_ids_are_absent():
    build = build_from_dict({"profession": "Thief", "runeId": 0, "equipment": [
        {"slot": "Ring1", "stat": "Berserker", "sigil1Id": 0, "upgrade": ""},
    ]})
    assert build.rune_id is None
    assert build.equipment == [EquipmentPiece(slot="Ring1", stat="Berserker")]


@pytest.mark.parametrize("data", [
    None,
    {"profession": "Thief", "gameMode": "sPvP"},
    {"profession": "Thief", "runeId": -5},
    {"profession": "Thief", "runeId": "24836"},
    {"profession": "Thief", "skills": {"heal": True}},
    {"profession": "Thief", "traits": {"spec1Choices": [1, 2]}},
    {"profession": "Thief", "equipment": [{"slot": "Helm"}]},
])
def test_bad_shapes(data):
    with pytest.raises(BuildDecodeError):
        build_from_dict(data)
