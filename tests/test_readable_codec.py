import asyncio
import pytest
from build_model import BuildDescriptor, SpecializationChoice
from conftest import StubResolver, TIER_ORDERS
from exceptions import BuildDecodeError, FieldOutOfRangeError
from readable_codec import (
    decode_readable, decode_skills, decode_tier_letters, encode_readable, encode_skills,
    encode_tier_letters,
)


def run(coro):
    return asyncio.run(coro)


def test_round_trip(full_build, resolver):
    params = run(encode_readable(full_build, resolver))
    assert list(params) == ["c", "m", "g", "s", "t"]
    assert run(decode_readable(params, resolver)) == full_build


def test_guardian_params(guardian_build, resolver):
    params = run(encode_readable(guardian_build, resolver))
    assert params["c"] == "1"
    assert params["m"] == "0"
    assert params["s"] == "9153____"
    assert params["t"] == "42_t-b"
    assert run(decode_readable(params, resolver)) == guardian_build


def test_profession_is_one_based():
    params = run(encode_readable(BuildDescriptor(profession="Revenant", game_mode="WvW"), StubResolver({})))
    assert params == {"c": "9", "m": "2"}


def test_unknown_profession_on_encode():
    with pytest.raises(FieldOutOfRangeError):
        run(encode_readable(BuildDescriptor(profession="Bard"), StubResolver({})))


def test_failed_lookup_degrades_to_dashes(guardian_build):
    resolver = StubResolver(TIER_ORDERS, failing={42})
    params = run(encode_readable(guardian_build, resolver))
    assert params["t"] == "42_---"
    assert resolver.calls == [42]


def test_failed_lookup_on_decode_keeps_specialization():
    resolver = StubResolver({})
    build = run(decode_readable({"c": "1", "m": "0", "t": "42_t-b"}, resolver))
    assert build.traits[0] == SpecializationChoice(42, (None, None, None))


def test_no_lookup_without_choices():
    resolver = StubResolver({})
    build = BuildDescriptor(profession="Guardian", traits=(SpecializationChoice(42),))
    params = run(encode_readable(build, resolver))
    assert params["t"] == "42_---"
    assert resolver.calls == []


def test_unknown_trait_is_dash():
    assert encode_tier_letters((101, 999, 123), TIER_ORDERS[42]) == "t-m"


def test_tier_letters_decode():
    assert decode_tier_letters("bmt", TIER_ORDERS[46]) == (221, 212, 203)
    with pytest.raises(BuildDecodeError):
        decode_tier_letters("tx-", TIER_ORDERS[46])
    with pytest.raises(BuildDecodeError):
        decode_tier_letters("tt", TIER_ORDERS[46])


def test_gap_before_later_specialization_is_kept(resolver):
    build = BuildDescriptor(profession="Guardian", traits=(
        SpecializationChoice(),
        SpecializationChoice(46, (201, None, None)),
    ))
    params = run(encode_readable(build, resolver))
    assert params["t"] == "0_---_46_t--"
    assert run(decode_readable(params, resolver)) == build


def test_skills_keep_their_slots():
    assert encode_skills({"utility2": 5}) == "__5__"
    assert decode_skills("__5__") == {"utility2": 5}
    assert decode_skills(encode_skills({"heal": 5})) == {"heal": 5}


def test_compacted_skills_fill_from_heal():
    assert decode_skills("9153_9084") == {"heal": 9153, "utility1": 9084}


@pytest.mark.parametrize("params", [
    {"c": "0"},
    {"c": "10"},
    {"c": "x"},
    {"c": "1", "m": "3"},
    {"c": "1", "s": "1_2_3_4_5_6"},
    {"c": "1", "s": "abc"},
    {"c": "1", "t": "42"},
    {"c": "1", "t": "1_---_2_---_3_---_4_---"},
    {"c": "²"},
    {"c": "1", "m": "²"},
    {"c": "1", "s": "²"},
    {"c": "1", "t": "²_t--"},
])
def test_malformed_params(params):
    with pytest.raises(BuildDecodeError):
        run(decode_readable(params, StubResolver({})))


def test_missing_mode_defaults_to_pve():
    build = run(decode_readable({"c": "2"}, StubResolver({})))
    assert build == BuildDescriptor(profession="Warrior", game_mode="PvE")


def test_choices_without_specialization_are_rejected(resolver):
    build = BuildDescriptor(profession="Guardian", traits=(
        SpecializationChoice(None, (101, None, None)),
        SpecializationChoice(46, (201, None, None)),
    ))
    with pytest.raises(FieldOutOfRangeError):
        run(encode_readable(build, resolver))
