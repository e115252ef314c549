import pytest
from build_model import BuildDescriptor, EquipmentPiece, SpecializationChoice
from exceptions import ExternalLookupError


class StubResolver:
    """Deterministic tier order lookup. Unknown specializations fail."""

    def __init__(self, orders, failing=()):
        self.orders = orders
        self.failing = set(failing)
        self.calls = []

    async def resolve_tier_order(self, specialization_id):
        self.calls.append(specialization_id)
        if specialization_id in self.failing:
            raise RuntimeError("network down")
        if specialization_id not in self.orders:
            raise ExternalLookupError(f"no data for {specialization_id}")
        return self.orders[specialization_id]


TIER_ORDERS = {
    42: ((101, 111, 121), (102, 112, 122), (113, 123, 103)),
    46: ((201, 211, 221), (202, 212, 222), (203, 213, 223)),
    27: ((301, 311, 321), (302, 312, 322), (303, 313, 323)),
}


@pytest.fixture
def resolver():
    return StubResolver(TIER_ORDERS)


@pytest.fixture
def guardian_build():
    return BuildDescriptor(
        profession="Guardian",
        game_mode="PvE",
        skills={"heal": 9153},
        traits=(SpecializationChoice(42, (101, None, 103)),),
        rune_id=24836,
    )


@pytest.fixture
def full_build():
    return BuildDescriptor(
        profession="Necromancer",
        game_mode="WvW",
        equipment=[
            EquipmentPiece(slot="Helm", stat="Berserker", upgrade="Superior Rune of the Scholar",
                           infusion1="Mighty"),
            EquipmentPiece(slot="Coat", stat="Marauder"),
            EquipmentPiece(slot="MainHand1", stat="Viper", weapon_type="Greatsword",
                           upgrade="Superior Sigil of Force", sigil1_id=24615, sigil2_id=24868,
                           infusion1="Malign", infusion2="Précis ✓", infusion3="Vital"),
        ],
        skills={"heal": 10527, "utility1": 10533, "utility3": 10689, "elite": 10646},
        traits=(
            SpecializationChoice(42, (111, 122, 103)),
            SpecializationChoice(46, (None, 202, None)),
            SpecializationChoice(27, (321, 312, 303)),
        ),
        rune_id=24836,
        relic_id=100916,
    )
