from __future__ import annotations

import pytest

from carbon_tycoon.config import default_config
from carbon_tycoon.simulation.engine import GameSession
from carbon_tycoon.state import Building


class _Zero:
    def random(self) -> float:
        return 0.0

    def choice(self, seq):
        return seq[0]

    def uniform(self, a: float, b: float) -> float:
        return a


def _basic_session(**tunables) -> GameSession:
    config = default_config().with_tunables(**tunables) if tunables else default_config()
    return GameSession(config=config, seed=1, layout_rng=_Zero())


def test_build_debits_cost_and_counts() -> None:
    session = _basic_session()
    result = session.build(0, "coal")

    assert result.success
    assert result.cost == 3000
    assert result.level == "Lv1"
    assert session.state.money == 37_000
    assert session.state.projected_income == 7000
    assert session.state.emission == 3500
    assert session.state.builds_this_turn == 1


def test_build_failures_are_results() -> None:
    session = _basic_session()

    assert not session.build(1, "coal")  # competitor tile
    assert not session.build(99, "coal")
    assert not session.build(0, "fusion")
    assert session.build(0, "coal")
    occupied = session.build(0, "gas")
    assert not occupied
    assert "already" in occupied.message


def test_player_build_cap() -> None:
    session = _basic_session()

    assert session.build(0, "coal")
    assert session.build(4, "coal")
    capped = session.build(5, "coal")
    assert not capped
    assert "limit" in capped.message
    assert session.state.money == 34_000


def test_insufficient_funds() -> None:
    session = _basic_session(initial_money=1000)
    result = session.build(0, "coal")

    assert not result
    assert "insufficient" in result.message
    assert session.state.money == 1000
    assert session.state.buildings == []


def test_competitor_build_books_income_immediately() -> None:
    session = _basic_session()
    result = session.buildings.build(1, "coal", "A")

    assert result
    assert session.state.competitor("A").money == 54_000
    assert session.state.projected_income == 0
    assert session.state.builds_this_turn == 0


@pytest.mark.parametrize(
    "building_type, current, target, expected",
    [
        ("coal", "Lv1", "Lv2", 1500),
        ("coal", "Lv2", "Lv3", 2400),
        ("coal", "Lv1", "Lv3", 3900),
        ("coal", "Lv2", "Lv1", None),
        ("coal", "Lv2", "Lv2", None),
        ("solar", "Lv1", "Lv2", None),
        ("fusion", "Lv1", "Lv2", None),
        ("tech", "Lv1", "Lv4", None),
    ],
)
def test_upgrade_cost_ladder(building_type, current, target, expected) -> None:
    session = _basic_session()

    assert session.buildings.upgrade_cost(building_type, current, target) == expected


def test_upgrade_building_for_player() -> None:
    session = _basic_session()
    session.build(0, "coal")

    result = session.upgrade(0, "Lv2")
    assert result
    assert result.cost == 1500
    assert session.state.money == 35_500
    assert session.state.building_at(0).level == "Lv2"

    assert not session.upgrade(0, "Lv1")
    assert not session.upgrade(4, "Lv2")


def test_upgrade_rejects_wrong_owner_and_unaffordable() -> None:
    session = _basic_session(initial_money=3100)
    session.state.add_building(Building("coal", 1, "A"))
    session.build(0, "coal")

    assert not session.upgrade(1, "Lv2")
    poor = session.upgrade(0, "Lv2")
    assert not poor
    assert "insufficient" in poor.message


def test_npc_upgrade_does_not_touch_player_money() -> None:
    session = _basic_session()
    session.state.add_building(Building("coal", 1, "A"))

    assert session.buildings.upgrade_building(1, "A", "Lv3")
    assert session.state.money == 40_000


def test_sell_coal_refunds_and_calms_monster() -> None:
    session = _basic_session()
    session.build(0, "coal")

    assert session.buildings.calculate_refund(0) == 1800
    result = session.sell(0)
    assert result
    assert result.refund == 1800
    assert result.monster_reduction == 1
    assert session.state.monster_anger == 29.0
    assert session.state.money == 38_800
    assert session.state.building_at(0) is None


def test_refund_level_bonus() -> None:
    session = _basic_session()
    session.state.add_building(Building("coal", 0, "P", "Lv2"))
    session.state.add_building(Building("tech", 4, "P", "Lv3"))

    assert session.buildings.calculate_refund(0) == 2100
    assert session.buildings.calculate_refund(4) == 8000
    assert session.buildings.calculate_refund(5) == 0


def test_npc_sale_keeps_monster_and_pays_competitor() -> None:
    session = _basic_session()
    session.state.add_building(Building("coal", 1, "A"))

    result = session.buildings.sell_building(1, "A")
    assert result
    assert result.monster_reduction == 0
    assert session.state.monster_anger == 30.0
    assert session.state.competitor("A").money == 51_800
    assert not session.buildings.sell_building(1, "A")


def test_sell_rejects_foreign_building() -> None:
    session = _basic_session()
    session.state.add_building(Building("coal", 1, "A"))

    assert not session.sell(1)
    assert session.state.building_at(1) is not None


def test_building_info_and_upgradeable_list() -> None:
    session = _basic_session()
    session.build(0, "coal")
    session.build(4, "solar")

    info = session.buildings.building_info(0)
    assert info.name == "Coal Power Plant"
    assert info.level_name == "Standard"
    assert info.emission == pytest.approx(3500)
    assert [(opt.level, opt.cost) for opt in info.upgrade_options] == [("Lv2", 1500), ("Lv3", 3900)]
    assert session.buildings.building_info(5) is None

    upgradeable = session.buildings.upgradeable_buildings("P")
    assert [item.tile_index for item in upgradeable] == [0]

    session.state.upgrade_building(0, "P", "Lv3")
    assert session.buildings.upgradeable_buildings("P") == []
