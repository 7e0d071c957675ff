from __future__ import annotations

from carbon_tycoon.config import default_config
from carbon_tycoon.runtime.carbon_fee import CarbonFeeSystem
from carbon_tycoon.runtime.victory import VictorySystem
from carbon_tycoon.state import Building, WorldState
from carbon_tycoon.world.lands import LandSystem


class _Zero:
    def random(self) -> float:
        return 0.0

    def choice(self, seq):
        return seq[0]

    def uniform(self, a: float, b: float) -> float:
        return a


def _basic_victory():
    config = default_config()
    state = WorldState.create(config)
    state.turn = 10
    lands = LandSystem(config)
    lands.generate(_Zero())
    return state, VictorySystem(state, CarbonFeeSystem(state, lands))


def _three_coal(state: WorldState, owner: str, tiles) -> None:
    for tile in tiles:
        state.add_building(Building("coal", tile, owner))


def test_highest_fee_is_eliminated() -> None:
    state, victory = _basic_victory()
    _three_coal(state, "A", (1, 6, 11))

    report = victory.evaluate()
    eliminated = [row.owner for row in report.standings if row.eliminated]
    assert eliminated == ["A"]
    assert report.results["A"].victories == []
    assert victory.is_eliminated("A")
    assert not victory.is_eliminated("P")


def test_tied_fees_eliminate_everyone_tied() -> None:
    state, victory = _basic_victory()
    _three_coal(state, "A", (1, 6, 11))
    _three_coal(state, "B", (2, 7, 12))

    eliminated = [row.owner for row in victory.standings() if row.eliminated]
    assert eliminated == ["A", "B"]


def test_no_positive_fee_means_no_elimination() -> None:
    state, victory = _basic_victory()
    state.add_building(Building("coal", 1, "A"))

    assert not any(row.eliminated for row in victory.standings())


def test_profit_king_goes_to_richest_survivor() -> None:
    state, victory = _basic_victory()
    report = victory.evaluate()

    assert report.primary_winner.owner == "A"
    assert report.results["A"].primary.id == "profit_king"

    state.set_competitor_money("A", 30_000)
    report = victory.evaluate()
    assert report.primary_winner.owner == "C"
    assert report.results["C"].primary.id == "profit_king"


def test_conditions_and_ranking() -> None:
    state, victory = _basic_victory()
    state.set_money(60_000)
    state.add_building(Building("gas", 0, "P"))
    state.add_building(Building("coal", 2, "B"))
    state.set_competitor_money("C", 100_000)

    report = victory.evaluate()
    player = report.results["P"]
    assert [cond.id for cond in player.victories] == ["carbon_pioneer", "efficiency_master"]
    assert player.primary.id == "carbon_pioneer"
    assert [row.owner for row in report.winners] == ["C", "P"]
    assert report.primary_winner.owner == "C"
    assert "carbon_pioneer" not in [cond.id for cond in report.results["B"].victories]


def test_wealth_floor_blocks_pioneer() -> None:
    state, victory = _basic_victory()
    state.add_building(Building("gas", 0, "P"))

    report = victory.evaluate()
    assert [cond.id for cond in report.results["P"].victories] == []


def test_perfect_balance_and_survivor() -> None:
    state, victory = _basic_victory()
    state.set_money(80_000)
    state.add_building(Building("gas", 0, "P"))
    state.set_monster_anger(95)

    report = victory.evaluate()
    ids = [cond.id for cond in report.results["P"].victories]
    assert "perfect_balance" in ids
    assert "survivor" in ids
    assert all("survivor" in [c.id for c in report.results[o].victories] for o in ("A", "B", "C"))


def test_ties_keep_owner_order() -> None:
    state, victory = _basic_victory()
    state.set_money(60_000)
    state.set_competitor_money("A", 40_000)
    state.set_competitor_money("B", 40_000)
    state.set_competitor_money("C", 60_000)

    report = victory.evaluate()
    assert [row.owner for row in report.winners] == ["P", "C"]
    assert report.primary_winner.owner == "P"


def test_summary_lines() -> None:
    state, victory = _basic_victory()
    _three_coal(state, "A", (1, 6, 11))

    lines = victory.evaluate().summary_lines()
    assert any("Tycoon Jin [eliminated]" in line for line in lines)
    assert lines[-1].startswith("Winner: Cost Cutter Lee")
