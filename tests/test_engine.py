from __future__ import annotations

import pytest

from carbon_tycoon.config import default_config
from carbon_tycoon.runtime.npc_ai import NPCEventKind
from carbon_tycoon.simulation.engine import GameOverReason, GameSession
from carbon_tycoon.simulation.snapshots import state_signature
from carbon_tycoon.state import MONSTER_MAX


class _Quiet:
    """Layout rolls land on ``basic``; NPC rolls never trigger an action."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value

    def choice(self, seq):
        return seq[0]

    def uniform(self, a: float, b: float) -> float:
        return 1.0


def _basic_session(**tunables) -> GameSession:
    config = default_config().with_tunables(**tunables) if tunables else default_config()
    return GameSession(config=config, seed=8, layout_rng=_Quiet(0.0))


def _quiet_turn(session: GameSession):
    return session.end_turn(npc_rng=lambda owner: _Quiet(0.99), market_rng=_Quiet(0.0))


def test_end_turn_runs_pipeline_and_advances() -> None:
    session = _basic_session()
    session.build(0, "coal")
    session.build(4, "coal")

    report = _quiet_turn(session)
    assert report.turn == 1
    assert report.year == 2030
    assert report.settlement.income == 14_000
    assert report.settlement.carbon_fee == 0
    assert report.monster.growth > 0
    assert report.market.domestic.new >= 300
    assert not report.game_over
    assert session.state.turn == 2
    assert session.state.year == 2031
    assert session.state.builds_this_turn == 0
    assert session.state.money == 40_000 - 6000 + 14_000


def test_npc_events_are_reported() -> None:
    session = _basic_session()
    report = _quiet_turn(session)

    assert [(evt.owner, evt.kind) for evt in report.npc_events] == [("B", NPCEventKind.BUILD)]


def test_achievements_surface_in_report() -> None:
    session = _basic_session()
    session.build(0, "coal")

    report = _quiet_turn(session)
    assert "first_building" in [a.id for a in report.achievements]


def test_purchase_land_is_one_transaction() -> None:
    session = _basic_session()
    price = session.land_price(1)

    result = session.purchase_land(1)
    assert result
    assert result.price == price == 1000
    assert session.state.money == 39_000
    assert session.lands.land(1).owner == "P"
    assert session.state.land_purchases_this_turn == 1

    again = session.purchase_land(2)
    assert not again
    assert "limit" in again.message
    assert session.lands.land(2).owner == "B"
    assert session.state.money == 39_000


def test_purchase_land_failures_do_not_debit() -> None:
    session = _basic_session(initial_money=500)

    assert not session.purchase_land(0)
    poor = session.purchase_land(1)
    assert not poor
    assert poor.price == 1000
    assert session.state.money == 500
    assert session.lands.land(1).owner == "A"
    assert session.state.land_purchases_this_turn == 0


def test_purchasable_lands_for_player() -> None:
    session = _basic_session()
    rows = session.purchasable_lands()

    assert len(rows) == 15
    assert all(row.can_afford for row in rows)


def test_monster_maxed_ends_game() -> None:
    session = _basic_session()
    session.state.set_monster_anger(99.5)

    report = _quiet_turn(session)
    assert session.state.monster_anger == MONSTER_MAX
    assert report.game_over
    assert report.reason is GameOverReason.MONSTER_MAXED
    assert report.victory is not None
    assert session.state.turn == 1
    assert not session.build(0, "coal")
    with pytest.raises(RuntimeError):
        session.end_turn()


def test_final_year_ends_game() -> None:
    session = _basic_session(max_years=2)

    first = _quiet_turn(session)
    second = _quiet_turn(session)
    assert not first.game_over
    assert second.game_over
    assert second.reason is GameOverReason.FINAL_YEAR
    assert second.victory.primary_winner is not None
    assert session.state.turn == 2


def test_session_snapshot_restores_lands_and_audits() -> None:
    session = _basic_session()
    session.build(0, "coal")
    snapshot = session.snapshot()

    session.purchase_land(1)
    for _ in range(3):
        _quiet_turn(session)
    assert len(session.turns.audit_history()) == 1

    session.restore(snapshot)
    assert session.state.turn == 1
    assert session.lands.land(1).owner == "A"
    assert session.turns.audit_history() == ()
    assert [b.type for b in session.state.buildings] == ["coal"]
    assert not session.game_over


def test_fee_breakdown_query() -> None:
    session = _basic_session()
    session.build(0, "coal")

    breakdown = session.fee_breakdown()
    assert breakdown.total_emission == 3500
    assert breakdown.free_emission == 10_000
    assert breakdown.fee == 0
    assert session.player_rank() == 4


def test_restoring_finished_game_keeps_it_closed() -> None:
    session = _basic_session()
    session.state.set_monster_anger(99.5)
    _quiet_turn(session)
    snapshot = session.snapshot()

    fresh = _basic_session()
    fresh.restore(snapshot)
    assert fresh.game_over
    assert fresh.reason is GameOverReason.MONSTER_MAXED
    with pytest.raises(RuntimeError):
        fresh.end_turn()


def test_restoring_after_final_year_keeps_reason() -> None:
    session = _basic_session(max_years=1)
    _quiet_turn(session)
    snapshot = session.snapshot()
    assert snapshot.reason is GameOverReason.FINAL_YEAR

    fresh = _basic_session(max_years=1)
    fresh.restore(snapshot)
    assert fresh.game_over
    assert fresh.reason is GameOverReason.FINAL_YEAR
    assert not fresh.build(0, "coal")


def test_seeded_session_replays_identically_after_restore() -> None:
    session = GameSession(seed=21)
    session.build(0, "coal")
    snapshot = session.snapshot()

    first = session.end_turn()
    signature = state_signature(session.state)
    lands = session.lands.export_lands()

    session.restore(snapshot)
    second = session.end_turn()
    assert state_signature(session.state) == signature
    assert session.lands.export_lands() == lands
    assert second.npc_events == first.npc_events
    assert second.market == first.market
