from __future__ import annotations

import pytest

from carbon_tycoon.event import StateEventBus, StateEventKind
from carbon_tycoon.state import MONSTER_MAX, Building, WorldState


def _basic_state() -> WorldState:
    return WorldState.create()


def test_create_uses_reference_stake() -> None:
    state = _basic_state()

    assert state.turn == 1
    assert state.year == 2030
    assert state.money == 40_000
    assert state.monster_anger == 30.0
    assert (state.domestic_price, state.intl_price) == (300, 800)
    assert set(state.competitors) == {"A", "B", "C"}
    assert state.competitor("A").money == 50_000
    assert state.owner_ids() == ["P", "A", "B", "C"]


def test_money_and_emission_clamped() -> None:
    state = _basic_state()
    state.subtract_money(1_000_000)
    state.set_emission(-5)

    assert state.money == 0
    assert state.emission == 0


def test_mutators_emit_old_and_new() -> None:
    state = _basic_state()
    state.add_money(500)

    event = state.bus.history(StateEventKind.MONEY_CHANGED)[-1]
    assert (event.old, event.new) == (40_000, 40_500)
    assert event.turn == 1


def test_buildings_recompute_derived_stats() -> None:
    state = _basic_state()
    state.add_building(Building("coal", 0, "P"))
    state.add_building(Building("gas", 1, "A"))

    assert state.projected_income == 7000
    assert state.emission == 3500

    state.upgrade_building(0, "P", "Lv2")
    assert state.building_at(0).level == "Lv2"

    removed = state.remove_building(0, "P")
    assert removed is not None
    assert state.projected_income == 0
    assert state.emission == 0
    assert state.remove_building(1, "P") is None


def test_one_building_per_tile() -> None:
    state = _basic_state()
    state.add_building(Building("coal", 3, "P"))

    with pytest.raises(ValueError):
        state.add_building(Building("gas", 3, "P"))


def test_monster_anger_clamped_and_maxed_once_per_crossing() -> None:
    state = _basic_state()
    maxed: list[float] = []
    state.bus.subscribe(lambda evt: maxed.append(evt.new), kinds=StateEventKind.MONSTER_MAXED)

    state.add_monster_anger(500)
    state.add_monster_anger(10)
    assert state.monster_anger == MONSTER_MAX
    assert len(maxed) == 1

    state.reduce_monster_anger(5)
    state.add_monster_anger(5)
    assert len(maxed) == 2

    state.reduce_monster_anger(1000)
    assert state.monster_anger == 0.0


def test_next_turn_resets_counters() -> None:
    state = _basic_state()
    state.increment_build_count()
    state.increment_build_count()
    state.increment_land_purchase_count()

    assert not state.can_build()
    assert not state.can_purchase_land()

    state.next_turn()
    assert (state.turn, state.year) == (2, 2031)
    assert state.can_build()
    assert state.can_purchase_land()
    event = state.bus.history(StateEventKind.TURN_CHANGED)[-1]
    assert event.old == (1, 2030)
    assert event.new == (2, 2031)


def test_competitor_records() -> None:
    state = _basic_state()
    state.adjust_owner_money("B", -50_000)
    state.set_competitor_emission("B", 1200)

    assert state.owner_money("B") == 0
    assert state.competitor("B").emission == 1200
    events = state.bus.history(StateEventKind.COMPETITOR_CHANGED)
    assert [evt.tag for evt in events] == ["B", "B"]


def test_listener_failure_is_isolated() -> None:
    bus = StateEventBus()
    seen: list[int] = []

    def _boom(evt) -> None:
        raise RuntimeError("listener bug")

    bus.subscribe(_boom)
    bus.subscribe(lambda evt: seen.append(evt.seq))
    state = WorldState.create(bus=bus)
    state.add_money(1)

    assert state.money == 40_001
    assert seen


def test_subscribe_filters_and_unsubscribe() -> None:
    bus = StateEventBus()
    seen: list[StateEventKind] = []
    sub_id = bus.subscribe(lambda evt: seen.append(evt.kind), kinds=[StateEventKind.CREDITS_CHANGED])
    state = WorldState.create(bus=bus)

    state.set_domestic_credits(100)
    state.add_money(5)
    assert seen == [StateEventKind.CREDITS_CHANGED]
    assert bus.history(StateEventKind.CREDITS_CHANGED)[-1].tag == "domestic"

    assert bus.unsubscribe(sub_id)
    assert not bus.unsubscribe(sub_id)
    state.set_intl_credits(7)
    assert len(seen) == 1
    assert bus.subscriber_count == 0


def test_history_is_bounded() -> None:
    bus = StateEventBus(max_history=3)
    for idx in range(5):
        bus.publish(StateEventKind.MONEY_CHANGED, turn=1, old=idx, new=idx + 1)

    assert [evt.seq for evt in bus.history()] == [2, 3, 4]
    bus.clear_history()
    assert bus.history() == []


def test_unchanged_values_publish_nothing() -> None:
    state = _basic_state()
    state.set_money(0)
    state.bus.clear_history()

    state.subtract_money(500)
    state.add_money(0)
    state.set_emission(0)
    state.set_monster_anger(state.monster_anger)
    state.set_domestic_credits(0)
    state.set_competitor_money("A", state.competitor("A").money)
    state.set_market_prices(state.domestic_price, state.intl_price)
    assert state.bus.history() == []

    state.add_money(1)
    assert [evt.kind for evt in state.bus.history()] == [StateEventKind.MONEY_CHANGED]
