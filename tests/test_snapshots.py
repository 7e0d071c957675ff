from __future__ import annotations

import copy
import dataclasses

import pytest

from carbon_tycoon.event import StateEventKind
from carbon_tycoon.simulation.snapshots import (
    SNAPSHOT_SCHEMA_VERSION,
    restore_state,
    snapshot_from_dict,
    snapshot_state,
    snapshot_to_dict,
    state_signature,
)
from carbon_tycoon.state import Building, WorldState


def _busy_state() -> WorldState:
    state = WorldState.create()
    state.add_building(Building("coal", 0, "P"))
    state.add_building(Building("gas", 1, "A", "Lv2"))
    state.set_domestic_credits(120)
    state.set_intl_credits(30)
    state.set_monster_anger(44.5)
    state.set_competitor_emission("A", 1200)
    state.increment_build_count()
    return state


def test_round_trip_reproduces_state() -> None:
    state = _busy_state()
    expected = copy.deepcopy(state)
    snapshot = snapshot_state(state)

    state.add_building(Building("solar", 5, "P"))
    state.set_money(1)
    state.set_competitor_money("A", 3)
    state.next_turn()
    restore_state(state, snapshot)

    assert state == expected
    assert [b.tile_index for b in state.buildings] == [0, 1]
    assert state.projected_income == 7000


def test_snapshot_is_isolated_from_live_state() -> None:
    state = _busy_state()
    snapshot = snapshot_state(state)

    state.upgrade_building(0, "P", "Lv3")
    state.competitor("A").money = 0

    assert snapshot.buildings[0].level == "Lv1"
    assert dict(snapshot.competitors)["A"].money == 50_000


def test_restore_emits_single_event() -> None:
    state = _busy_state()
    snapshot = state.snapshot()
    state.set_money(5)
    seen: list[StateEventKind] = []
    state.bus.subscribe(lambda evt: seen.append(evt.kind))

    state.restore(snapshot)
    assert seen == [StateEventKind.STATE_RESTORED]
    assert state.money == snapshot.money


def test_dict_round_trip() -> None:
    snapshot = snapshot_state(_busy_state())
    payload = snapshot_to_dict(snapshot)

    assert payload["schema_version"] == SNAPSHOT_SCHEMA_VERSION
    assert payload["competitors"]["A"]["emission"] == 1200
    assert payload["buildings"][1] == {"type": "gas", "tile_index": 1, "owner": "A", "level": "Lv2"}
    assert snapshot_from_dict(payload) == snapshot


def test_incompatible_schema_rejected() -> None:
    state = _busy_state()
    stale = dataclasses.replace(snapshot_state(state), schema_version="carbon_snapshot_v0")

    with pytest.raises(ValueError):
        restore_state(state, stale)
    with pytest.raises(ValueError):
        snapshot_from_dict({"schema_version": "other"})


def test_signature_tracks_changes() -> None:
    state = _busy_state()
    before = state_signature(state)

    assert state_signature(copy.deepcopy(state)) == before
    state.add_money(1)
    assert state_signature(state) != before
