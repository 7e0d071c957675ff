"""Versioned world-state snapshots.

A :class:`StateSnapshot` is an explicit struct-to-struct copy of every
persistent :class:`~carbon_tycoon.state.WorldState` field.  Buildings and
competitor records are copied field by field so later mutations of the live
state never leak into a held snapshot (and vice versa).  Dictionary
conversion goes through :func:`serialize_state` so persistence collaborators
get plain JSON-safe primitives.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, is_dataclass
from hashlib import sha256
from typing import Any, Mapping, Tuple

from loguru import logger

from ..event import StateEventKind
from ..state import Building, CompetitorRecord, WorldState

SNAPSHOT_SCHEMA_VERSION = "carbon_snapshot_v1"


@dataclass(frozen=True)
class StateSnapshot:
    year: int
    turn: int
    money: int
    emission: int
    domestic_credits: int
    intl_credits: int
    monster_anger: float
    buildings: Tuple[Building, ...]
    competitors: Tuple[Tuple[str, CompetitorRecord], ...]
    domestic_price: int = 0
    intl_price: int = 0
    builds_this_turn: int = 0
    land_purchases_this_turn: int = 0
    schema_version: str = SNAPSHOT_SCHEMA_VERSION


def _copy_building(building: Building) -> Building:
    return Building(type=building.type, tile_index=building.tile_index, owner=building.owner, level=building.level)


def _copy_competitor(record: CompetitorRecord) -> CompetitorRecord:
    return CompetitorRecord(name=record.name, money=record.money, emission=record.emission, style=record.style)


def snapshot_state(state: WorldState) -> StateSnapshot:
    return StateSnapshot(
        year=state.year,
        turn=state.turn,
        money=state.money,
        emission=state.emission,
        domestic_credits=state.domestic_credits,
        intl_credits=state.intl_credits,
        monster_anger=state.monster_anger,
        buildings=tuple(_copy_building(b) for b in state.buildings),
        competitors=tuple((owner, _copy_competitor(rec)) for owner, rec in state.competitors.items()),
        domestic_price=state.domestic_price,
        intl_price=state.intl_price,
        builds_this_turn=state.builds_this_turn,
        land_purchases_this_turn=state.land_purchases_this_turn,
    )


def restore_state(state: WorldState, snapshot: StateSnapshot) -> None:
    """Replace ``state``'s persistent fields wholesale.

    Publishes a single ``STATE_RESTORED`` event and none of the per-field
    notifications.
    """

    if snapshot.schema_version != SNAPSHOT_SCHEMA_VERSION:
        raise ValueError(f"incompatible snapshot schema {snapshot.schema_version!r}")
    state.year = snapshot.year
    state.turn = snapshot.turn
    state.money = snapshot.money
    state.emission = snapshot.emission
    state.domestic_credits = snapshot.domestic_credits
    state.intl_credits = snapshot.intl_credits
    state.monster_anger = snapshot.monster_anger
    state.domestic_price = snapshot.domestic_price
    state.intl_price = snapshot.intl_price
    state.builds_this_turn = snapshot.builds_this_turn
    state.land_purchases_this_turn = snapshot.land_purchases_this_turn
    state.buildings = [_copy_building(b) for b in snapshot.buildings]
    state.competitors = {owner: _copy_competitor(rec) for owner, rec in snapshot.competitors}
    income = 0
    for building in state.player_buildings():
        archetype = state.config.building(building.type)
        if archetype is not None:
            income += archetype.income
    state.projected_income = income
    state.bus.publish(StateEventKind.STATE_RESTORED, turn=state.turn, old=None, new=snapshot)
    logger.info(f"[Snapshot] restored turn={state.turn} buildings={len(state.buildings)}")


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def serialize_state(value: Any) -> Any:
    """Convert dataclasses and containers into deterministic primitives."""

    if is_dataclass(value):
        return {field.name: serialize_state(getattr(value, field.name)) for field in fields(value)}
    if isinstance(value, Mapping):
        return {str(key): serialize_state(val) for key, val in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple)):
        return [serialize_state(val) for val in value]
    return value


def snapshot_to_dict(snapshot: StateSnapshot) -> dict:
    payload = serialize_state(snapshot)
    payload["competitors"] = {owner: serialize_state(rec) for owner, rec in snapshot.competitors}
    return payload


def snapshot_from_dict(payload: Mapping[str, Any]) -> StateSnapshot:
    version = payload.get("schema_version", SNAPSHOT_SCHEMA_VERSION)
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise ValueError(f"incompatible snapshot schema {version!r}")
    competitors = payload.get("competitors", {})
    return StateSnapshot(
        year=int(payload["year"]),
        turn=int(payload["turn"]),
        money=int(payload["money"]),
        emission=int(payload["emission"]),
        domestic_credits=int(payload["domestic_credits"]),
        intl_credits=int(payload["intl_credits"]),
        monster_anger=float(payload["monster_anger"]),
        buildings=tuple(Building(**row) for row in payload.get("buildings", [])),
        competitors=tuple((str(owner), CompetitorRecord(**row)) for owner, row in competitors.items()),
        domestic_price=int(payload.get("domestic_price", 0)),
        intl_price=int(payload.get("intl_price", 0)),
        builds_this_turn=int(payload.get("builds_this_turn", 0)),
        land_purchases_this_turn=int(payload.get("land_purchases_this_turn", 0)),
        schema_version=version,
    )


def state_signature(state: WorldState) -> str:
    """Short stable hash of the persistent state, for replay comparisons."""

    blob = json.dumps(snapshot_to_dict(snapshot_state(state)), sort_keys=True, separators=(",", ":"))
    return sha256(blob.encode("utf-8")).hexdigest()[:16]


__all__ = [
    "SNAPSHOT_SCHEMA_VERSION",
    "StateSnapshot",
    "restore_state",
    "serialize_state",
    "snapshot_from_dict",
    "snapshot_state",
    "snapshot_to_dict",
    "state_signature",
]
