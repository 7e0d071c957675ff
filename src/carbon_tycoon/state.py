"""Mutable world state for the carbon tycoon simulation.

:class:`WorldState` is the single aggregate every system reads and mutates.
Fields are plain attributes for reading; writes go through the mutator
methods, each of which clamps its input and publishes a typed
:class:`~carbon_tycoon.event.StateEvent` on the attached bus.  The player's
``projected_income`` and ``emission`` are derived from the player's buildings
and recomputed whenever the building list changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from .config import COMPETITOR_IDS, LEVEL_ORDER, PLAYER, ConfigTables, default_config
from .event import StateEventBus, StateEventKind

if TYPE_CHECKING:
    from .simulation.snapshots import StateSnapshot

MONSTER_MAX = 100.0


@dataclass(slots=True)
class Building:
    type: str
    tile_index: int
    owner: str
    level: str = LEVEL_ORDER[0]


@dataclass(slots=True)
class CompetitorRecord:
    name: str
    money: int
    emission: int = 0
    style: str = ""


def _clamp_anger(value: float) -> float:
    return max(0.0, min(MONSTER_MAX, float(value)))


@dataclass
class WorldState:
    config: ConfigTables = field(default_factory=default_config, repr=False, compare=False)
    bus: StateEventBus = field(default_factory=StateEventBus, repr=False, compare=False)
    year: int = 2030
    turn: int = 1
    money: int = 0
    emission: int = 0
    domestic_credits: int = 0
    intl_credits: int = 0
    monster_anger: float = 0.0
    domestic_price: int = 0
    intl_price: int = 0
    projected_income: int = 0
    buildings: List[Building] = field(default_factory=list)
    competitors: Dict[str, CompetitorRecord] = field(default_factory=dict)
    builds_this_turn: int = 0
    land_purchases_this_turn: int = 0

    @classmethod
    def create(cls, config: ConfigTables | None = None, *, bus: StateEventBus | None = None) -> "WorldState":
        """Build the turn-1 state: initial stake, starting anger and prices."""

        config = config or default_config()
        tun = config.tunables
        competitors = {}
        for owner_id in COMPETITOR_IDS:
            profile = config.owner(owner_id)
            competitors[owner_id] = CompetitorRecord(
                name=profile.display_name, money=profile.initial_money, style=profile.style
            )
        return cls(
            config=config,
            bus=bus or StateEventBus(),
            year=tun.start_year,
            turn=1,
            money=tun.initial_money,
            monster_anger=_clamp_anger(tun.initial_monster_anger),
            domestic_price=tun.initial_domestic_price,
            intl_price=tun.initial_intl_price,
            competitors=competitors,
        )

    def _emit(self, kind: StateEventKind, old: object = None, new: object = None, tag: Optional[str] = None) -> None:
        self.bus.publish(kind, turn=self.turn, old=old, new=new, tag=tag)

    # ------------------------------------------------------------------
    # Treasury and emission
    # ------------------------------------------------------------------
    def set_money(self, value: float) -> None:
        old = self.money
        self.money = max(0, int(value))
        if self.money == old:
            return
        self._emit(StateEventKind.MONEY_CHANGED, old, self.money)

    def add_money(self, amount: float) -> None:
        self.set_money(self.money + amount)

    def subtract_money(self, amount: float) -> None:
        self.set_money(self.money - amount)

    def set_emission(self, value: float) -> None:
        old = self.emission
        self.emission = max(0, int(round(value)))
        if self.emission == old:
            return
        self._emit(StateEventKind.EMISSION_CHANGED, old, self.emission)

    # ------------------------------------------------------------------
    # Buildings
    # ------------------------------------------------------------------
    def add_building(self, building: Building) -> Building:
        if self.building_at(building.tile_index) is not None:
            raise ValueError(f"tile {building.tile_index} already has a building")
        self.buildings.append(building)
        self._emit(StateEventKind.BUILDING_ADDED, None, building, tag=building.owner)
        self._recalculate_stats()
        return building

    def remove_building(self, tile_index: int, owner: str) -> Optional[Building]:
        for idx, building in enumerate(self.buildings):
            if building.tile_index == tile_index and building.owner == owner:
                del self.buildings[idx]
                self._emit(StateEventKind.BUILDING_REMOVED, building, None, tag=owner)
                self._recalculate_stats()
                return building
        return None

    def upgrade_building(self, tile_index: int, owner: str, new_level: str) -> bool:
        building = self.building_at(tile_index)
        if building is None or building.owner != owner:
            return False
        old_level = building.level
        building.level = new_level
        self._emit(StateEventKind.BUILDING_UPGRADED, old_level, building, tag=owner)
        self._recalculate_stats()
        return True

    def _player_totals(self) -> tuple[int, int]:
        income = 0
        emission = 0
        for building in self.player_buildings():
            archetype = self.config.building(building.type)
            if archetype is None:
                continue
            income += archetype.income
            emission += archetype.base_emission
        return income, emission

    def _recalculate_stats(self) -> None:
        income, emission = self._player_totals()
        self.projected_income = income
        self.set_emission(emission)

    def building_at(self, tile_index: int) -> Optional[Building]:
        for building in self.buildings:
            if building.tile_index == tile_index:
                return building
        return None

    def buildings_of(self, owner: str) -> List[Building]:
        return [building for building in self.buildings if building.owner == owner]

    def player_buildings(self) -> List[Building]:
        return self.buildings_of(PLAYER)

    # ------------------------------------------------------------------
    # Credits, monster and market
    # ------------------------------------------------------------------
    def set_domestic_credits(self, value: float) -> None:
        old = self.domestic_credits
        self.domestic_credits = max(0, int(value))
        if self.domestic_credits == old:
            return
        self._emit(StateEventKind.CREDITS_CHANGED, old, self.domestic_credits, tag="domestic")

    def set_intl_credits(self, value: float) -> None:
        old = self.intl_credits
        self.intl_credits = max(0, int(value))
        if self.intl_credits == old:
            return
        self._emit(StateEventKind.CREDITS_CHANGED, old, self.intl_credits, tag="international")

    def set_monster_anger(self, value: float) -> None:
        old = self.monster_anger
        self.monster_anger = _clamp_anger(value)
        if self.monster_anger == old:
            return
        self._emit(StateEventKind.MONSTER_CHANGED, old, self.monster_anger)
        if old < MONSTER_MAX <= self.monster_anger:
            self._emit(StateEventKind.MONSTER_MAXED, old, self.monster_anger)

    def add_monster_anger(self, amount: float) -> None:
        self.set_monster_anger(self.monster_anger + amount)

    def reduce_monster_anger(self, amount: float) -> None:
        self.set_monster_anger(self.monster_anger - amount)

    @property
    def monster_maxed(self) -> bool:
        return self.monster_anger >= MONSTER_MAX

    def set_market_prices(self, domestic: int, intl: int) -> None:
        old = (self.domestic_price, self.intl_price)
        self.domestic_price = int(domestic)
        self.intl_price = int(intl)
        if (self.domestic_price, self.intl_price) == old:
            return
        self._emit(StateEventKind.PRICES_CHANGED, old, (self.domestic_price, self.intl_price))

    # ------------------------------------------------------------------
    # Competitor mirror records
    # ------------------------------------------------------------------
    def competitor(self, owner: str) -> CompetitorRecord:
        return self.competitors[owner]

    def set_competitor_money(self, owner: str, value: float) -> None:
        record = self.competitors[owner]
        old = record.money
        record.money = max(0, int(value))
        if record.money == old:
            return
        self._emit(StateEventKind.COMPETITOR_CHANGED, ("money", old), ("money", record.money), tag=owner)

    def set_competitor_emission(self, owner: str, value: float) -> None:
        record = self.competitors[owner]
        old = record.emission
        record.emission = max(0, int(value))
        if record.emission == old:
            return
        self._emit(StateEventKind.COMPETITOR_CHANGED, ("emission", old), ("emission", record.emission), tag=owner)

    def owner_money(self, owner: str) -> int:
        if owner == PLAYER:
            return self.money
        return self.competitors[owner].money

    def adjust_owner_money(self, owner: str, delta: float) -> None:
        if owner == PLAYER:
            self.add_money(delta)
        else:
            self.set_competitor_money(owner, self.competitors[owner].money + delta)

    def owner_ids(self) -> List[str]:
        return [PLAYER] + list(self.competitors)

    def owner_name(self, owner: str) -> str:
        if owner in self.competitors:
            return self.competitors[owner].name
        return self.config.owner(owner).display_name

    # ------------------------------------------------------------------
    # Turn bookkeeping
    # ------------------------------------------------------------------
    def next_turn(self) -> None:
        old = (self.turn, self.year)
        self.turn += 1
        self.year += 1
        self.builds_this_turn = 0
        self.land_purchases_this_turn = 0
        self._emit(StateEventKind.TURN_CHANGED, old, (self.turn, self.year))

    def can_build(self) -> bool:
        return self.builds_this_turn < self.config.tunables.max_buildings_per_turn

    def increment_build_count(self) -> None:
        old = self.builds_this_turn
        self.builds_this_turn += 1
        self._emit(StateEventKind.BUILD_COUNT_CHANGED, old, self.builds_this_turn)

    def can_purchase_land(self) -> bool:
        return self.land_purchases_this_turn < self.config.tunables.max_land_purchases_per_turn

    def increment_land_purchase_count(self) -> None:
        old = self.land_purchases_this_turn
        self.land_purchases_this_turn += 1
        self._emit(StateEventKind.LAND_PURCHASE_COUNT_CHANGED, old, self.land_purchases_this_turn)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> "StateSnapshot":
        from .simulation.snapshots import snapshot_state

        return snapshot_state(self)

    def restore(self, snapshot: "StateSnapshot") -> None:
        from .simulation.snapshots import restore_state

        restore_state(self, snapshot)



__all__ = ["Building", "CompetitorRecord", "MONSTER_MAX", "WorldState"]
