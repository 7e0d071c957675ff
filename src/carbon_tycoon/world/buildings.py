"""Build, upgrade and sell operations.

Costs and refunds are fixed fractions of the archetype's base cost:

* upgrade Lv1->Lv2 costs 50%, Lv2->Lv3 costs 80%, Lv1->Lv3 the sum (130%);
* selling refunds 60%, plus 10% at Lv2 or 20% at Lv3.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from loguru import logger

from ..config import LEVEL_ORDER, PLAYER
from ..outcome import ActionResult
from ..state import Building, WorldState
from .lands import LandSystem

if TYPE_CHECKING:
    from ..runtime.carbon_fee import CarbonFeeSystem

UPGRADE_STEP_COST: Dict[tuple[str, str], float] = {
    ("Lv1", "Lv2"): 0.5,
    ("Lv2", "Lv3"): 0.8,
}
REFUND_BASE_RATE = 0.6
REFUND_LEVEL_BONUS: Dict[str, float] = {"Lv1": 0.0, "Lv2": 0.1, "Lv3": 0.2}

# Selling a dirty plant calms the monster by one point per 2000 t, up to 3.
MONSTER_RELIEF_PER_TONS = 2000
MONSTER_RELIEF_CAP = 3


@dataclass(frozen=True, slots=True)
class UpgradeOption:
    level: str
    cost: int
    name: str


@dataclass(slots=True)
class BuildingInfo:
    tile_index: int
    type: str
    name: str
    owner: str
    level: str
    level_name: str
    income: int
    emission: float
    base_emission: int
    cost: int
    can_upgrade: bool
    upgrade_options: List[UpgradeOption] = field(default_factory=list)


class BuildingSystem:
    def __init__(self, state: WorldState, lands: LandSystem, fees: "CarbonFeeSystem") -> None:
        self.state = state
        self.lands = lands
        self.fees = fees

    @property
    def config(self):
        return self.state.config

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build(self, tile_index: int, building_type: str, owner: str = PLAYER) -> ActionResult:
        """Place a Lv1 ``building_type`` on ``tile_index`` for ``owner``.

        The player is bound by the per-turn build cap and realises income at
        settlement.  Competitors book the archetype's income immediately.
        """

        archetype = self.config.building(building_type)
        if archetype is None:
            return ActionResult.fail(f"unknown building type {building_type!r}", tile_index=tile_index)
        land = self.lands.land(tile_index)
        if land is None:
            return ActionResult.fail("land does not exist", tile_index=tile_index)
        if land.owner != owner:
            return ActionResult.fail("tile is not owned by the builder", tile_index=tile_index)
        if self.state.building_at(tile_index) is not None:
            return ActionResult.fail("tile already has a building", tile_index=tile_index)
        if owner == PLAYER and not self.state.can_build():
            limit = self.config.tunables.max_buildings_per_turn
            return ActionResult.fail(f"build limit of {limit} per turn reached", tile_index=tile_index)
        if self.state.owner_money(owner) < archetype.cost:
            return ActionResult.fail(f"insufficient funds, need ${archetype.cost:,}", tile_index=tile_index)

        self.state.adjust_owner_money(owner, -archetype.cost)
        if owner != PLAYER:
            self.state.adjust_owner_money(owner, archetype.income)
        self.state.add_building(Building(type=building_type, tile_index=tile_index, owner=owner))
        if owner == PLAYER:
            self.state.increment_build_count()
        logger.debug(f"[Buildings] {owner} built {building_type} on tile {tile_index}")
        return ActionResult(
            success=True,
            message=f"built {archetype.name}",
            tile_index=tile_index,
            building_type=building_type,
            level=LEVEL_ORDER[0],
            cost=archetype.cost,
        )

    # ------------------------------------------------------------------
    # Upgrade
    # ------------------------------------------------------------------
    def upgrade_cost(self, building_type: str, current: str, target: str) -> Optional[int]:
        """Cost of moving from ``current`` to ``target``, or ``None`` if disallowed."""

        archetype = self.config.building(building_type)
        if archetype is None or not archetype.upgradeable:
            return None
        if current not in LEVEL_ORDER or target not in LEVEL_ORDER:
            return None
        start, end = LEVEL_ORDER.index(current), LEVEL_ORDER.index(target)
        if end <= start:
            return None
        fraction = sum(UPGRADE_STEP_COST[(LEVEL_ORDER[i], LEVEL_ORDER[i + 1])] for i in range(start, end))
        return int(round(archetype.cost * fraction))

    def upgrade_building(self, tile_index: int, owner: str, target: str) -> ActionResult:
        """Raise a building to ``target``.

        Only the player's treasury is checked and debited here; competitor
        funds are handled by the caller.
        """

        building = self.state.building_at(tile_index)
        if building is None:
            return ActionResult.fail("no building on this tile", tile_index=tile_index)
        if building.owner != owner:
            return ActionResult.fail("building belongs to another owner", tile_index=tile_index)
        archetype = self.config.building(building.type)
        if archetype is None or not archetype.upgradeable:
            return ActionResult.fail("this building cannot be upgraded", tile_index=tile_index)
        cost = self.upgrade_cost(building.type, building.level or LEVEL_ORDER[0], target)
        if cost is None:
            return ActionResult.fail(f"cannot upgrade to {target}", tile_index=tile_index)
        if owner == PLAYER:
            if self.state.money < cost:
                return ActionResult.fail(f"insufficient funds, need ${cost:,}", tile_index=tile_index)
            self.state.subtract_money(cost)
        self.state.upgrade_building(tile_index, owner, target)
        level = self.config.factory_level(target)
        logger.debug(f"[Buildings] {owner} upgraded tile {tile_index} to {target} cost={cost}")
        return ActionResult(
            success=True,
            message=f"upgraded to {level.name}",
            tile_index=tile_index,
            building_type=building.type,
            level=target,
            cost=cost,
        )

    # ------------------------------------------------------------------
    # Sell
    # ------------------------------------------------------------------
    def calculate_refund(self, tile_index: int) -> int:
        building = self.state.building_at(tile_index)
        if building is None:
            return 0
        archetype = self.config.building(building.type)
        if archetype is None:
            return 0
        base = int(archetype.cost * REFUND_BASE_RATE)
        bonus = int(archetype.cost * REFUND_LEVEL_BONUS.get(building.level or LEVEL_ORDER[0], 0.0))
        return base + bonus

    def sell_building(self, tile_index: int, owner: str) -> ActionResult:
        building = self.state.building_at(tile_index)
        if building is None:
            return ActionResult.fail("no building on this tile", tile_index=tile_index)
        if building.owner != owner:
            return ActionResult.fail("building belongs to another owner", tile_index=tile_index)
        archetype = self.config.building(building.type)
        if archetype is None:
            return ActionResult.fail("building data missing", tile_index=tile_index)

        refund = self.calculate_refund(tile_index)
        reduction = 0
        if archetype.category == "high_pollute" and owner == PLAYER:
            emission = self.fees.building_emission(building)
            reduction = min(MONSTER_RELIEF_CAP, int(emission // MONSTER_RELIEF_PER_TONS))
            if reduction > 0:
                self.state.reduce_monster_anger(reduction)

        self.state.remove_building(tile_index, owner)
        self.state.adjust_owner_money(owner, refund)

        message = f"sold {archetype.name} for ${refund:,}"
        if reduction > 0:
            message += f"; monster anger -{reduction}%"
        logger.debug(f"[Buildings] {owner} sold tile {tile_index} refund={refund} relief={reduction}")
        return ActionResult(
            success=True,
            message=message,
            tile_index=tile_index,
            building_type=building.type,
            level=building.level,
            refund=refund,
            monster_reduction=reduction,
        )

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------
    def building_info(self, tile_index: int) -> Optional[BuildingInfo]:
        building = self.state.building_at(tile_index)
        if building is None:
            return None
        archetype = self.config.building(building.type)
        if archetype is None:
            return None
        level = building.level or LEVEL_ORDER[0]
        options: List[UpgradeOption] = []
        if archetype.upgradeable and level in LEVEL_ORDER:
            for target in LEVEL_ORDER[LEVEL_ORDER.index(level) + 1 :]:
                cost = self.upgrade_cost(building.type, level, target)
                if cost is not None:
                    options.append(UpgradeOption(target, cost, self.config.factory_level(target).name))
        return BuildingInfo(
            tile_index=tile_index,
            type=building.type,
            name=archetype.name,
            owner=building.owner,
            level=level,
            level_name=self.config.factory_level(level).name,
            income=archetype.income,
            emission=self.fees.building_emission(building),
            base_emission=archetype.base_emission,
            cost=archetype.cost,
            can_upgrade=archetype.upgradeable,
            upgrade_options=options,
        )

    def upgradeable_buildings(self, owner: str = PLAYER) -> List[BuildingInfo]:
        infos = (self.building_info(b.tile_index) for b in self.state.buildings_of(owner))
        return [info for info in infos if info is not None and info.can_upgrade and info.upgrade_options]


__all__ = [
    "BuildingInfo",
    "BuildingSystem",
    "MONSTER_RELIEF_CAP",
    "MONSTER_RELIEF_PER_TONS",
    "UPGRADE_STEP_COST",
    "UpgradeOption",
]
