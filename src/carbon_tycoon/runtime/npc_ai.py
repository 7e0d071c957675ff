"""Competitor decision policies.

Each competitor runs one turn-scoped policy.  Policies are plain functions
looked up in :data:`POLICY_TABLE` by :class:`NPCPolicy`; they receive an
:class:`NPCContext` bundling the shared primitives (free tiles, purchasable
tiles, build/upgrade/purchase) plus the random source for this owner and
turn, and return the narrative events they produced.

Order inside a policy is fixed: land purchase first, then build/upgrade,
then the owner's emission total is refreshed from the fee engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..config import LEVEL_ORDER, PLAYER
from ..outcome import ActionResult
from ..state import WorldState
from ..world.buildings import BuildingSystem
from ..world.lands import LandSystem, PurchasableLand
from .carbon_fee import CarbonFeeSystem
from .rng_service import RandomSource, RNGService


class NPCPolicy(Enum):
    AGGRESSIVE = "aggressive"
    TECH_OPTIMIZER = "tech_optimizer"
    CARBON_DEALER = "carbon_dealer"


class NPCEventKind(Enum):
    PURCHASE = "purchase"
    BUILD = "build"
    UPGRADE = "upgrade"
    TRADE = "trade"


@dataclass(slots=True)
class NPCConfig:
    # Aggressive expansion
    aggressive_purchase_chance: float = 0.3
    aggressive_early_turns: int = 4
    aggressive_mid_turns: int = 7
    aggressive_early_build: float = 0.85
    aggressive_mid_build: float = 0.70
    aggressive_late_build: float = 0.5
    pressure_player_buildings: int = 3
    pressure_boost: float = 0.2
    pressure_cap: float = 0.95
    aggressive_early_coal_share: float = 0.7
    aggressive_mid_coal_share: float = 0.5
    aggressive_mid_upgrade_chance: float = 0.5
    late_pressure_player_buildings: int = 4
    aggressive_late_action_high: float = 0.7
    aggressive_late_action_low: float = 0.5
    aggressive_late_gas_share: float = 0.6

    # Tech optimizer
    optimizer_purchase_chance: float = 0.2
    optimizer_upgrade_chance: float = 0.8
    optimizer_skip_to_lv3_chance: float = 0.3
    optimizer_build_early: float = 0.5
    optimizer_build_mid: float = 0.4
    optimizer_build_late: float = 0.3

    # Carbon dealer
    dealer_purchase_chance: float = 0.1
    dealer_build_chance: float = 0.4
    dealer_upgrade_chance: float = 0.3
    dealer_trade_chance: float = 0.5


@dataclass(frozen=True, slots=True)
class NPCEvent:
    owner: str
    kind: NPCEventKind
    message: str
    tile_index: Optional[int] = None
    detail: Optional[str] = None


DEFAULT_POLICIES: Dict[str, NPCPolicy] = {
    "A": NPCPolicy.AGGRESSIVE,
    "B": NPCPolicy.TECH_OPTIMIZER,
    "C": NPCPolicy.CARBON_DEALER,
}


@dataclass
class NPCContext:
    """Everything one competitor may touch during its turn."""

    owner: str
    state: WorldState
    lands: LandSystem
    buildings: BuildingSystem
    fees: CarbonFeeSystem
    rng: RandomSource
    cfg: NPCConfig = field(default_factory=NPCConfig)
    events: List[NPCEvent] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.state.owner_name(self.owner)

    @property
    def money(self) -> int:
        return self.state.competitor(self.owner).money

    @property
    def turn(self) -> int:
        return self.state.turn

    def record(self, kind: NPCEventKind, message: str, *, tile_index: Optional[int] = None, detail: Optional[str] = None) -> None:
        self.events.append(NPCEvent(self.owner, kind, message, tile_index, detail))
        logger.debug(f"[NPC] {self.owner} {kind.value}: {message}")

    # ------------------------------------------------------------------
    # Shared primitives
    # ------------------------------------------------------------------
    def free_tiles(self) -> List[int]:
        return [land.index for land in self.lands.lands_by_owner(self.owner) if self.state.building_at(land.index) is None]

    def own_buildings(self):
        return self.state.buildings_of(self.owner)

    def purchasable_lands(self) -> List[PurchasableLand]:
        return self.lands.purchasable_lands(
            self.owner,
            lambda idx: self.state.building_at(idx) is not None,
            self.turn,
            self.money,
        )

    def purchase_land(self, tile_index: int) -> ActionResult:
        check = self.lands.can_purchase(tile_index, self.owner, lambda idx: self.state.building_at(idx) is not None)
        if not check:
            return check
        price = self.lands.purchase_price(tile_index, self.turn, self.money)
        if self.money < price:
            return ActionResult.fail("insufficient funds", tile_index=tile_index, price=price)
        self.state.set_competitor_money(self.owner, self.money - price)
        result = self.lands.purchase_land(tile_index, self.owner, price)
        land = self.lands.land(tile_index)
        self.record(NPCEventKind.PURCHASE, f"{self.name} bought a {land.name} tile (${price:,})", tile_index=tile_index)
        return result

    def build(self, tile_index: int, building_type: str) -> ActionResult:
        result = self.buildings.build(tile_index, building_type, self.owner)
        if result:
            archetype = self.state.config.building(building_type)
            self.record(NPCEventKind.BUILD, f"{self.name} built a new {archetype.name}", tile_index=tile_index, detail=building_type)
        return result

    def upgrade(self, tile_index: int, target: str) -> ActionResult:
        building = self.state.building_at(tile_index)
        if building is None or building.owner != self.owner:
            return ActionResult.fail("not an owned building", tile_index=tile_index)
        cost = self.buildings.upgrade_cost(building.type, building.level or LEVEL_ORDER[0], target)
        if cost is None:
            return ActionResult.fail(f"cannot upgrade to {target}", tile_index=tile_index)
        if self.money < cost:
            return ActionResult.fail("insufficient funds", tile_index=tile_index, cost=cost)
        self.state.set_competitor_money(self.owner, self.money - cost)
        result = self.buildings.upgrade_building(tile_index, self.owner, target)
        if result:
            level_name = self.state.config.factory_level(target).name
            self.record(NPCEventKind.UPGRADE, f"{self.name} upgraded a plant to {level_name}", tile_index=tile_index, detail=target)
        return result

    def refresh_emission(self) -> None:
        self.state.set_competitor_emission(self.owner, self.fees.total_emission(self.owner))


def _purchase_step(ctx: NPCContext, chance: float, pick: Callable[[NPCContext, List[PurchasableLand]], Optional[PurchasableLand]]) -> None:
    if ctx.rng.random() >= chance:
        return
    options = ctx.purchasable_lands()
    if not options:
        return
    target = pick(ctx, options)
    if target is not None and target.can_afford:
        ctx.purchase_land(target.tile_index)


def _next_level(level: str) -> Optional[str]:
    idx = LEVEL_ORDER.index(level) if level in LEVEL_ORDER else 0
    return LEVEL_ORDER[idx + 1] if idx + 1 < len(LEVEL_ORDER) else None


# ----------------------------------------------------------------------
# Aggressive expansion
# ----------------------------------------------------------------------
def _pick_clean_or_any(ctx: NPCContext, options: List[PurchasableLand]) -> PurchasableLand:
    preferred = [opt for opt in options if opt.land.type in ("greenGrid", "highEfficiency")]
    return ctx.rng.choice(preferred or options)


def aggressive_build_probability(turn: int, player_buildings: int, cfg: NPCConfig) -> float:
    if turn <= cfg.aggressive_early_turns:
        probability = cfg.aggressive_early_build
    elif turn <= cfg.aggressive_mid_turns:
        probability = cfg.aggressive_mid_build
    else:
        probability = cfg.aggressive_late_build
    if player_buildings > cfg.pressure_player_buildings:
        probability = min(cfg.pressure_cap, probability + cfg.pressure_boost)
    return probability


def aggressive_policy(ctx: NPCContext) -> List[NPCEvent]:
    cfg, rng = ctx.cfg, ctx.rng
    _purchase_step(ctx, cfg.aggressive_purchase_chance, _pick_clean_or_any)

    free = ctx.free_tiles()
    if free:
        player_count = len(ctx.state.player_buildings())
        probability = aggressive_build_probability(ctx.turn, player_count, cfg)
        if ctx.turn <= cfg.aggressive_early_turns:
            if rng.random() < probability:
                kind = "coal" if rng.random() < cfg.aggressive_early_coal_share else "gas"
                ctx.build(rng.choice(free), kind)
        elif ctx.turn <= cfg.aggressive_mid_turns:
            if rng.random() < probability:
                kind = "coal" if rng.random() < cfg.aggressive_mid_coal_share else "gas"
                ctx.build(rng.choice(free), kind)
            else:
                owned = ctx.own_buildings()
                if owned:
                    building = rng.choice(owned)
                    if building.level == LEVEL_ORDER[0] and rng.random() < cfg.aggressive_mid_upgrade_chance:
                        ctx.upgrade(building.tile_index, LEVEL_ORDER[1])
        else:
            action = (
                cfg.aggressive_late_action_high
                if player_count > cfg.late_pressure_player_buildings
                else cfg.aggressive_late_action_low
            )
            if rng.random() < action:
                owned = ctx.own_buildings()
                if owned:
                    building = rng.choice(owned)
                    target = _next_level(building.level)
                    if target is not None:
                        ctx.upgrade(building.tile_index, target)
            else:
                kind = "gas" if rng.random() < cfg.aggressive_late_gas_share else "tech"
                ctx.build(rng.choice(free), kind)

    ctx.refresh_emission()
    return ctx.events


# ----------------------------------------------------------------------
# Tech optimizer
# ----------------------------------------------------------------------
def _pick_green_or_any(ctx: NPCContext, options: List[PurchasableLand]) -> PurchasableLand:
    green = [opt for opt in options if opt.land.type == "greenGrid"]
    return ctx.rng.choice(green or options)


def optimizer_build_probability(turn: int, cfg: NPCConfig) -> float:
    if turn <= 3:
        return cfg.optimizer_build_early
    if turn <= 6:
        return cfg.optimizer_build_mid
    return cfg.optimizer_build_late


def _optimizer_choose_type(ctx: NPCContext) -> str:
    roll = ctx.rng.random()
    config = ctx.state.config
    solar, tech = config.building("solar"), config.building("tech")
    if roll < 0.3 and solar is not None and ctx.money >= solar.cost:
        return "solar"
    if roll < 0.6 and tech is not None and ctx.money >= tech.cost:
        return "tech"
    if roll < 0.8:
        return "gas"
    return "manufacturing"


def tech_optimizer_policy(ctx: NPCContext) -> List[NPCEvent]:
    cfg, rng = ctx.cfg, ctx.rng
    _purchase_step(ctx, cfg.optimizer_purchase_chance, _pick_green_or_any)

    owned = ctx.own_buildings()
    if owned and rng.random() < cfg.optimizer_upgrade_chance:
        building = rng.choice(owned)
        archetype = ctx.state.config.building(building.type)
        if archetype is not None and archetype.upgradeable:
            target = LEVEL_ORDER[1]
            if building.level == LEVEL_ORDER[1]:
                target = LEVEL_ORDER[2]
            elif building.level == LEVEL_ORDER[0] and rng.random() < cfg.optimizer_skip_to_lv3_chance:
                target = LEVEL_ORDER[2]
            if ctx.upgrade(building.tile_index, target):
                ctx.refresh_emission()
                return ctx.events

    free = ctx.free_tiles()
    if free and (not owned or rng.random() < optimizer_build_probability(ctx.turn, cfg)):
        kind = _optimizer_choose_type(ctx)
        ctx.build(rng.choice(free), kind)

    ctx.refresh_emission()
    return ctx.events


# ----------------------------------------------------------------------
# Carbon dealer
# ----------------------------------------------------------------------
def _pick_cheapest(ctx: NPCContext, options: List[PurchasableLand]) -> Optional[PurchasableLand]:
    cheap = [opt for opt in options if opt.land.type in ("highEmission", "basic")]
    pool = cheap or options
    return min(pool, key=lambda opt: opt.price) if pool else None


def carbon_dealer_policy(ctx: NPCContext) -> List[NPCEvent]:
    cfg, rng = ctx.cfg, ctx.rng
    _purchase_step(ctx, cfg.dealer_purchase_chance, _pick_cheapest)

    free = ctx.free_tiles()
    if free and rng.random() < cfg.dealer_build_chance:
        kind = "gas" if rng.random() < 0.5 else "manufacturing"
        ctx.build(rng.choice(free), kind)

    owned = ctx.own_buildings()
    if owned and rng.random() < cfg.dealer_upgrade_chance:
        building = rng.choice(owned)
        if building.level == LEVEL_ORDER[0]:
            ctx.upgrade(building.tile_index, LEVEL_ORDER[1])

    if rng.random() < cfg.dealer_trade_chance:
        ctx.record(NPCEventKind.TRADE, f"{ctx.name} is trading carbon credits, looking for an edge")

    ctx.refresh_emission()
    return ctx.events


PolicyFn = Callable[[NPCContext], List[NPCEvent]]

POLICY_TABLE: Dict[NPCPolicy, PolicyFn] = {
    NPCPolicy.AGGRESSIVE: aggressive_policy,
    NPCPolicy.TECH_OPTIMIZER: tech_optimizer_policy,
    NPCPolicy.CARBON_DEALER: carbon_dealer_policy,
}


class NPCAISystem:
    """Runs every competitor's policy in owner order, one at a time."""

    def __init__(
        self,
        state: WorldState,
        lands: LandSystem,
        buildings: BuildingSystem,
        fees: CarbonFeeSystem,
        *,
        rng_service: RNGService | None = None,
        policies: Dict[str, NPCPolicy] | None = None,
        cfg: NPCConfig | None = None,
    ) -> None:
        self.state = state
        self.lands = lands
        self.buildings = buildings
        self.fees = fees
        self.rng_service = rng_service or RNGService()
        self.policies = dict(policies or DEFAULT_POLICIES)
        self.cfg = cfg or NPCConfig()

    def _rng_for(self, owner: str) -> RandomSource:
        return self.rng_service.stream(f"npc.{owner}", scope={"turn": self.state.turn})

    def context(self, owner: str, rng: RandomSource | None = None) -> NPCContext:
        return NPCContext(
            owner=owner,
            state=self.state,
            lands=self.lands,
            buildings=self.buildings,
            fees=self.fees,
            rng=rng if rng is not None else self._rng_for(owner),
            cfg=self.cfg,
        )

    def execute_npc(self, owner: str, rng: RandomSource | None = None) -> List[NPCEvent]:
        if owner == PLAYER:
            raise ValueError("the player has no NPC policy")
        policy = self.policies.get(owner)
        if policy is None:
            logger.warning(f"[NPC] no policy registered for owner={owner!r}")
            return []
        return POLICY_TABLE[policy](self.context(owner, rng))

    def execute_all(self, rng_for: Callable[[str], RandomSource] | None = None) -> List[NPCEvent]:
        events: List[NPCEvent] = []
        for owner in self.policies:
            rng = rng_for(owner) if rng_for is not None else None
            events.extend(self.execute_npc(owner, rng))
        return events


__all__ = [
    "DEFAULT_POLICIES",
    "NPCAISystem",
    "NPCConfig",
    "NPCContext",
    "NPCEvent",
    "NPCEventKind",
    "NPCPolicy",
    "POLICY_TABLE",
    "aggressive_build_probability",
    "aggressive_policy",
    "carbon_dealer_policy",
    "optimizer_build_probability",
    "tech_optimizer_policy",
]
