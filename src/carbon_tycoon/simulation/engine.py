"""Session-level orchestration for the carbon tycoon simulation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from loguru import logger

from ..config import PLAYER, ConfigTables, default_config
from ..event import StateEventBus
from ..outcome import ActionResult
from ..runtime.achievements import Achievement, AchievementContext, AchievementSystem
from ..runtime.carbon_fee import CarbonFeeSystem, FeeBreakdown
from ..runtime.npc_ai import NPCAISystem, NPCConfig, NPCEvent
from ..runtime.rng_service import RandomSource, ensure_rng_service
from ..runtime.turns import AuditRecord, MarketUpdate, MonsterGrowthReport, SettlementResult, TurnSystem
from ..runtime.victory import VictoryReport, VictorySystem
from ..state import WorldState
from ..world.buildings import BuildingSystem
from ..world.lands import LandSystem, PurchasableLand
from .snapshots import StateSnapshot, restore_state, snapshot_state


class GameOverReason(Enum):
    MONSTER_MAXED = "monster_maxed"
    FINAL_YEAR = "final_year"


@dataclass(slots=True)
class TurnReport:
    turn: int
    year: int
    npc_events: List[NPCEvent]
    settlement: SettlementResult
    monster: MonsterGrowthReport
    market: MarketUpdate
    achievements: List[Achievement] = field(default_factory=list)
    victory: Optional[VictoryReport] = None
    game_over: bool = False
    reason: Optional[GameOverReason] = None


@dataclass(frozen=True)
class SessionSnapshot:
    state: StateSnapshot
    lands: Tuple[dict, ...]
    audit_history: Tuple[AuditRecord, ...]
    unlocked_achievements: Tuple[str, ...] = ()
    rng_counters: Tuple[Tuple[str, int], ...] = ()
    reason: Optional[GameOverReason] = None


@dataclass
class GameSession:
    """One game: a world state plus every system acting on it.

    ``seed`` makes land layout, NPC decisions and market noise reproducible;
    ``layout_rng`` overrides the land-layout draw outright.
    """

    config: ConfigTables = field(default_factory=default_config)
    seed: Optional[int] = None
    bus: StateEventBus = field(default_factory=StateEventBus)
    npc_config: NPCConfig = field(default_factory=NPCConfig)
    layout_rng: Optional[RandomSource] = None

    def __post_init__(self) -> None:
        self.rng_service = ensure_rng_service(self, seed=self.seed)
        self.state = WorldState.create(self.config, bus=self.bus)
        self.lands = LandSystem(self.config)
        self.fees = CarbonFeeSystem(self.state, self.lands)
        self.buildings = BuildingSystem(self.state, self.lands, self.fees)
        self.npc = NPCAISystem(
            self.state,
            self.lands,
            self.buildings,
            self.fees,
            rng_service=self.rng_service,
            cfg=self.npc_config,
        )
        self.turns = TurnSystem(self.state, self.fees)
        self.victory = VictorySystem(self.state, self.fees)
        self.achievements = AchievementSystem()
        self.lands.generate(self.layout_rng or self.rng_service.stream("lands.layout"), self.state.owner_ids())
        self.game_over = False
        self.reason: Optional[GameOverReason] = None
        self.last_report: Optional[TurnReport] = None
        logger.info(f"[Session] new game seed={self.seed} tiles={len(self.lands.lands)}")

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------
    def _closed(self) -> Optional[ActionResult]:
        if self.game_over:
            return ActionResult.fail("the game is over")
        return None

    def build(self, tile_index: int, building_type: str) -> ActionResult:
        closed = self._closed()
        if closed is not None:
            return closed
        return self.buildings.build(tile_index, building_type, PLAYER)

    def upgrade(self, tile_index: int, target: str) -> ActionResult:
        closed = self._closed()
        if closed is not None:
            return closed
        return self.buildings.upgrade_building(tile_index, PLAYER, target)

    def sell(self, tile_index: int) -> ActionResult:
        closed = self._closed()
        if closed is not None:
            return closed
        return self.buildings.sell_building(tile_index, PLAYER)

    def _has_building(self, tile_index: int) -> bool:
        return self.state.building_at(tile_index) is not None

    def land_price(self, tile_index: int) -> int:
        return self.lands.purchase_price(tile_index, self.state.turn, self.state.money)

    def purchase_land(self, tile_index: int) -> ActionResult:
        """Debit the player and transfer the tile in one step."""

        closed = self._closed()
        if closed is not None:
            return closed
        if not self.state.can_purchase_land():
            limit = self.config.tunables.max_land_purchases_per_turn
            return ActionResult.fail(f"land purchase limit of {limit} per turn reached", tile_index=tile_index)
        check = self.lands.can_purchase(tile_index, PLAYER, self._has_building)
        if not check:
            return check
        price = self.land_price(tile_index)
        if self.state.money < price:
            return ActionResult.fail(f"insufficient funds, need ${price:,}", tile_index=tile_index, price=price)
        self.state.subtract_money(price)
        result = self.lands.purchase_land(tile_index, PLAYER, price)
        self.state.increment_land_purchase_count()
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def fee_breakdown(self, owner: str = PLAYER) -> FeeBreakdown:
        return self.fees.fee_breakdown(owner)

    def purchasable_lands(self) -> List[PurchasableLand]:
        return self.lands.purchasable_lands(PLAYER, self._has_building, self.state.turn, self.state.money)

    def player_rank(self) -> int:
        money = self.state.money
        return 1 + sum(1 for rec in self.state.competitors.values() if rec.money > money)

    def evaluate_victory(self) -> VictoryReport:
        return self.victory.evaluate()

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------
    def end_turn(self, npc_rng: Callable[[str], RandomSource] | None = None, market_rng: RandomSource | None = None) -> TurnReport:
        """Resolve the current turn and advance unless the game ended."""

        if self.game_over:
            raise RuntimeError("end_turn called after the game ended")
        state = self.state
        turn, year = state.turn, state.year

        npc_events = self.npc.execute_all(npc_rng)
        settlement = self.turns.execute_settlement()
        monster = self.turns.update_monster()
        market = self.turns.update_market(market_rng or self.rng_service.stream("market", scope={"turn": turn}))

        ctx = AchievementContext(state=state, fees=self.fees, lands=self.lands, player_rank=self.player_rank())
        unlocked = self.achievements.check_achievements(ctx)

        report = TurnReport(
            turn=turn,
            year=year,
            npc_events=npc_events,
            settlement=settlement,
            monster=monster,
            market=market,
            achievements=unlocked,
        )
        if state.monster_maxed:
            self._finish(report, GameOverReason.MONSTER_MAXED)
        elif turn >= self.config.tunables.max_years:
            self._finish(report, GameOverReason.FINAL_YEAR)
        else:
            state.next_turn()
        self.last_report = report
        return report

    def _finish(self, report: TurnReport, reason: GameOverReason) -> None:
        self.game_over = True
        self.reason = reason
        report.game_over = True
        report.reason = reason
        report.victory = self.victory.evaluate()
        logger.info(f"[Session] game over at turn {report.turn}: {reason.value}")

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=snapshot_state(self.state),
            lands=tuple(self.lands.export_lands()),
            audit_history=self.turns.audit_history(),
            unlocked_achievements=tuple(self.achievements.export_unlocked()),
            rng_counters=tuple(sorted(self.rng_service.counters.items())),
            reason=self.reason,
        )

    def restore(self, snapshot: SessionSnapshot) -> None:
        self.lands.restore_lands(snapshot.lands)
        self.turns.restore_audit_history(list(snapshot.audit_history))
        self.achievements.load_unlocked(snapshot.unlocked_achievements)
        restore_state(self.state, snapshot.state)
        self.rng_service.counters = dict(snapshot.rng_counters)
        reason = snapshot.reason
        if self.state.monster_maxed:
            reason = GameOverReason.MONSTER_MAXED
        self.reason = reason
        self.game_over = reason is not None
        self.last_report = None


__all__ = ["GameOverReason", "GameSession", "SessionSnapshot", "TurnReport"]
