"""Carbon tycoon simulation package public façade."""

from .config import (
    COMPETITOR_IDS,
    LEVEL_ORDER,
    OWNER_IDS,
    PLAYER,
    BuildingType,
    ConfigTables,
    FactoryLevel,
    GlobalTunables,
    LandType,
    OwnerProfile,
    default_config,
)
from .event import StateEvent, StateEventBus, StateEventKind
from .logs import LogConfig, configure_logging, silence_logging
from .outcome import ActionResult
from .runtime.achievements import Achievement, AchievementContext, AchievementSystem
from .runtime.carbon_fee import CarbonFeeSystem, CreditDeduction, FeeBreakdown
from .runtime.npc_ai import NPCAISystem, NPCConfig, NPCEvent, NPCEventKind, NPCPolicy
from .runtime.rng_service import RandomSource, RNGService
from .runtime.turns import AuditOutcome, AuditRecord, MarketUpdate, MonsterGrowthReport, SettlementResult, TurnSystem
from .runtime.victory import VictoryReport, VictorySystem
from .simulation.engine import GameOverReason, GameSession, SessionSnapshot, TurnReport
from .simulation.snapshots import SNAPSHOT_SCHEMA_VERSION, StateSnapshot
from .state import MONSTER_MAX, Building, CompetitorRecord, WorldState
from .world.buildings import BuildingInfo, BuildingSystem
from .world.lands import Land, LandSystem, PurchasableLand

__all__ = [
    "Achievement",
    "AchievementContext",
    "AchievementSystem",
    "ActionResult",
    "AuditOutcome",
    "AuditRecord",
    "Building",
    "BuildingInfo",
    "BuildingSystem",
    "BuildingType",
    "COMPETITOR_IDS",
    "CarbonFeeSystem",
    "CompetitorRecord",
    "ConfigTables",
    "CreditDeduction",
    "FactoryLevel",
    "FeeBreakdown",
    "GameOverReason",
    "GameSession",
    "GlobalTunables",
    "LEVEL_ORDER",
    "Land",
    "LandSystem",
    "LandType",
    "LogConfig",
    "MONSTER_MAX",
    "MarketUpdate",
    "MonsterGrowthReport",
    "NPCAISystem",
    "NPCConfig",
    "NPCEvent",
    "NPCEventKind",
    "NPCPolicy",
    "OWNER_IDS",
    "OwnerProfile",
    "PLAYER",
    "PurchasableLand",
    "RNGService",
    "RandomSource",
    "SNAPSHOT_SCHEMA_VERSION",
    "SessionSnapshot",
    "SettlementResult",
    "StateEvent",
    "StateEventBus",
    "StateEventKind",
    "StateSnapshot",
    "TurnReport",
    "TurnSystem",
    "VictoryReport",
    "VictorySystem",
    "WorldState",
    "configure_logging",
    "default_config",
    "silence_logging",
]
