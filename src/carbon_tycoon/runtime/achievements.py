"""Player achievements.

Achievements are predicates over an :class:`AchievementContext`.  A predicate
that raises is logged and treated as not unlocked; the remaining achievements
are still checked.  Storage of the unlocked ids belongs to the persistence
layer, which uses :meth:`AchievementSystem.export_unlocked` and
:meth:`AchievementSystem.load_unlocked`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..config import PLAYER
from ..state import WorldState
from ..world.lands import LandSystem
from .carbon_fee import CarbonFeeSystem


@dataclass
class AchievementContext:
    state: WorldState
    fees: CarbonFeeSystem
    lands: LandSystem
    player_rank: Optional[int] = None

    @property
    def player_emission(self) -> int:
        return self.fees.total_emission(PLAYER)

    def player_buildings(self):
        return self.state.player_buildings()


@dataclass(frozen=True, slots=True)
class Achievement:
    id: str
    name: str
    description: str
    category: str
    points: int
    check: Callable[[AchievementContext], bool] = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class AchievementProgress:
    total: int
    unlocked: int
    locked: int
    percent: float
    total_points: int
    unlocked_points: int
    percent_points: float


def _green_count(ctx: AchievementContext) -> int:
    count = 0
    for building in ctx.player_buildings():
        archetype = ctx.state.config.building(building.type)
        if archetype is not None and archetype.category == "clean":
            count += 1
    return count


def _income_ratio(ctx: AchievementContext) -> float:
    emission = ctx.player_emission
    return ctx.state.projected_income / emission if emission else 0.0


ACHIEVEMENTS: Tuple[Achievement, ...] = (
    # milestone
    Achievement("first_building", "First Steps", "Build your first building", "milestone", 10,
                lambda ctx: len(ctx.player_buildings()) >= 1),
    Achievement("ten_buildings", "Master Builder", "Own 10 buildings", "milestone", 50,
                lambda ctx: len(ctx.player_buildings()) >= 10),
    Achievement("millionaire", "Big Money", "Reach $100,000 in the treasury", "milestone", 100,
                lambda ctx: ctx.state.money >= 100_000),
    # green
    Achievement("low_emission", "Green Pioneer", "Emit less than 5,000 t in a turn", "green", 75,
                lambda ctx: 0 < ctx.player_emission < 5_000),
    Achievement("zero_emission", "Zero Emission", "Emit nothing in a turn", "green", 150,
                lambda ctx: ctx.player_emission == 0),
    Achievement("green_energy", "Green Energy Expert", "Own 5 clean buildings", "green", 100,
                lambda ctx: _green_count(ctx) >= 5),
    # strategy
    Achievement("efficient_master", "Efficiency Master", "Reach an income/emission ratio of 5", "strategy", 125,
                lambda ctx: _income_ratio(ctx) >= 5),
    Achievement("upgrade_master", "Upgrade Expert", "Own 3 Lv3 buildings", "strategy", 100,
                lambda ctx: sum(1 for b in ctx.player_buildings() if b.level == "Lv3") >= 3),
    Achievement("carbon_trader", "Carbon Trader", "Hold 10,000 credits", "strategy", 80,
                lambda ctx: ctx.state.domestic_credits + ctx.state.intl_credits >= 10_000),
    Achievement("land_baron", "Land Baron", "Own 8 or more tiles", "strategy", 100,
                lambda ctx: len(ctx.lands.lands_by_owner(PLAYER)) >= 8),
    # challenge
    Achievement("survive_monster", "Monster Tamer", "Play on with the monster above 80% anger", "challenge", 200,
                lambda ctx: ctx.state.monster_anger >= 80),
    Achievement("early_winner", "Fast Lead", "Lead on money by turn 5", "challenge", 150,
                lambda ctx: ctx.state.turn <= 5 and ctx.player_rank == 1),
    Achievement("perfect_balance", "Perfect Balance", "Hit income, emission and efficiency targets together", "challenge", 250,
                lambda ctx: ctx.state.money >= 80_000 and ctx.player_emission < 10_000 and _income_ratio(ctx) >= 3),
    # hidden
    Achievement("bankrupt", "Broke", "Run the treasury down to zero", "hidden", 50,
                lambda ctx: ctx.state.money == 0),
    Achievement("monster_rage", "Monster Rage", "Push the monster to 100% anger", "hidden", 100,
                lambda ctx: ctx.state.monster_anger >= 100),
)


class AchievementSystem:
    def __init__(self, achievements: Iterable[Achievement] = ACHIEVEMENTS) -> None:
        self.achievements: Dict[str, Achievement] = {a.id: a for a in achievements}
        self._unlocked: List[str] = []

    def check_achievements(self, ctx: AchievementContext) -> List[Achievement]:
        """Evaluate every locked achievement and return the newly unlocked ones."""

        fresh: List[Achievement] = []
        for achievement in self.achievements.values():
            if achievement.id in self._unlocked:
                continue
            try:
                unlocked = bool(achievement.check(ctx))
            except Exception:
                logger.exception(f"[Achievements] check failed for {achievement.id}")
                continue
            if unlocked:
                self.unlock(achievement.id)
                fresh.append(achievement)
        return fresh

    def unlock(self, achievement_id: str) -> bool:
        if achievement_id in self._unlocked or achievement_id not in self.achievements:
            return False
        self._unlocked.append(achievement_id)
        logger.info(f"[Achievements] unlocked {achievement_id}")
        return True

    @property
    def unlocked(self) -> List[Achievement]:
        return [self.achievements[aid] for aid in self._unlocked if aid in self.achievements]

    def all_achievements(self) -> List[Achievement]:
        return list(self.achievements.values())

    def progress(self) -> AchievementProgress:
        total = len(self.achievements)
        unlocked = len(self.unlocked)
        total_points = sum(a.points for a in self.achievements.values())
        unlocked_points = sum(a.points for a in self.unlocked)
        return AchievementProgress(
            total=total,
            unlocked=unlocked,
            locked=total - unlocked,
            percent=round(unlocked / total * 100, 1) if total else 0.0,
            total_points=total_points,
            unlocked_points=unlocked_points,
            percent_points=round(unlocked_points / total_points * 100, 1) if total_points else 0.0,
        )

    def reset(self) -> None:
        self._unlocked.clear()

    def export_unlocked(self) -> List[str]:
        return list(self._unlocked)

    def load_unlocked(self, ids: Iterable[str]) -> None:
        self._unlocked = []
        for aid in ids:
            if aid in self.achievements:
                if aid not in self._unlocked:
                    self._unlocked.append(aid)
            else:
                logger.warning(f"[Achievements] ignoring unknown id {aid!r}")


__all__ = [
    "ACHIEVEMENTS",
    "Achievement",
    "AchievementContext",
    "AchievementProgress",
    "AchievementSystem",
]
