"""End-of-game standings, eliminations and victory conditions.

The owner(s) paying the highest carbon fee are eliminated when that fee is
positive; every tied owner goes out together.  Survivors are then checked
against each victory condition.  An owner's primary victory is its
lowest-priority satisfied condition, and winners are ranked by that
priority with ties kept in owner order (P, A, B, C).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..state import WorldState
from .carbon_fee import CarbonFeeSystem

PERFECT_BALANCE_MONEY = 80_000
PERFECT_BALANCE_MAX_EMISSION = 15_000
PERFECT_BALANCE_MIN_RATIO = 3.0
SURVIVOR_ANGER = 90.0


@dataclass(slots=True)
class OwnerStanding:
    owner: str
    name: str
    money: int
    emission: int
    carbon_fee: int
    eliminated: bool = False

    @property
    def ratio(self) -> float:
        return self.money / self.emission if self.emission > 0 else 0.0


@dataclass(frozen=True, slots=True)
class VictoryCondition:
    id: str
    name: str
    description: str
    priority: int
    check: Callable[[OwnerStanding, Sequence[OwnerStanding], WorldState, int], bool] = field(repr=False, compare=False)


@dataclass(slots=True)
class VictoryResult:
    owner: str
    eliminated: bool
    victories: List[VictoryCondition] = field(default_factory=list)

    @property
    def primary(self) -> Optional[VictoryCondition]:
        return min(self.victories, key=lambda cond: cond.priority) if self.victories else None


@dataclass(slots=True)
class VictoryReport:
    standings: List[OwnerStanding]
    results: Dict[str, VictoryResult]
    winners: List[OwnerStanding]

    @property
    def primary_winner(self) -> Optional[OwnerStanding]:
        return self.winners[0] if self.winners else None

    def summary_lines(self) -> List[str]:
        lines: List[str] = []
        for standing in self.standings:
            result = self.results[standing.owner]
            flag = " [eliminated]" if standing.eliminated else ""
            lines.append(
                f"{standing.name}{flag}: money ${standing.money:,}, "
                f"emission {standing.emission:,} t, carbon fee ${standing.carbon_fee:,}"
            )
            if result.victories:
                lines.append("  achieved: " + ", ".join(cond.name for cond in result.victories))
        winner = self.primary_winner
        if winner is not None:
            primary = self.results[winner.owner].primary
            lines.append(f"Winner: {winner.name} ({primary.name}: {primary.description})")
        else:
            lines.append("Winner: none")
        return lines


def _survivors(standings: Sequence[OwnerStanding]) -> List[OwnerStanding]:
    return [s for s in standings if not s.eliminated]


def _profit_king(me, standings, state, floor) -> bool:
    alive = _survivors(standings)
    return bool(alive) and me.money == max(s.money for s in alive) and me.money > 0


def _carbon_pioneer(me, standings, state, floor) -> bool:
    emitters = [s.emission for s in _survivors(standings) if s.emission > 0]
    return me.emission > 0 and bool(emitters) and me.emission == min(emitters) and me.money >= floor


def _efficiency_master(me, standings, state, floor) -> bool:
    emitters = [s for s in _survivors(standings) if s.emission > 0]
    if not emitters or me.emission <= 0:
        return False
    return me.ratio == max(s.ratio for s in emitters) and me.money >= floor


def _perfect_balance(me, standings, state, floor) -> bool:
    return (
        me.money >= PERFECT_BALANCE_MONEY
        and me.emission < PERFECT_BALANCE_MAX_EMISSION
        and me.emission > 0
        and me.ratio >= PERFECT_BALANCE_MIN_RATIO
    )


def _survivor(me, standings, state, floor) -> bool:
    return state.monster_anger >= SURVIVOR_ANGER and not me.eliminated


VICTORY_CONDITIONS: Tuple[VictoryCondition, ...] = (
    VictoryCondition("profit_king", "Profit King", "highest treasury among survivors", 1, _profit_king),
    VictoryCondition("carbon_pioneer", "Carbon Pioneer", "lowest emission with a healthy treasury", 2, _carbon_pioneer),
    VictoryCondition("efficiency_master", "Efficiency Master", "best money per ton with a healthy treasury", 3, _efficiency_master),
    VictoryCondition("perfect_balance", "Perfect Balance", "treasury, emission and efficiency all on target", 4, _perfect_balance),
    VictoryCondition("survivor", "Survivor", "finished with the monster above 90% anger", 5, _survivor),
)


class VictorySystem:
    def __init__(self, state: WorldState, fees: CarbonFeeSystem, conditions: Sequence[VictoryCondition] = VICTORY_CONDITIONS) -> None:
        self.state = state
        self.fees = fees
        self.conditions = tuple(conditions)

    def standings(self) -> List[OwnerStanding]:
        rows = [
            OwnerStanding(
                owner=owner,
                name=self.state.owner_name(owner),
                money=self.state.owner_money(owner),
                emission=self.fees.total_emission(owner),
                carbon_fee=self.fees.carbon_fee(owner),
            )
            for owner in self.state.owner_ids()
        ]
        top_fee = max((row.carbon_fee for row in rows), default=0)
        if top_fee > 0:
            for row in rows:
                row.eliminated = row.carbon_fee == top_fee
        return rows

    def is_eliminated(self, owner: str) -> bool:
        for row in self.standings():
            if row.owner == owner:
                return row.eliminated
        raise KeyError(owner)

    def evaluate(self) -> VictoryReport:
        standings = self.standings()
        floor = self.state.config.tunables.victory_wealth_floor
        results: Dict[str, VictoryResult] = {}
        for row in standings:
            result = VictoryResult(owner=row.owner, eliminated=row.eliminated)
            if not row.eliminated:
                result.victories = [cond for cond in self.conditions if cond.check(row, standings, self.state, floor)]
            results[row.owner] = result
        winners = sorted(
            (row for row in standings if results[row.owner].victories),
            key=lambda row: results[row.owner].primary.priority,
        )
        report = VictoryReport(standings=standings, results=results, winners=winners)
        if report.primary_winner is not None:
            logger.info(f"[Victory] winner={report.primary_winner.owner} via {results[report.primary_winner.owner].primary.id}")
        return report


__all__ = [
    "OwnerStanding",
    "VICTORY_CONDITIONS",
    "VictoryCondition",
    "VictoryReport",
    "VictoryResult",
    "VictorySystem",
]
