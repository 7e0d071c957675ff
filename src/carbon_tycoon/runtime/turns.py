"""Year-end settlement, audits, monster growth and market repricing.

Settlement runs in a fixed order because later steps read values derived by
earlier ones:

1. income from the player's projected income;
2. carbon fee for the player;
3. CBAM tax from ``cbam_start_turn`` onward;
4. total tax and informational net income;
5. credit consumption (fee-equivalent deduction converted back to units);
6. treasury: add income, then subtract total tax;
7. audit every ``audit_interval`` turns.

Monster growth and market repricing are separate calls; the session runs
them after settlement.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from loguru import logger

from ..config import PLAYER
from ..state import WorldState
from .carbon_fee import CarbonFeeSystem, FeeBreakdown, owner_emissions
from .rng_service import RandomSource

# Anger escalation tiers, applied in this order to the running growth value.
MONSTER_TIERS: Tuple[Tuple[float, Optional[float], float], ...] = (
    (50.0, 70.0, 1.2),
    (70.0, None, 1.5),
    (90.0, None, 2.0),
)

EMISSION_FACTOR_SCALE = 100_000
EMISSION_FACTOR_CAP = 2.0
DOMESTIC_PRICE_SENSITIVITY = 0.1
INTL_PRICE_SENSITIVITY = 0.05
PRICE_NOISE = (0.8, 1.2)


class AuditOutcome(Enum):
    PENALTY = "penalty"
    WARNING = "warning"
    BONUS = "bonus"
    NEUTRAL = "neutral"


@dataclass(frozen=True, slots=True)
class AuditRecord:
    turn: int
    emission: int
    chargeable: int
    outcome: AuditOutcome
    amount: int = 0
    message: str = ""


@dataclass(frozen=True, slots=True)
class SettlementResult:
    turn: int
    income: int
    carbon_fee: int
    cbam_tax: int
    cbam_applied: bool
    total_tax: int
    net_income: int
    domestic_credits_used: int
    intl_credits_used: int
    fee: FeeBreakdown
    audit: Optional[AuditRecord] = None


@dataclass(frozen=True, slots=True)
class MonsterGrowthReport:
    player_emission: int
    npc_emission: int
    world_emission: int
    growth: int
    monster_anger: float


@dataclass(frozen=True, slots=True)
class PriceChange:
    old: int
    new: int

    @property
    def change(self) -> int:
        return self.new - self.old


@dataclass(frozen=True, slots=True)
class MarketUpdate:
    domestic: PriceChange
    international: PriceChange
    emission_factor: float
    random_factor: float


def monster_growth(world_emission: int, turn: int, anger: float, *, divisor: int, base: int, acceleration: float) -> int:
    """Anger points added for one turn of ``world_emission``."""

    growth = int(world_emission // divisor) + base
    growth = int(growth * (1 + turn * acceleration))
    for lower, upper, factor in MONSTER_TIERS:
        if anger > lower and (upper is None or anger <= upper):
            growth = int(growth * factor)
    return growth


class TurnSystem:
    def __init__(self, state: WorldState, fees: CarbonFeeSystem) -> None:
        self.state = state
        self.fees = fees
        self._audit_history: List[AuditRecord] = []

    @property
    def tunables(self):
        return self.state.config.tunables

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------
    def should_trigger_audit(self) -> bool:
        return self.state.turn % self.tunables.audit_interval == 0

    def should_apply_cbam(self) -> bool:
        return self.state.turn >= self.tunables.cbam_start_turn

    def execute_settlement(self) -> SettlementResult:
        state, tun = self.state, self.tunables
        income = state.projected_income or 0
        breakdown = self.fees.fee_breakdown(PLAYER)
        cbam_applied = self.should_apply_cbam()
        cbam = self.fees.cbam_tax(PLAYER, state.turn) if cbam_applied else 0
        total_tax = breakdown.fee + cbam

        domestic_used = int(breakdown.deduction.domestic // tun.domestic_credit_multiplier)
        intl_used = int(breakdown.deduction.international // tun.intl_credit_multiplier)
        state.set_domestic_credits(max(0, state.domestic_credits - domestic_used))
        state.set_intl_credits(max(0, state.intl_credits - intl_used))

        state.add_money(income)
        state.subtract_money(total_tax)

        audit = self.execute_audit() if self.should_trigger_audit() else None
        logger.debug(
            f"[Turn] settlement turn={state.turn} income={income} fee={breakdown.fee} "
            f"cbam={cbam} money={state.money}"
        )
        return SettlementResult(
            turn=state.turn,
            income=income,
            carbon_fee=breakdown.fee,
            cbam_tax=cbam,
            cbam_applied=cbam_applied,
            total_tax=total_tax,
            net_income=income - total_tax,
            domestic_credits_used=domestic_used,
            intl_credits_used=intl_used,
            fee=breakdown,
            audit=audit,
        )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------
    def execute_audit(self) -> AuditRecord:
        state, tun = self.state, self.tunables
        emission = self.fees.total_emission(PLAYER)
        chargeable = self.fees.chargeable_emission(PLAYER)
        amount = 0
        if chargeable > tun.audit_penalty_threshold:
            outcome = AuditOutcome.PENALTY
            amount = int(chargeable * tun.audit_penalty_rate)
            state.subtract_money(amount)
            message = f"emission too high, fined ${amount:,}"
        elif chargeable > tun.audit_warning_threshold:
            outcome = AuditOutcome.WARNING
            message = "emission elevated, reduce carbon output"
        elif chargeable < tun.audit_bonus_threshold and emission > 0:
            outcome = AuditOutcome.BONUS
            amount = int(state.money * tun.audit_bonus_rate)
            state.add_money(amount)
            message = f"good reduction results, awarded ${amount:,}"
        else:
            outcome = AuditOutcome.NEUTRAL
            message = "all clear"
        record = AuditRecord(state.turn, emission, chargeable, outcome, amount, message)
        self._audit_history.append(record)
        logger.info(f"[Audit] turn={state.turn} outcome={outcome.value} chargeable={chargeable} amount={amount}")
        return record

    def audit_history(self) -> Tuple[AuditRecord, ...]:
        return tuple(self._audit_history)

    def restore_audit_history(self, records: List[AuditRecord]) -> None:
        self._audit_history = list(records)

    # ------------------------------------------------------------------
    # Monster and market
    # ------------------------------------------------------------------
    def _emissions(self) -> tuple[int, int]:
        totals = owner_emissions(self.fees, self.state.owner_ids())
        player = totals.pop(PLAYER)
        return player, sum(totals.values())

    def update_monster(self) -> MonsterGrowthReport:
        tun = self.tunables
        player, npc = self._emissions()
        world = player + npc
        growth = monster_growth(
            world,
            self.state.turn,
            self.state.monster_anger,
            divisor=tun.monster_growth_divisor,
            base=tun.monster_base_growth,
            acceleration=tun.monster_turn_acceleration,
        )
        self.state.add_monster_anger(growth)
        logger.debug(f"[Monster] world={world} growth={growth} anger={self.state.monster_anger}")
        return MonsterGrowthReport(player, npc, world, growth, self.state.monster_anger)

    def update_market(self, rng: RandomSource) -> MarketUpdate:
        tun = self.tunables
        player, npc = self._emissions()
        emission_factor = min((player + npc) / EMISSION_FACTOR_SCALE, EMISSION_FACTOR_CAP)
        random_factor = rng.uniform(*PRICE_NOISE)
        old_domestic, old_intl = self.state.domestic_price, self.state.intl_price
        domestic = max(
            tun.domestic_price_floor,
            int(old_domestic * (1 + emission_factor * DOMESTIC_PRICE_SENSITIVITY) * random_factor),
        )
        intl = max(
            tun.intl_price_floor,
            int(old_intl * (1 + emission_factor * INTL_PRICE_SENSITIVITY) * random_factor),
        )
        self.state.set_market_prices(domestic, intl)
        return MarketUpdate(
            domestic=PriceChange(old_domestic, domestic),
            international=PriceChange(old_intl, intl),
            emission_factor=emission_factor,
            random_factor=random_factor,
        )


__all__ = [
    "AuditOutcome",
    "AuditRecord",
    "MONSTER_TIERS",
    "MarketUpdate",
    "MonsterGrowthReport",
    "PriceChange",
    "SettlementResult",
    "TurnSystem",
    "monster_growth",
]
