"""Carbon fee formula engine.

Every figure here is a pure function of the world state, the land grid and
the static tables.  All calculations are owner-parameterised; only the human
player holds credits and only the human player pays the early-expansion
surcharge.

Formula chain for one owner::

    building_emission = direct * land_coeff * level_coeff + indirect * indirect_factor
    total             = round(sum(building_emission))
    chargeable        = round(max(0, total - free) * weighted_industry_coeff)
    deduction         = min(credits * multiplier, chargeable * max_percent)  (per credit kind)
    taxable           = max(0, chargeable - deduction.total)
    fee               = round(taxable * weighted_rate / 100)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..config import LEVEL_ORDER, PLAYER
from ..state import Building, WorldState
from ..world.lands import LandSystem


@dataclass(frozen=True, slots=True)
class CreditDeduction:
    domestic: int = 0
    international: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class FeeBreakdown:
    owner: str
    total_emission: int
    direct_emission: int
    indirect_emission: int
    free_emission: int
    after_free: int
    industry_coeff: float
    chargeable: int
    deduction: CreditDeduction
    taxable: int
    average_rate: float
    base_fee: int
    penalty_applied: bool
    fee: int


class CarbonFeeSystem:
    def __init__(self, state: WorldState, lands: LandSystem) -> None:
        self.state = state
        self.lands = lands

    @property
    def config(self):
        return self.state.config

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------
    def _emission_parts(self, building: Building) -> tuple[float, float]:
        archetype = self.config.building(building.type)
        if archetype is None:
            return 0.0, 0.0
        land_coeff = self.lands.emission_coeff(building.tile_index)
        level_coeff = self.config.factory_level(building.level or LEVEL_ORDER[0]).level_coeff
        direct = archetype.direct_emission * land_coeff * level_coeff
        indirect = float(archetype.indirect_emission)
        land_type = self.lands.land_type_id(building.tile_index)
        if land_type is not None:
            reduction = self.config.land_type(land_type).indirect_reduction
            if reduction is not None:
                indirect *= reduction
        return direct, indirect

    def building_emission(self, building: Building) -> float:
        """Unrounded emission of one building on its tile at its level."""

        direct, indirect = self._emission_parts(building)
        return direct + indirect

    def total_emission(self, owner: str = PLAYER) -> int:
        return int(round(sum(self.building_emission(b) for b in self.state.buildings_of(owner))))

    def world_emission(self) -> int:
        return sum(self.total_emission(owner) for owner in self.state.owner_ids())

    def _weighted(self, owner: str, attr) -> Optional[float]:
        weighted = 0.0
        weight = 0.0
        for building in self.state.buildings_of(owner):
            emission = self.building_emission(building)
            value = attr(building)
            if value is None:
                continue
            weighted += emission * value
            weight += emission
        if weight <= 0:
            return None
        return weighted / weight

    def industry_coeff(self, owner: str = PLAYER) -> float:
        def _coeff(building: Building) -> Optional[float]:
            archetype = self.config.building(building.type)
            return archetype.industry_coeff if archetype is not None else None

        coeff = self._weighted(owner, _coeff)
        return 1.0 if coeff is None else coeff

    def average_rate(self, owner: str = PLAYER) -> float:
        coeff = self._weighted(owner, lambda b: self.config.factory_level(b.level or LEVEL_ORDER[0]).rate)
        return float(self.config.base_rate) if coeff is None else coeff

    def chargeable_emission(self, owner: str = PLAYER) -> int:
        if not self.state.buildings_of(owner):
            return 0
        after_free = max(0, self.total_emission(owner) - self.config.tunables.free_emission)
        return int(round(after_free * self.industry_coeff(owner)))

    # ------------------------------------------------------------------
    # Credits and fee
    # ------------------------------------------------------------------
    def credit_deduction(self, chargeable: int, domestic_credits: int, intl_credits: int) -> CreditDeduction:
        tun = self.config.tunables
        domestic = min(domestic_credits * tun.domestic_credit_multiplier, chargeable * tun.domestic_credit_max_percent)
        intl = min(intl_credits * tun.intl_credit_multiplier, chargeable * tun.intl_credit_max_percent)
        return CreditDeduction(
            domestic=int(round(domestic)),
            international=int(round(intl)),
            total=int(round(domestic + intl)),
        )

    def _owner_credits(self, owner: str) -> tuple[int, int]:
        if owner == PLAYER:
            return self.state.domestic_credits, self.state.intl_credits
        return 0, 0

    def penalty_active(self, owner: str = PLAYER) -> bool:
        tun = self.config.tunables
        return bool(tun.early_expansion_penalty) and owner == PLAYER and self.state.turn <= tun.early_expansion_turns

    def fee_breakdown(self, owner: str = PLAYER) -> FeeBreakdown:
        tun = self.config.tunables
        buildings = self.state.buildings_of(owner)
        direct = sum(self._emission_parts(b)[0] for b in buildings)
        indirect = sum(self._emission_parts(b)[1] for b in buildings)
        total = self.total_emission(owner)
        after_free = max(0, total - tun.free_emission)
        chargeable = self.chargeable_emission(owner)
        deduction = self.credit_deduction(chargeable, *self._owner_credits(owner))
        taxable = max(0, chargeable - deduction.total)
        rate = self.average_rate(owner)
        base_fee = int(round(taxable * rate / 100))
        fee = base_fee
        penalty = self.penalty_active(owner)
        if penalty:
            fee = int(round(base_fee * tun.early_expansion_penalty_rate))
        return FeeBreakdown(
            owner=owner,
            total_emission=total,
            direct_emission=int(round(direct)),
            indirect_emission=int(round(indirect)),
            free_emission=tun.free_emission,
            after_free=after_free,
            industry_coeff=chargeable / max(1, after_free),
            chargeable=chargeable,
            deduction=deduction,
            taxable=taxable,
            average_rate=rate,
            base_fee=base_fee,
            penalty_applied=penalty,
            fee=fee,
        )

    def carbon_fee(self, owner: str = PLAYER) -> int:
        return self.fee_breakdown(owner).fee

    # ------------------------------------------------------------------
    # CBAM
    # ------------------------------------------------------------------
    def export_emission(self, owner: str = PLAYER) -> float:
        total = 0.0
        for building in self.state.buildings_of(owner):
            archetype = self.config.building(building.type)
            if archetype is not None and archetype.export_oriented:
                total += self.building_emission(building)
        return total

    def cbam_tax(self, owner: str = PLAYER, turn: Optional[int] = None) -> int:
        turn = self.state.turn if turn is None else turn
        tun = self.config.tunables
        if turn < tun.cbam_start_turn:
            return 0
        return int(round(self.export_emission(owner) * tun.cbam_rate_per_ton))


def owner_emissions(fees: CarbonFeeSystem, owners: List[str]) -> dict[str, int]:
    return {owner: fees.total_emission(owner) for owner in owners}


__all__ = ["CarbonFeeSystem", "CreditDeduction", "FeeBreakdown", "owner_emissions"]
