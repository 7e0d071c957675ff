"""Tile grid, land types and land purchase pricing.

The grid is ``rows x (owners + 1)`` tiles.  Each owner starts with one full
column; the last column is a mixed zone handed out round-robin by row.  Land
types are drawn from a weight table that depends on whether the row is an
edge row (first/last) or a center row.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..config import OWNER_IDS, PLAYER, ConfigTables, LandType, default_config
from ..outcome import ActionResult
from ..runtime.rng_service import RandomSource

# Tiles per positional premium step.
_PREMIUM_BLOCK = 4


@dataclass(slots=True)
class Land:
    index: int
    owner: str
    type: str
    name: str
    emission_coeff: float
    cost: int
    description: str
    owner_name: str
    row: int
    col: int
    zone: str


@dataclass(frozen=True, slots=True)
class PurchasableLand:
    tile_index: int
    land: Land
    price: int
    can_afford: bool


def weighted_land_type(rng: RandomSource, weights: Sequence[Tuple[str, float]]) -> str:
    """Pick a land type id by cumulative weight, falling back to the first entry."""

    roll = rng.random()
    cumulative = 0.0
    for type_id, weight in weights:
        cumulative += weight
        if roll <= cumulative:
            return type_id
    return weights[0][0] if weights else "basic"


class LandSystem:
    def __init__(self, config: ConfigTables | None = None) -> None:
        self.config = config or default_config()
        self.lands: Dict[int, Land] = {}
        self.rows = 0
        self.cols = 0

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate(self, rng: RandomSource, owner_ids: Sequence[str] = OWNER_IDS) -> List[Land]:
        """Lay out a fresh grid, replacing any existing lands."""

        self.lands.clear()
        rows = self.config.tunables.grid_rows
        cols = len(owner_ids) + 1
        self.rows, self.cols = rows, cols
        for index in range(rows * cols):
            row, col = divmod(index, cols)
            owner = owner_ids[col] if col < len(owner_ids) else owner_ids[row % len(owner_ids)]
            is_edge = row == 0 or row == rows - 1
            weights = self.config.edge_land_weights if is_edge else self.config.center_land_weights
            type_id = weighted_land_type(rng, weights)
            land_type = self.config.land_type(type_id)
            self.lands[index] = Land(
                index=index,
                owner=owner,
                type=type_id,
                name=land_type.name,
                emission_coeff=land_type.emission_coeff,
                cost=self.land_cost(type_id, index),
                description=land_type.description,
                owner_name=self.config.owner(owner).display_name,
                row=row,
                col=col,
                zone=owner,
            )
        logger.debug(f"[Lands] generated {rows}x{cols} grid")
        return self.all_lands()

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def land_cost(self, type_id: str, index: int) -> int:
        tun = self.config.tunables
        multiplier = self.config.land_type(type_id).cost_multiplier
        premium = (index // _PREMIUM_BLOCK) * tun.land_position_premium
        return int(round(tun.land_base_cost * multiplier + premium))

    def purchase_price(self, tile_index: int, turn: int = 1, buyer_money: Optional[int] = None) -> int:
        land = self.land(tile_index)
        if land is None:
            return 0
        tun = self.config.tunables
        price = land.cost or self.land_cost(land.type, tile_index)
        price = int(round(price * (1 + (turn - 1) * tun.land_turn_inflation)))
        if buyer_money is not None and buyer_money > tun.land_wealth_threshold:
            price = int(round(price * (1 + tun.land_wealth_premium)))
        return price

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def land(self, tile_index: int) -> Optional[Land]:
        return self.lands.get(tile_index)

    def all_lands(self) -> List[Land]:
        return [self.lands[idx] for idx in sorted(self.lands)]

    def lands_by_owner(self, owner: str) -> List[Land]:
        return [land for land in self.all_lands() if land.owner == owner]

    def lands_by_type(self, type_id: str) -> List[Land]:
        return [land for land in self.all_lands() if land.type == type_id]

    def land_type_info(self, type_id: str) -> Optional[LandType]:
        return self.config.land_types.get(type_id)

    def emission_coeff(self, tile_index: int) -> float:
        land = self.land(tile_index)
        return land.emission_coeff if land is not None else 1.0

    def land_type_id(self, tile_index: int) -> Optional[str]:
        land = self.land(tile_index)
        return land.type if land is not None else None

    # ------------------------------------------------------------------
    # Purchasing
    # ------------------------------------------------------------------
    def can_purchase(
        self,
        tile_index: int,
        buyer: str = PLAYER,
        has_building: Callable[[int], bool] | None = None,
    ) -> ActionResult:
        land = self.land(tile_index)
        if land is None:
            return ActionResult.fail("land does not exist", tile_index=tile_index)
        if land.owner == buyer:
            return ActionResult.fail("tile is already owned by the buyer", tile_index=tile_index)
        if has_building is not None and has_building(tile_index):
            return ActionResult.fail("tile has a building and cannot be purchased", tile_index=tile_index)
        return ActionResult(success=True, tile_index=tile_index, old_owner=land.owner)

    def purchase_land(self, tile_index: int, buyer: str, price: int = 0) -> ActionResult:
        """Transfer ownership of ``tile_index`` to ``buyer``.

        No money moves here; the caller debits the buyer first and treats the
        debit and this transfer as one step.
        """

        land = self.land(tile_index)
        if land is None:
            return ActionResult.fail("land does not exist", tile_index=tile_index)
        old_owner = land.owner
        land.owner = buyer
        land.owner_name = self.config.owner(buyer).display_name
        logger.debug(f"[Lands] tile {tile_index} {old_owner} -> {buyer} price={price}")
        return ActionResult(
            success=True,
            message=f"bought {land.name} from {self.config.owner(old_owner).display_name}",
            tile_index=tile_index,
            price=price,
            old_owner=old_owner,
            new_owner=buyer,
        )

    def purchasable_lands(
        self,
        buyer: str,
        has_building: Callable[[int], bool] | None = None,
        turn: int = 1,
        buyer_money: int = 0,
    ) -> List[PurchasableLand]:
        rows: List[PurchasableLand] = []
        for land in self.all_lands():
            if not self.can_purchase(land.index, buyer, has_building):
                continue
            price = self.purchase_price(land.index, turn, buyer_money)
            rows.append(PurchasableLand(land.index, land, price, buyer_money >= price))
        return rows

    # ------------------------------------------------------------------
    # Persistence hooks
    # ------------------------------------------------------------------
    def export_lands(self) -> List[dict]:
        return [asdict(land) for land in self.all_lands()]

    def restore_lands(self, rows: Sequence[dict]) -> None:
        self.lands = {int(row["index"]): Land(**row) for row in rows}
        if self.lands:
            self.rows = max(land.row for land in self.lands.values()) + 1
            self.cols = max(land.col for land in self.lands.values()) + 1
        logger.debug(f"[Lands] restored {len(self.lands)} tiles")


__all__ = ["Land", "LandSystem", "PurchasableLand", "weighted_land_type"]
