from __future__ import annotations

from collections import Counter

import pytest

from carbon_tycoon.config import default_config
from carbon_tycoon.world.lands import LandSystem, weighted_land_type


class _FixedRandom:
    def __init__(self, value: float = 0.0) -> None:
        self.value = value

    def random(self) -> float:
        return self.value

    def choice(self, seq):
        return seq[0]

    def uniform(self, a: float, b: float) -> float:
        return a


def _basic_lands(roll: float = 0.0) -> LandSystem:
    lands = LandSystem(default_config())
    lands.generate(_FixedRandom(roll))
    return lands


def test_grid_partitions_tiles_between_owners() -> None:
    lands = _basic_lands()
    tiles = lands.all_lands()

    assert len(tiles) == 20
    assert (lands.rows, lands.cols) == (4, 5)
    assert Counter(land.owner for land in tiles) == {"P": 5, "A": 5, "B": 5, "C": 5}
    # mixed column is handed out round-robin by row
    assert [lands.land(idx).owner for idx in (4, 9, 14, 19)] == ["P", "A", "B", "C"]
    assert [land.index for land in lands.lands_by_owner("P")] == [0, 4, 5, 10, 15]


def test_edge_rows_use_edge_weights() -> None:
    lands = _basic_lands(0.45)

    edge_types = {land.type for land in lands.all_lands() if land.row in (0, 3)}
    center_types = {land.type for land in lands.all_lands() if land.row in (1, 2)}
    assert edge_types == {"greenGrid"}
    assert center_types == {"basic"}
    assert lands.lands_by_type("greenGrid")[0].name == "Green Grid Zone"


def test_weighted_draw_falls_back_to_first_entry() -> None:
    weights = (("basic", 0.2), ("highEmission", 0.2))

    assert weighted_land_type(_FixedRandom(0.99), weights) == "basic"
    assert weighted_land_type(_FixedRandom(0.3), weights) == "highEmission"


@pytest.mark.parametrize(
    "type_id, index, expected",
    [
        ("basic", 0, 1000),
        ("basic", 4, 1200),
        ("basic", 19, 1800),
        ("greenGrid", 0, 1500),
        ("highEmission", 8, 1200),
    ],
)
def test_land_cost(type_id: str, index: int, expected: int) -> None:
    assert _basic_lands().land_cost(type_id, index) == expected


def test_purchase_price_grows_with_turn_and_wealth() -> None:
    lands = _basic_lands()
    prices = [lands.purchase_price(0, turn) for turn in range(1, 8)]

    assert prices[0] == 1000
    assert prices[2] == 1200
    assert prices == sorted(prices)
    assert lands.purchase_price(0, 1, 100_001) > lands.purchase_price(0, 1, 100_000)
    assert lands.purchase_price(0, 1, 150_000) == 1200
    assert lands.purchase_price(99, 1) == 0


def test_can_purchase_rules() -> None:
    lands = _basic_lands()
    occupied = {1}

    assert not lands.can_purchase(99, "P")
    assert not lands.can_purchase(0, "P")
    assert not lands.can_purchase(1, "P", lambda idx: idx in occupied)
    ok = lands.can_purchase(6, "P", lambda idx: idx in occupied)
    assert ok
    assert ok.old_owner == "A"


def test_purchase_transfers_owner_and_display_name() -> None:
    lands = _basic_lands()
    result = lands.purchase_land(6, "P", 1200)

    assert result.success
    assert (result.old_owner, result.new_owner) == ("A", "P")
    assert lands.land(6).owner == "P"
    assert lands.land(6).owner_name == "You"
    assert lands.land(6).zone == "A"
    assert not lands.purchase_land(42, "P")


def test_purchasable_lands_flags_affordability() -> None:
    lands = _basic_lands()
    rows = lands.purchasable_lands("P", lambda idx: idx == 1, turn=1, buyer_money=1100)

    indices = [row.tile_index for row in rows]
    assert 1 not in indices
    assert not set(indices) & {0, 4, 5, 10, 15}
    assert len(rows) == 14
    affordable = {row.tile_index for row in rows if row.can_afford}
    assert affordable == {2, 3}


def test_export_and_restore_lands() -> None:
    lands = _basic_lands()
    lands.purchase_land(7, "C")
    rows = lands.export_lands()

    restored = LandSystem(default_config())
    restored.restore_lands(rows)
    assert restored.all_lands() == lands.all_lands()
    assert (restored.rows, restored.cols) == (4, 5)
    assert restored.land_type_info("greenGrid").indirect_reduction == 0.5


def test_tile_lookups_default_for_missing_tiles() -> None:
    lands = _basic_lands()
    lands.land(4).type = "highEmission"
    lands.land(4).emission_coeff = 1.2

    assert lands.land_type_id(4) == "highEmission"
    assert lands.emission_coeff(4) == 1.2
    assert lands.land_type_id(99) is None
    assert lands.emission_coeff(99) == 1.0
