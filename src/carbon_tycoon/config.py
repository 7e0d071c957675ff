"""Static configuration tables for the carbon tycoon simulation.

Everything in this module is immutable reference data: building archetypes,
factory levels, land types, owner profiles and the global tunables that the
formula engine and turn pipeline read.  Lookups never raise for unknown keys;
they log a warning and hand back a neutral default so a data-table mismatch
cannot crash a running turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from loguru import logger

PLAYER = "P"
COMPETITOR_IDS: Tuple[str, ...] = ("A", "B", "C")
OWNER_IDS: Tuple[str, ...] = (PLAYER,) + COMPETITOR_IDS

LEVEL_ORDER: Tuple[str, ...] = ("Lv1", "Lv2", "Lv3")


@dataclass(frozen=True, slots=True)
class BuildingType:
    id: str
    name: str
    cost: int
    income: int
    direct_emission: int
    indirect_emission: int
    category: str
    industry_coeff: float
    upgradeable: bool = True
    export_oriented: bool = False

    @property
    def base_emission(self) -> int:
        """Nominal emission before land and level adjustments."""

        return self.direct_emission + self.indirect_emission


@dataclass(frozen=True, slots=True)
class FactoryLevel:
    id: str
    name: str
    rate: int
    emission_reduction: float
    level_coeff: float


@dataclass(frozen=True, slots=True)
class LandType:
    id: str
    name: str
    emission_coeff: float = 1.0
    indirect_reduction: Optional[float] = None
    cost_multiplier: float = 1.0
    description: str = ""


@dataclass(frozen=True, slots=True)
class OwnerProfile:
    id: str
    display_name: str
    initial_money: int = 0
    style: str = "player"


@dataclass(frozen=True, slots=True)
class GlobalTunables:
    max_years: int = 10
    start_year: int = 2030
    initial_money: int = 40_000
    free_emission: int = 10_000
    monster_threshold: int = 80_000
    initial_monster_anger: float = 30.0

    domestic_credit_multiplier: float = 1.2
    intl_credit_multiplier: float = 1.0
    domestic_credit_max_percent: float = 0.10
    intl_credit_max_percent: float = 0.05

    audit_interval: int = 3
    audit_penalty_threshold: int = 30_000
    audit_warning_threshold: int = 15_000
    audit_bonus_threshold: int = 5_000
    audit_penalty_rate: float = 0.15
    audit_bonus_rate: float = 0.05

    cbam_start_turn: int = 6
    cbam_rate_per_ton: int = 50

    max_buildings_per_turn: int = 2
    max_land_purchases_per_turn: int = 1

    monster_growth_divisor: int = 1800
    monster_base_growth: int = 2
    monster_turn_acceleration: float = 0.10

    early_expansion_penalty: bool = True
    early_expansion_turns: int = 3
    early_expansion_penalty_rate: float = 1.5

    initial_domestic_price: int = 300
    initial_intl_price: int = 800
    domestic_price_floor: int = 100
    intl_price_floor: int = 500

    grid_rows: int = 4
    land_base_cost: int = 1000
    land_position_premium: int = 200
    land_turn_inflation: float = 0.10
    land_wealth_threshold: int = 100_000
    land_wealth_premium: float = 0.20

    victory_wealth_floor: int = 50_000


_BUILDINGS = (
    BuildingType("coal", "Coal Power Plant", 3000, 7000, 3500, 0, "high_pollute", 1.0),
    BuildingType("gas", "Gas Power Plant", 5000, 6000, 1500, 0, "mid_pollute", 0.8),
    BuildingType("solar", "Solar Farm", 8000, 3000, 0, 0, "clean", 0.2, upgradeable=False),
    BuildingType("tech", "High-Tech Factory", 10000, 7000, 300, 200, "advanced", 0.3),
    BuildingType(
        "manufacturing", "Manufacturing", 6000, 6500, 1400, 600, "mid_pollute", 0.6, export_oriented=True
    ),
    BuildingType("gasSupply", "Gas Supply", 7000, 7000, 1100, 700, "mid_pollute", 0.7, export_oriented=True),
)

_LEVELS = (
    FactoryLevel("Lv1", "Standard", 500, 0.0, 1.0),
    FactoryLevel("Lv2", "Tech Benchmark", 200, 0.2, 0.8),
    FactoryLevel("Lv3", "Sector Reduction", 100, 0.4, 0.6),
)

_LAND_TYPES = (
    LandType("basic", "Basic Zone", 1.0, None, 1.0, "No modifiers"),
    LandType("greenGrid", "Green Grid Zone", 1.0, 0.5, 1.5, "Indirect emission -50%"),
    LandType("highEfficiency", "High Efficiency Zone", 0.8, None, 1.3, "Direct emission -20%"),
    LandType("exportZone", "Export Processing Zone", 1.0, None, 1.2, "Industry coefficient exposure"),
    LandType("highEmission", "High Emission Zone", 1.2, None, 0.8, "Emission +20%"),
)

_OWNERS = (
    OwnerProfile(PLAYER, "You", 40_000, "player"),
    OwnerProfile("A", "Tycoon Jin", 50_000, "aggressive"),
    OwnerProfile("B", "The Doctor", 45_000, "green"),
    OwnerProfile("C", "Cost Cutter Lee", 47_000, "balanced"),
)

# Weighted land-type draws; edge rows lean harder on special zones.
CENTER_LAND_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("basic", 0.5),
    ("greenGrid", 0.15),
    ("highEfficiency", 0.15),
    ("exportZone", 0.1),
    ("highEmission", 0.1),
)
EDGE_LAND_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("basic", 0.3),
    ("greenGrid", 0.2),
    ("highEfficiency", 0.2),
    ("exportZone", 0.15),
    ("highEmission", 0.15),
)


def _index(items) -> Mapping[str, object]:
    return {item.id: item for item in items}


@dataclass(frozen=True)
class ConfigTables:
    """Bundle of every static table the simulation core reads."""

    buildings: Mapping[str, BuildingType] = field(default_factory=lambda: _index(_BUILDINGS))
    levels: Mapping[str, FactoryLevel] = field(default_factory=lambda: _index(_LEVELS))
    land_types: Mapping[str, LandType] = field(default_factory=lambda: _index(_LAND_TYPES))
    owners: Mapping[str, OwnerProfile] = field(default_factory=lambda: _index(_OWNERS))
    tunables: GlobalTunables = field(default_factory=GlobalTunables)
    center_land_weights: Tuple[Tuple[str, float], ...] = CENTER_LAND_WEIGHTS
    edge_land_weights: Tuple[Tuple[str, float], ...] = EDGE_LAND_WEIGHTS

    def building(self, key: str) -> Optional[BuildingType]:
        archetype = self.buildings.get(key)
        if archetype is None:
            logger.warning(f"[Config] unknown building type={key!r}")
        return archetype

    def factory_level(self, key: str) -> FactoryLevel:
        level = self.levels.get(key)
        if level is None:
            logger.warning(f"[Config] unknown factory level={key!r}, using neutral level")
            base = self.levels.get(LEVEL_ORDER[0])
            rate = base.rate if base is not None else 0
            return FactoryLevel(key, key, rate, 0.0, 1.0)
        return level

    def land_type(self, key: str) -> LandType:
        land_type = self.land_types.get(key)
        if land_type is None:
            logger.warning(f"[Config] unknown land type={key!r}, using neutral land")
            return LandType(key, key)
        return land_type

    def owner(self, key: str) -> OwnerProfile:
        profile = self.owners.get(key)
        if profile is None:
            logger.warning(f"[Config] unknown owner={key!r}")
            return OwnerProfile(key, key)
        return profile

    @property
    def base_rate(self) -> int:
        return self.factory_level(LEVEL_ORDER[0]).rate

    def with_tunables(self, **overrides: object) -> "ConfigTables":
        return replace(self, tunables=replace(self.tunables, **overrides))


def default_config() -> ConfigTables:
    return ConfigTables()


__all__ = [
    "BuildingType",
    "CENTER_LAND_WEIGHTS",
    "COMPETITOR_IDS",
    "ConfigTables",
    "EDGE_LAND_WEIGHTS",
    "FactoryLevel",
    "GlobalTunables",
    "LEVEL_ORDER",
    "LandType",
    "OWNER_IDS",
    "OwnerProfile",
    "PLAYER",
    "default_config",
]
