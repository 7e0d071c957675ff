"""Structured outcomes returned by player- and AI-facing operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ActionResult:
    """Result of a build/upgrade/sell/purchase call.

    Domain failures (insufficient funds, wrong owner, invalid tile, ...) come
    back as ``success=False`` with a human readable ``message``; they are
    never raised.
    """

    success: bool
    message: str = ""
    tile_index: Optional[int] = None
    building_type: Optional[str] = None
    level: Optional[str] = None
    cost: int = 0
    refund: int = 0
    price: int = 0
    monster_reduction: int = 0
    old_owner: Optional[str] = None
    new_owner: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def fail(cls, message: str, **extra: object) -> "ActionResult":
        return cls(success=False, message=message, **extra)


__all__ = ["ActionResult"]
