"""Typed state-change notifications.

WorldState mutators publish a :class:`StateEvent` for every observable change.
Delivery is synchronous: ``publish`` returns only after every matching
subscriber ran.  A failing subscriber is logged and skipped so it can neither
abort the mutation that emitted the event nor starve the remaining
subscribers.  The bus also keeps a bounded ring of recent events that UI or
achievement collaborators can query after the fact.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

from loguru import logger


class StateEventKind(Enum):
    MONEY_CHANGED = "money.changed"
    EMISSION_CHANGED = "emission.changed"
    BUILDING_ADDED = "building.added"
    BUILDING_REMOVED = "building.removed"
    BUILDING_UPGRADED = "building.upgraded"
    CREDITS_CHANGED = "credits.changed"
    MONSTER_CHANGED = "monster.changed"
    MONSTER_MAXED = "monster.maxed"
    TURN_CHANGED = "turn.changed"
    BUILD_COUNT_CHANGED = "build.count.changed"
    LAND_PURCHASE_COUNT_CHANGED = "land.purchase.changed"
    STATE_RESTORED = "state.restored"
    COMPETITOR_CHANGED = "competitor.changed"
    PRICES_CHANGED = "prices.changed"


@dataclass(frozen=True, slots=True)
class StateEvent:
    seq: int
    kind: StateEventKind
    turn: int
    old: object = None
    new: object = None
    tag: Optional[str] = None


StateListener = Callable[[StateEvent], None]


@dataclass(slots=True)
class _Subscription:
    handler: StateListener
    kinds: frozenset[StateEventKind] | None


class StateEventBus:
    def __init__(self, *, max_history: int = 500) -> None:
        self.max_history = max_history
        self._history: List[StateEvent] = []
        self._next_seq = 0
        self._subscriptions: dict[int, _Subscription] = {}
        self._next_sub_id = 1

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------
    def subscribe(
        self,
        handler: StateListener,
        *,
        kinds: Iterable[StateEventKind] | StateEventKind | None = None,
    ) -> int:
        """Register ``handler`` and return its subscription id.

        ``kinds`` narrows delivery to the given event kinds; ``None`` means
        every kind.
        """

        if isinstance(kinds, StateEventKind):
            kinds = (kinds,)
        sub_id = self._next_sub_id
        self._next_sub_id += 1
        self._subscriptions[sub_id] = _Subscription(
            handler=handler, kinds=frozenset(kinds) if kinds else None
        )
        return sub_id

    def unsubscribe(self, sub_id: int) -> bool:
        return self._subscriptions.pop(sub_id, None) is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(
        self,
        kind: StateEventKind,
        *,
        turn: int,
        old: object = None,
        new: object = None,
        tag: Optional[str] = None,
    ) -> StateEvent:
        event = StateEvent(seq=self._next_seq, kind=kind, turn=int(turn), old=old, new=new, tag=tag)
        self._next_seq += 1
        self._history.append(event)
        if self.max_history > 0 and len(self._history) > self.max_history:
            del self._history[: len(self._history) - self.max_history]
        for sub_id, subscription in list(self._subscriptions.items()):
            if subscription.kinds is not None and kind not in subscription.kinds:
                continue
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(f"[EventBus] listener {sub_id} failed on {kind.value}")
        return event

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def history(self, kind: StateEventKind | None = None) -> list[StateEvent]:
        if kind is None:
            return list(self._history)
        return [event for event in self._history if event.kind is kind]

    def clear_history(self) -> None:
        self._history.clear()


__all__ = ["StateEvent", "StateEventBus", "StateEventKind", "StateListener"]
