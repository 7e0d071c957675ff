"""Seedable random streams for land generation, NPC policies and the market.

Each consumer asks for a named stream plus an optional scope (owner, turn,
...).  With a seed the stream is derived from ``sha256(salt|seed|key|scope)``
so replays are exact regardless of the order in which consumers draw.
Without a seed every stream is backed by fresh OS entropy.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Any, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """The subset of :class:`random.Random` the simulation draws from."""

    def random(self) -> float: ...

    def choice(self, seq: Sequence[T]) -> T: ...

    def uniform(self, a: float, b: float) -> float: ...


def _canonical_scope(scope: dict[str, object] | None) -> str:
    if not scope:
        return "{}"
    return json.dumps({str(k): v for k, v in scope.items()}, sort_keys=True, separators=(",", ":"))


@dataclass
class RNGService:
    seed: Optional[int] = None
    salt: str = "carbon-rng-v1"
    counters: dict[str, int] = field(default_factory=dict)

    @property
    def deterministic(self) -> bool:
        return self.seed is not None

    def _derived_seed(self, stream_key: str, scope_json: str, draw_index: int) -> int:
        blob = f"{self.salt}|{self.seed}|{stream_key}|{scope_json}|{draw_index}"
        digest = sha256(blob.encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "big", signed=False)

    def stream(self, stream_key: str, *, scope: dict[str, object] | None = None) -> random.Random:
        """Return a generator for ``stream_key`` within ``scope``.

        Asking twice for the same key and scope yields two different (but
        reproducible) generators; the per-stream counter is part of the seed.
        """

        scope_json = _canonical_scope(scope)
        counter_key = f"{stream_key}|{scope_json}"
        draw_index = self.counters.get(counter_key, 0)
        self.counters[counter_key] = draw_index + 1
        if self.seed is None:
            return random.Random()
        return random.Random(self._derived_seed(stream_key, scope_json, draw_index))

    def signature(self) -> str:
        payload = json.dumps(sorted(self.counters.items()), separators=(",", ":"))
        return sha256(payload.encode("utf-8")).hexdigest()[:16]


def ensure_rng_service(owner: Any, *, seed: Optional[int] = None) -> RNGService:
    service = getattr(owner, "rng_service", None)
    if not isinstance(service, RNGService):
        service = RNGService(seed=seed if seed is not None else getattr(owner, "seed", None))
        setattr(owner, "rng_service", service)
    return service


__all__ = ["RNGService", "RandomSource", "ensure_rng_service"]
