"""
Strategies for short id generation in linktrack.

Provided strategies:
- RandomStrategy: Base62 characters drawn from the OS entropy pool (default)
- TokenStrategy: base64 of random bytes with "+", "/" and "=" stripped, then truncated

Common helpers:
- _safe_len: Resolve/normalize desired id length from argument/config (clamped to [6, 8])

Configuration (via linktrack.config.settings):
- ID_STRATEGY: "random" (default) or "token"
- ID_LENGTH: default length (6; clamped 6..8)

Notes:
- Generators never check uniqueness. The storage layer rejects a taken id and
  the create call fails; at 62^6 ids the odds are negligible for expected volume.
"""

import base64
import logging
import random
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from linktrack.config import MAX_ID_LENGTH, MIN_ID_LENGTH, settings

log = logging.getLogger("linktrack.ids")

BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _safe_len(length: Optional[int]) -> int:
    """
    Resolve desired id length from arg or config, clamped to [6, 8].
    """
    L = int(length) if length is not None else int(getattr(settings, "ID_LENGTH", MIN_ID_LENGTH))
    return max(MIN_ID_LENGTH, min(MAX_ID_LENGTH, L))


class BaseStrategy(ABC):
    """Abstract base for short id generation strategies."""

    @abstractmethod
    def generate(self, *, length: Optional[int] = None) -> str:
        """Return a fresh short id of the resolved length."""
        raise NotImplementedError


@dataclass(frozen=True)
class RandomStrategy(BaseStrategy):
    """Random Base62 ids; rely on storage-level uniqueness."""

    def generate(self, *, length: Optional[int] = None) -> str:
        L = _safe_len(length)
        rng = random.SystemRandom()
        return "".join(rng.choice(BASE62_ALPHABET) for _ in range(L))


@dataclass(frozen=True)
class TokenStrategy(BaseStrategy):
    """
    Base64 token strategy.

    Encodes `length` random bytes, drops the non-alphanumeric base64 symbols and
    truncates. Stripping can leave the token short, so it draws again until
    enough characters remain.
    """

    def generate(self, *, length: Optional[int] = None) -> str:
        L = _safe_len(length)
        token = ""
        while len(token) < L:
            raw = base64.b64encode(secrets.token_bytes(L)).decode("ascii")
            token += raw.replace("+", "").replace("/", "").replace("=", "")
        return token[:L]


# Strategy registry and factory
STRATEGY_REGISTRY: Dict[str, Type[BaseStrategy]] = {
    "random": RandomStrategy,
    "rand": RandomStrategy,
    "base62": RandomStrategy,
    "token": TokenStrategy,
    "base64": TokenStrategy,
}


def get_strategy_from_config(name: Optional[str] = None) -> BaseStrategy:
    """
    Resolve the active strategy from parameter or settings.ID_STRATEGY.
    Unknown names fall back to the random strategy.
    """
    key = (name or getattr(settings, "ID_STRATEGY", "random") or "random").strip().lower()
    cls = STRATEGY_REGISTRY.get(key)
    if cls is None:
        log.warning("Unknown id strategy %r, falling back to 'random'", key)
        cls = RandomStrategy
    log.debug("Using id strategy: %s -> %s", key, cls.__name__)
    return cls()
