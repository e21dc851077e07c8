"""Slug derivation and allocation for organization URLs."""

import logging
import re
import unicodedata
from typing import Protocol

from app.core.errors import SlugExhausted

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK = "org"
DEFAULT_MAX_ATTEMPTS = 100
# Leaves room for a "-NN" suffix under the 120-character slug column.
MAX_BASE_LENGTH = 100

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class SlugProbe(Protocol):
    async def slug_exists(self, slug: str) -> bool: ...


def derive_slug(
    name: str, fallback: str = DEFAULT_FALLBACK, max_length: int = MAX_BASE_LENGTH
) -> str:
    """Turn a display name into a URL-safe base slug.

    ``"Fundación Ñandú!!"`` becomes ``"fundacion-nandu"``. Names with no
    latin letters or digits at all fall back to ``fallback``. Long names
    are cut to ``max_length`` characters.
    """
    decomposed = unicodedata.normalize("NFKD", name.lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_ALNUM.sub("-", ascii_only).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or fallback


def candidate(base: str, n: int) -> str:
    return base if n == 0 else f"{base}-{n}"


class SlugAllocator:
    """Finds the first unused ``base``, ``base-1``, ``base-2`` … slug.

    Allocation only reads. Two concurrent callers can receive the same
    candidate; the store's unique constraint decides the winner.
    """

    def __init__(self, store: SlugProbe, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.store = store
        self.max_attempts = max_attempts

    async def allocate(self, base: str) -> str:
        for n in range(self.max_attempts):
            slug = candidate(base, n)
            if not await self.store.slug_exists(slug):
                return slug
        logger.warning("Slug space exhausted for base %r after %d probes", base, self.max_attempts)
        raise SlugExhausted()
