"""Slug derivation and allocation."""

from unittest.mock import AsyncMock

import pytest

from app.core.errors import SlugExhausted
from app.models.organization import SLUG_MAX_LENGTH
from app.services.slug import MAX_BASE_LENGTH, SlugAllocator, candidate, derive_slug


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Fundación Ñandú!!", "fundacion-nandu"),
        ("  Ayuda   Social  ", "ayuda-social"),
        ("Niños & Niñas -- Bogotá", "ninos-ninas-bogota"),
        ("ACME 2024", "acme-2024"),
        ("---", "org"),
    ],
)
def test_derive_slug(name, expected):
    assert derive_slug(name) == expected


def test_derive_slug_non_latin_falls_back():
    assert derive_slug("日本語") == "org"
    assert derive_slug("日本語", fallback="tenant") == "tenant"


def test_derive_slug_truncates_long_names():
    base = derive_slug("Fundación " + "Ayuda Social " * 12)
    assert len(base) <= MAX_BASE_LENGTH
    assert base.startswith("fundacion-ayuda-social-")
    assert not base.endswith("-")
    assert len(candidate(base, 99)) <= SLUG_MAX_LENGTH


def test_derive_slug_never_ends_on_a_separator():
    # The first 12 characters end on a hyphen.
    assert derive_slug("a" * 9 + " b c", max_length=12) == "aaaaaaaaa-b"


def test_candidate_suffixes():
    assert candidate("ayuda", 0) == "ayuda"
    assert candidate("ayuda", 3) == "ayuda-3"


@pytest.mark.asyncio
async def test_allocate_free_base(tenant_store):
    assert await SlugAllocator(tenant_store).allocate("ayuda") == "ayuda"


@pytest.mark.asyncio
async def test_allocate_appends_suffixes(tenant_store):
    allocator = SlugAllocator(tenant_store)
    await tenant_store.insert(name="Ayuda", email="a@x.org", slug="ayuda")

    first = await allocator.allocate("ayuda")
    assert first == "ayuda-1"
    await tenant_store.insert(name="Ayuda", email="b@x.org", slug=first)

    assert await allocator.allocate("ayuda") == "ayuda-2"


@pytest.mark.asyncio
async def test_allocate_is_idempotent_without_insert(tenant_store):
    await tenant_store.insert(name="Ayuda", email="a@x.org", slug="ayuda")
    allocator = SlugAllocator(tenant_store)

    assert await allocator.allocate("ayuda") == await allocator.allocate("ayuda")
    assert await tenant_store.slug_exists("ayuda-1") is False


@pytest.mark.asyncio
async def test_allocate_exhausted():
    store = AsyncMock()
    store.slug_exists.return_value = True
    allocator = SlugAllocator(store, max_attempts=5)

    with pytest.raises(SlugExhausted):
        await allocator.allocate("busy")
    assert store.slug_exists.await_count == 5
