import asyncio
from dataclasses import dataclass

import pytest

from lspbridge.core.models.state import SessionRegistry


@dataclass
class StubSession:
    id: str


@pytest.mark.ut
@pytest.mark.asyncio
async def test_add_and_remove():
    registry = SessionRegistry()
    session = StubSession("s1")

    await registry.add(session)  # type: ignore[arg-type]
    assert "s1" in registry
    assert registry.get("s1") is session
    assert len(registry) == 1

    assert await registry.remove("s1") is session
    assert "s1" not in registry
    assert len(registry) == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_remove_unknown_is_noop():
    registry = SessionRegistry()

    assert await registry.remove("missing") is None


@pytest.mark.ut
@pytest.mark.asyncio
async def test_duplicate_id_is_rejected():
    registry = SessionRegistry()
    await registry.add(StubSession("dup"))  # type: ignore[arg-type]

    with pytest.raises(KeyError):
        await registry.add(StubSession("dup"))  # type: ignore[arg-type]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_snapshot_is_a_copy():
    registry = SessionRegistry()
    for i in range(3):
        await registry.add(StubSession(f"s{i}"))  # type: ignore[arg-type]

    snapshot = await registry.snapshot()
    for session in snapshot:
        await registry.remove(session.id)

    assert [s.id for s in snapshot] == ["s0", "s1", "s2"]
    assert len(registry) == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_concurrent_mutations_are_not_lost():
    registry = SessionRegistry()
    sessions = [StubSession(f"s{i}") for i in range(100)]

    await asyncio.gather(*(registry.add(s) for s in sessions))  # type: ignore[arg-type]
    assert len(registry) == 100

    await asyncio.gather(*(registry.remove(s.id) for s in sessions[::2]))
    assert sorted(registry) == sorted(s.id for s in sessions[1::2])
