import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import AsyncBaseRepository, AsyncThoughtRepository, ThoughtRepository


class NumberRepository(AsyncBaseRepository):
    async def init_db(self) -> None:
        async with self._async_connection() as conn:
            await conn.execute("CREATE TABLE IF NOT EXISTS numbers (val INTEGER)")
            await conn.commit()

    async def add(self, val: int) -> int:
        return await self.execute("INSERT INTO numbers (val) VALUES (?)", (val,))

    async def all(self):
        rows = await self.fetch_all("SELECT val FROM numbers")
        return [r[0] for r in rows]


@pytest.mark.asyncio
async def test_async_repository(tmp_path):
    repo = NumberRepository(str(tmp_path / "test.db"))
    await repo.init_db()
    await repo.add(5)
    assert await repo.all() == [5]


@pytest.mark.asyncio
async def test_async_thought_repo(tmp_path):
    db_file = str(tmp_path / "thoughts.db")
    repo = AsyncThoughtRepository(db_file)
    thought = await repo.create({"content": "Deload week", "tags": ["recovery"]})
    assert thought["mood"] == "neutral"
    assert thought["tags"] == ["recovery"]
    rows = await repo.fetch_thoughts()
    assert [r["id"] for r in rows] == [thought["id"]]

    updated = await repo.update(thought["id"], {"mood": "motivated", "tags": []})
    assert updated["mood"] == "motivated"
    assert updated["tags"] == []
    assert updated["content"] == "Deload week"
    assert await repo.fetch_thoughts("sad") == []

    await repo.delete(thought["id"])
    assert await repo.fetch_thoughts() == []
    with pytest.raises(ValueError):
        await repo.delete(thought["id"])
    with pytest.raises(ValueError):
        await repo.update(thought["id"], {"content": "gone"})


@pytest.mark.asyncio
async def test_async_and_sync_thoughts_share_table(tmp_path):
    db_file = str(tmp_path / "shared.db")
    sync_repo = ThoughtRepository(db_file)
    created = sync_repo.create({"content": "Sync write", "mood": "happy", "tags": ["a", "b"]})
    repo = AsyncThoughtRepository(db_file)
    detail = await repo.fetch_detail(created["id"])
    assert detail["tags"] == ["a", "b"]
    assert detail["mood"] == "happy"
