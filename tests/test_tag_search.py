import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from offerdesk.core.errors import NotFoundError, ValidationError
from offerdesk.core.models_core import TEXTDATA
from offerdesk.services.tag_search import (
    COMPLETED,
    PENDING,
    SearchQuery,
    TagSearchTaskManager,
    file_matches,
    match_files,
    parse_query,
    tag_predicate,
)
from offerdesk.store import JsonRecordStore, SqlRecordStore


class FakeScheduler:
    def __init__(self):
        self.jobs = []

    def add_job(self, func, **kwargs):
        self.jobs.append((func, kwargs))


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.mark.parametrize(
    "substring,ci,have,want,expected",
    [
        (True, True, "Urgent-Review", "urgent", True),
        (True, False, "Urgent-Review", "urgent", False),
        (True, False, "Urgent-Review", "Urgent", True),
        (False, True, "URGENT", "urgent", True),
        (False, True, "Urgent-Review", "urgent", False),
        (False, False, "urgent", "urgent", True),
        (False, False, "Urgent", "urgent", False),
    ],
)
def test_tag_predicate_modes(substring, ci, have, want, expected):
    assert tag_predicate(substring, ci)(have, want) is expected


def test_every_query_tag_must_match_some_file_tag():
    query = SearchQuery(("urgent", "review"))
    assert file_matches(["Urgent-Review"], query)
    assert file_matches(["urgent", "needs review", "extra"], query)
    assert not file_matches(["urgent"], query)
    assert not file_matches([], query)


def test_match_files_returns_file_summaries():
    files = [
        {"id": "1", "originalName": "a.txt", "url": "/assets/a.txt", "tags": [{"id": "x", "text": "Urgent-Review"}]},
        {"id": "2", "originalName": "b.txt", "url": "/assets/b.txt", "tags": [{"id": "y", "text": "later"}]},
        {"id": "3", "originalName": "c.txt", "url": "/assets/c.txt", "tags": None},
    ]
    assert match_files(files, SearchQuery(("urgent",))) == [{"id": "1", "name": "a.txt", "url": "/assets/a.txt"}]


def test_parse_query_cleans_tags():
    q = parse_query([" urgent ", "urgent", "", "review"], substring=False, case_insensitive=True)
    assert q == SearchQuery(("urgent", "review"), False, True)


@pytest.mark.parametrize(
    "tags,substring,ci",
    [
        (None, True, True),
        ("urgent", True, True),
        ([], True, True),
        (["  "], True, True),
        (["ok", 3], True, True),
        (["ok"], "yes", True),
        (["ok"], True, 1),
    ],
)
def test_parse_query_rejects_bad_input(tags, substring, ci):
    with pytest.raises(ValidationError):
        parse_query(tags, substring, ci)


def _seed_files(store):
    async def seed():
        await store.create(TEXTDATA, {"originalName": "one.txt", "url": "/assets/1.txt", "offerId": "1",
                                      "tags": [{"id": "a", "text": "Urgent-Review"}]})
        await store.create(TEXTDATA, {"originalName": "two.txt", "url": "/assets/2.txt", "offerId": "1",
                                      "tags": [{"id": "b", "text": "later"}]})
    return seed()


def test_task_goes_from_pending_to_completed(tmp_path):
    scheduler = FakeScheduler()

    async def scenario():
        store = JsonRecordStore(str(tmp_path))
        await _seed_files(store)
        manager = TagSearchTaskManager(store, scheduler, delay_seconds=60)
        task_id = await manager.submit(["urgent"])
        pending = (await manager.poll(task_id)).to_dict()

        func, kwargs = scheduler.jobs[0]
        await func(*kwargs["args"])
        first = (await manager.poll(task_id)).to_dict()
        second = (await manager.poll(task_id)).to_dict()
        return task_id, pending, first, second, kwargs

    task_id, pending, first, second, kwargs = asyncio.run(scenario())
    assert pending == {"taskId": task_id, "status": PENDING}
    assert first == {
        "taskId": task_id,
        "status": COMPLETED,
        "result": [{"id": "1", "name": "one.txt", "url": "/assets/1.txt"}],
    }
    assert second == first
    assert kwargs["trigger"] == "date"
    assert kwargs["misfire_grace_time"] is None
    lead = kwargs["run_date"] - datetime.now(timezone.utc)
    assert timedelta(seconds=50) < lead <= timedelta(seconds=60)


def test_result_is_frozen_once_completed(tmp_path):
    scheduler = FakeScheduler()

    async def scenario():
        store = JsonRecordStore(str(tmp_path))
        await _seed_files(store)
        manager = TagSearchTaskManager(store, scheduler, delay_seconds=0)
        task_id = await manager.submit(["later"], substring=False, case_insensitive=False)
        await manager.execute(task_id)
        # files changing afterwards must not alter a completed task
        await store.modify(TEXTDATA, "1", lambda r: {"tags": [{"id": "c", "text": "later"}]})
        await manager.execute(task_id)
        return (await manager.poll(task_id)).result

    assert asyncio.run(scenario()) == [{"id": "2", "name": "two.txt", "url": "/assets/2.txt"}]


def test_scan_failure_completes_with_empty_result(tmp_path):
    (tmp_path / "textdata.json").write_text("not json", encoding="utf-8")

    async def scenario():
        manager = TagSearchTaskManager(JsonRecordStore(str(tmp_path)), FakeScheduler())
        task_id = await manager.submit(["x"])
        await manager.execute(task_id)
        return (await manager.poll(task_id)).to_dict()

    out = asyncio.run(scenario())
    assert out["status"] == COMPLETED
    assert out["result"] == []


def test_unknown_task_is_not_found(tmp_path):
    manager = TagSearchTaskManager(JsonRecordStore(str(tmp_path)), FakeScheduler())
    with pytest.raises(NotFoundError):
        asyncio.run(manager.poll("does-not-exist"))


def test_invalid_submission_schedules_nothing(tmp_path):
    scheduler = FakeScheduler()
    manager = TagSearchTaskManager(JsonRecordStore(str(tmp_path)), scheduler)
    with pytest.raises(ValidationError):
        asyncio.run(manager.submit([]))
    assert scheduler.jobs == []
    assert len(manager) == 0


def test_completed_tasks_expire_after_ttl(tmp_path):
    clock = FakeClock()

    async def scenario():
        manager = TagSearchTaskManager(JsonRecordStore(str(tmp_path)), FakeScheduler(), ttl_seconds=600, clock=clock)
        done = await manager.submit(["a"])
        waiting = await manager.submit(["b"])
        await manager.execute(done)

        clock.advance(599)
        assert manager.evict_expired() == 0
        clock.advance(2)
        await manager.poll(waiting)
        try:
            await manager.poll(done)
        except NotFoundError:
            return len(manager)
        return None

    # pending tasks are never evicted
    assert asyncio.run(scenario()) == 1


def test_zero_ttl_keeps_tasks(tmp_path):
    clock = FakeClock()

    async def scenario():
        manager = TagSearchTaskManager(JsonRecordStore(str(tmp_path)), FakeScheduler(), ttl_seconds=0, clock=clock)
        task_id = await manager.submit(["a"])
        await manager.execute(task_id)
        clock.advance(10 ** 6)
        return (await manager.poll(task_id)).status

    assert asyncio.run(scenario()) == COMPLETED


class ExplodingStore:
    async def list(self, entity, filters=None):
        raise RuntimeError("disk on fire")


def test_unexpected_scan_error_still_completes():
    async def scenario():
        manager = TagSearchTaskManager(ExplodingStore(), FakeScheduler())
        task_id = await manager.submit(["x"])
        await manager.execute(task_id)
        return (await manager.poll(task_id)).to_dict()

    out = asyncio.run(scenario())
    assert out["status"] == COMPLETED
    assert out["result"] == []


def test_undecodable_sql_row_still_completes(tmp_path):
    async def scenario():
        store = SqlRecordStore(f"sqlite+aiosqlite:///{tmp_path / 'tags.db'}")
        await store.init()
        try:
            await store.create(TEXTDATA, {"originalName": "a.txt", "tags": [{"id": "a", "text": "x"}]})
            async with store.engine.begin() as conn:
                await conn.execute(text("UPDATE textdata SET tags = '{broken'"))
            manager = TagSearchTaskManager(store, FakeScheduler())
            task_id = await manager.submit(["x"])
            await manager.execute(task_id)
            return (await manager.poll(task_id)).to_dict()
        finally:
            await store.close()

    out = asyncio.run(scenario())
    assert out["status"] == COMPLETED
    assert out["result"] == []
