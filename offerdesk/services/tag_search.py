"""
Deferred tag search over uploaded text files.

A search is submitted, answered immediately with a task id, and executed
later by the app scheduler. Clients poll the task until it is Completed.
Tasks live only in this process (lost on restart).
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from offerdesk.core.errors import AppError, NotFoundError, ValidationError
from offerdesk.core.models_core import TEXTDATA
from offerdesk.store.base import RecordStore

logger = logging.getLogger("tag_search")

PENDING = "Pending"
COMPLETED = "Completed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SearchQuery:
    tags: Tuple[str, ...]
    substring: bool = True
    case_insensitive: bool = True


@dataclass
class SearchTask:
    id: str
    query: SearchQuery
    status: str = PENDING
    result: Optional[List[dict]] = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        out = {"taskId": self.id, "status": self.status}
        if self.status == COMPLETED:
            out["result"] = [dict(r) for r in self.result or []]
        return out


def tag_predicate(substring: bool, case_insensitive: bool) -> Callable[[str, str], bool]:
    """Return test(file_tag, query_tag) for the given flags."""
    if substring and case_insensitive:
        return lambda have, want: want.lower() in have.lower()
    if substring:
        return lambda have, want: want in have
    if case_insensitive:
        return lambda have, want: have.lower() == want.lower()
    return lambda have, want: have == want


def file_matches(file_tags: Iterable[str], query: SearchQuery) -> bool:
    """Every query tag must be satisfied by at least one tag on the file."""
    test = tag_predicate(query.substring, query.case_insensitive)
    have = [t for t in file_tags if isinstance(t, str)]
    return all(any(test(h, want) for h in have) for want in query.tags)


def match_files(files: Iterable[dict], query: SearchQuery) -> List[dict]:
    hits = []
    for f in files:
        texts = [t.get("text") for t in (f.get("tags") or []) if isinstance(t, dict)]
        if file_matches(texts, query):
            hits.append({"id": f["id"], "name": f.get("originalName"), "url": f.get("url")})
    return hits


def parse_query(tags: Any, substring: Any = True, case_insensitive: Any = True) -> SearchQuery:
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("tags must be a non-empty list of strings")
    cleaned: List[str] = []
    for t in tags:
        if not isinstance(t, str):
            raise ValidationError("tags must be a non-empty list of strings")
        t = t.strip()
        if t and t not in cleaned:
            cleaned.append(t)
    if not cleaned:
        raise ValidationError("tags must be a non-empty list of strings")
    for name, flag in (("substring", substring), ("caseInsensitive", case_insensitive)):
        if not isinstance(flag, bool):
            raise ValidationError(f"{name} must be a boolean")
    return SearchQuery(tuple(cleaned), substring, case_insensitive)


class TagSearchTaskManager:
    """
    Registry of search tasks owned by one app instance.

    Pending -> Completed happens exactly once; completed tasks are kept for
    `ttl_seconds` (0 keeps them forever) and then evicted.
    """

    def __init__(
        self,
        store: RecordStore,
        scheduler,
        delay_seconds: float = 60,
        ttl_seconds: float = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.scheduler = scheduler
        self.delay_seconds = max(0.0, float(delay_seconds or 0))
        self.ttl_seconds = float(ttl_seconds or 0)
        self._clock = clock
        self._tasks: Dict[str, SearchTask] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    async def submit(self, tags: Any, substring: Any = True, case_insensitive: Any = True) -> str:
        query = parse_query(tags, substring, case_insensitive)
        task = SearchTask(id=uuid.uuid4().hex, query=query, created_at=self._clock())
        self._tasks[task.id] = task

        run_at = _utcnow() + timedelta(seconds=self.delay_seconds)
        self.scheduler.add_job(
            self.execute,
            trigger="date",
            run_date=run_at,
            args=[task.id],
            id=f"tag-search:{task.id}",
            misfire_grace_time=None,
        )
        logger.info("task %s queued tags=%s substring=%s ci=%s run_at=%s",
                    task.id, list(query.tags), query.substring, query.case_insensitive, run_at.isoformat())
        return task.id

    async def poll(self, task_id: str) -> SearchTask:
        self.evict_expired()
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def execute(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.status == COMPLETED:
            return
        try:
            files = await self.store.list(TEXTDATA)
            result = match_files(files, task.query)
        except AppError as exc:
            logger.error("task %s scan failed, completing empty: %s", task_id, exc.message)
            result = []
        except Exception:
            # the task must still leave Pending
            logger.exception("task %s scan failed unexpectedly, completing empty", task_id)
            result = []
        task.result = result
        task.status = COMPLETED
        task.completed_at = self._clock()
        logger.info("task %s completed with %d match(es)", task_id, len(result))

    def evict_expired(self) -> int:
        if self.ttl_seconds <= 0:
            return 0
        cutoff = self._clock() - timedelta(seconds=self.ttl_seconds)
        expired = [
            tid for tid, t in self._tasks.items()
            if t.status == COMPLETED and t.completed_at is not None and t.completed_at < cutoff
        ]
        for tid in expired:
            del self._tasks[tid]
        if expired:
            logger.info("evicted %d completed task(s)", len(expired))
        return len(expired)
