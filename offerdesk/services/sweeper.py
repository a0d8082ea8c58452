import logging
from typing import List

from offerdesk.core.errors import AppError, NotFoundError
from offerdesk.core.models_core import COMMENTS, CUSTOMERS, OFFERS, Entity
from offerdesk.store.base import RecordStore

logger = logging.getLogger("sweeper")


class Sweeper:
    """
    Removes child records whose parent is gone.

    offers:   customerId set but unknown -> deleted (empty customerId is kept)
    comments: offerId empty or unknown   -> deleted

    Best effort: a dangling reference created between two sweeps is removed
    by the next one.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def _purge(self, child: Entity, parent: Entity, fk: str, drop_blank: bool) -> List[str]:
        parent_ids = {str(r["id"]) for r in await self.store.list(parent)}
        removed = []
        for rec in await self.store.list(child):
            ref = rec.get(fk)
            blank = ref is None or str(ref).strip() == ""
            if blank and not drop_blank:
                continue
            if not blank and str(ref) in parent_ids:
                continue
            try:
                await self.store.delete(child, rec["id"])
            except NotFoundError:
                # already gone (concurrent request or another sweep)
                continue
            removed.append(str(rec["id"]))
        if removed:
            logger.info("removed %d dangling %s: %s", len(removed), child.name, ", ".join(removed))
        return removed

    async def sweep_offers(self) -> List[str]:
        return await self._purge(OFFERS, CUSTOMERS, "customerId", drop_blank=False)

    async def sweep_comments(self) -> List[str]:
        return await self._purge(COMMENTS, OFFERS, "offerId", drop_blank=True)

    async def sweep(self) -> dict:
        offers = await self.sweep_offers()
        comments = await self.sweep_comments()
        return {"offers": offers, "comments": comments}

    async def run_safely(self, offers_only: bool = False) -> None:
        """Sweep without ever failing the caller; errors are only logged."""
        try:
            if offers_only:
                await self.sweep_offers()
            else:
                await self.sweep()
        except AppError as exc:
            logger.error("sweep failed: %s", exc.message)
        except Exception:
            logger.exception("sweep failed unexpectedly")
