from fastapi import Request

from offerdesk.core.settings import Settings
from offerdesk.services.tag_search import TagSearchTaskManager
from offerdesk.store.base import RecordStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_tag_search(request: Request) -> TagSearchTaskManager:
    return request.app.state.tag_search


async def sweep_offers_first(request: Request) -> None:
    """On-demand mode: drop offers of deleted customers before serving /offers."""
    if request.app.state.settings.SWEEP_ON_REQUEST:
        await request.app.state.sweeper.run_safely(offers_only=True)
