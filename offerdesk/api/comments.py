from fastapi import APIRouter, Depends

from offerdesk.auth import ALL_ROLES, EDITORS, authorize
from offerdesk.core.errors import NotFoundError, ValidationError
from offerdesk.core.models_core import COMMENTS
from offerdesk.deps import get_store
from offerdesk.schemas import CommentIn
from offerdesk.store import Equals, FilterSpec
from offerdesk.store.base import RecordStore

router = APIRouter(tags=["comments"])


def _require_text(payload: CommentIn) -> str:
    text = (payload.text or "").strip()
    if not text:
        raise ValidationError("Comment text is required")
    return text


async def _comment_of_offer(store: RecordStore, offer_id: str, comment_id: str) -> dict:
    comment = await store.get(COMMENTS, comment_id)
    if comment.get("offerId") != offer_id:
        raise NotFoundError("Comment not found")
    return comment


@router.get("/offers/{offer_id}/comments")
async def list_comments(
    offer_id: str,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    return await store.list(COMMENTS, FilterSpec([Equals("offerId", offer_id)]))


@router.post("/offers/{offer_id}/comments", status_code=201)
async def add_comment(
    offer_id: str,
    payload: CommentIn,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    text = _require_text(payload)
    return await store.create(COMMENTS, {"offerId": offer_id, "text": text})


@router.put("/offers/{offer_id}/comments/{comment_id}")
async def update_comment(
    offer_id: str,
    comment_id: str,
    payload: CommentIn,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    text = _require_text(payload)
    await _comment_of_offer(store, offer_id, comment_id)
    updated = await store.update(COMMENTS, comment_id, {"text": text})
    return {"message": "Comment successfully updated", "updatedComment": updated}


@router.delete("/offers/{offer_id}/comments/{comment_id}")
async def delete_comment(
    offer_id: str,
    comment_id: str,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    await _comment_of_offer(store, offer_id, comment_id)
    deleted = await store.delete(COMMENTS, comment_id)
    return {"message": "Comment successfully deleted", "deletedComment": deleted}
