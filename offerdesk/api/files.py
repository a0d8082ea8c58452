import logging
import uuid

from fastapi import APIRouter, Depends, File, UploadFile

from offerdesk.auth import ALL_ROLES, authorize
from offerdesk.core.errors import NotFoundError, PayloadTooLargeError, ValidationError
from offerdesk.core.models_core import TEXTDATA
from offerdesk.core.settings import Settings
from offerdesk.deps import get_settings, get_store
from offerdesk.schemas import TagIn
from offerdesk.storage import check_upload_name, store_text_upload
from offerdesk.store import Equals, FilterSpec
from offerdesk.store.base import RecordStore

logger = logging.getLogger("files")

router = APIRouter(prefix="/offers/{offer_id}/files", tags=["files"])


def _require_text(payload: TagIn) -> str:
    text = (payload.text or "").strip()
    if not text:
        raise ValidationError("Tag text is required")
    return text


def _check_owner(record: dict, offer_id: str) -> None:
    if record.get("offerId") != offer_id:
        raise NotFoundError("File not found")


@router.post("", status_code=201)
async def upload_file(
    offer_id: str,
    file: UploadFile = File(...),
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    original_name = check_upload_name(file.filename or "")

    data = await file.read()
    max_bytes = cfg.MAX_UPLOAD_MB * 1024 * 1024
    if len(data) > max_bytes:
        raise PayloadTooLargeError(f"File too large (>{cfg.MAX_UPLOAD_MB} MB)")

    stored_name, url = store_text_upload(cfg.ASSETS_DIR, data)
    record = await store.create(TEXTDATA, {
        "originalName": original_name,
        "storedName": stored_name,
        "url": url,
        "offerId": offer_id,
        "tags": [],
    })
    logger.info("stored %s for offer %s as %s (%d bytes)", original_name, offer_id, stored_name, len(data))
    return record


@router.get("")
async def list_files(
    offer_id: str,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    rows = await store.list(TEXTDATA, FilterSpec([Equals("offerId", offer_id)]))
    return [{"id": r["id"], "name": r["originalName"], "url": r["url"]} for r in rows]


# ----------------------------------------------------------------------
# Tags (ordered, ids unique within one file)
# ----------------------------------------------------------------------

@router.get("/{file_id}/tags")
async def list_tags(
    offer_id: str,
    file_id: str,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    record = await store.get(TEXTDATA, file_id)
    _check_owner(record, offer_id)
    return record.get("tags") or []


@router.post("/{file_id}/tags", status_code=201)
async def add_tag(
    offer_id: str,
    file_id: str,
    payload: TagIn,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    text = _require_text(payload)
    created = {}

    def append(record):
        _check_owner(record, offer_id)
        tags = list(record.get("tags") or [])
        existing = {t.get("id") for t in tags}
        tag_id = uuid.uuid4().hex
        while tag_id in existing:
            tag_id = uuid.uuid4().hex
        created.update(id=tag_id, text=text)
        tags.append(dict(created))
        return {"tags": tags}

    await store.modify(TEXTDATA, file_id, append)
    return created


@router.put("/{file_id}/tags/{tag_id}")
async def update_tag(
    offer_id: str,
    file_id: str,
    tag_id: str,
    payload: TagIn,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    text = _require_text(payload)
    updated = {}

    def rename(record):
        _check_owner(record, offer_id)
        tags = [dict(t) for t in record.get("tags") or []]
        for t in tags:
            if t.get("id") == tag_id:
                t["text"] = text
                updated.update(t)
                return {"tags": tags}
        raise NotFoundError("Tag not found")

    await store.modify(TEXTDATA, file_id, rename)
    return updated


@router.delete("/{file_id}/tags/{tag_id}")
async def delete_tag(
    offer_id: str,
    file_id: str,
    tag_id: str,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    removed = {}

    def drop(record):
        _check_owner(record, offer_id)
        tags = list(record.get("tags") or [])
        for i, t in enumerate(tags):
            if t.get("id") == tag_id:
                removed.update(tags.pop(i))
                return {"tags": tags}
        raise NotFoundError("Tag not found")

    await store.modify(TEXTDATA, file_id, drop)
    return removed
