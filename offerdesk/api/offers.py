import logging
import random
import re
from typing import Optional

from fastapi import APIRouter, Depends

from offerdesk.auth import ALL_ROLES, EDITORS, MANAGERS, STATUS_EDITORS, authorize
from offerdesk.core.errors import ValidationError
from offerdesk.core.models_core import OFFERS, VALID_STATUSES
from offerdesk.deps import get_store, sweep_offers_first
from offerdesk.schemas import OfferIn, StatusPatch
from offerdesk.store import build_filters
from offerdesk.store.base import RecordStore, utc_now_iso

logger = logging.getLogger("offers")

# every /offers request first drops offers whose customer is gone
router = APIRouter(prefix="/offers", tags=["offers"], dependencies=[Depends(sweep_offers_first)])

_NUMERIC_ID = re.compile(r"^\d+$")

# Offers in the legacy exchange format, imported by POST /offers/sample
SAMPLE_OFFERS = [
    {
        "xCreatedOn": "2024-10-19T00:00:00Z",
        "xCreatedBy": "John Doe",
        "xSoftwareVersion": "1.0.0",
        "xOffer": {
            "customerId": 1,
            "price": 142000,
            "currency": "USD",
            "state": "Active",
            "name": "Offer 1",
            "hints": [],
        },
    },
    {
        "xCreatedOn": "2024-10-20T00:00:00Z",
        "xCreatedBy": "Luise Froehlich",
        "xSoftwareVersion": "1.2.0",
        "xOffer": {
            "customerId": 3,
            "price": 56000,
            "currency": "EUR",
            "state": "On-Ice",
            "name": "Offer 2",
            "hints": ["Great customer, we should win this one!"],
        },
    },
]


def _invalid_status_message() -> str:
    return f"Invalid status. Allowed values: {', '.join(VALID_STATUSES)}"


def _check_status(status: Optional[str]) -> None:
    if status and status not in VALID_STATUSES:
        raise ValidationError(_invalid_status_message())


def convert_exchange_offer(doc: dict) -> dict:
    """Map an {xOffer: {...}} exchange document onto offer fields."""
    x = doc.get("xOffer") or {}
    state = x.get("state")
    hints = x.get("hints") or []
    customer_id = x.get("customerId")
    return {
        "name": x.get("name"),
        "description": " ".join(hints),
        "price": x.get("price"),
        "currency": x.get("currency"),
        "customerId": str(customer_id) if customer_id is not None else None,
        "status": "On Ice" if state == "On-Ice" else state,
    }


@router.get("")
async def list_offers(
    name: Optional[str] = None,
    price: Optional[str] = None,
    status: Optional[str] = None,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    filters = build_filters(OFFERS, {"name": name, "price": price, "status": status})
    return await store.list(OFFERS, filters)


@router.post("", status_code=201)
async def create_offer(
    payload: OfferIn,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    _check_status(payload.status)
    fields = payload.model_dump()
    fields["status"] = fields.get("status") or "Draft"
    # customerId is not checked here; the sweeper removes dangling offers
    return await store.create(OFFERS, fields)


@router.put("/{offer_id}")
async def update_offer(
    offer_id: str,
    payload: OfferIn,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    _check_status(payload.status)
    updated = await store.update(OFFERS, offer_id, payload.model_dump())
    return {"message": "Offer successfully updated", "updatedOffer": updated}


@router.delete("/{offer_id}")
async def delete_offer(
    offer_id: str,
    role=Depends(authorize(MANAGERS)),
    store: RecordStore = Depends(get_store),
):
    deleted = await store.delete(OFFERS, offer_id)
    return {"message": "Offer successfully deleted", "deletedOffer": deleted}


@router.patch("/{offer_id}/status")
async def change_offer_status(
    offer_id: str,
    payload: StatusPatch,
    role=Depends(authorize(STATUS_EDITORS)),
    store: RecordStore = Depends(get_store),
):
    logger.info("status update for offer id=%s new status=%s", offer_id, payload.newStatus)
    if not _NUMERIC_ID.match(offer_id):
        raise ValidationError("Invalid ID format. It must be a number.")
    if payload.newStatus not in VALID_STATUSES:
        raise ValidationError(_invalid_status_message())

    updated = await store.update(OFFERS, offer_id, {"status": payload.newStatus})
    logger.info("offer id=%s updated to status %s", offer_id, payload.newStatus)
    return {"message": "Offer status successfully updated", "updatedOffer": updated}


@router.post("/seed", status_code=201)
async def seed_offers(
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    """Replace all offers with ten random test offers for customers 1..5."""
    now = utc_now_iso()
    rows = [
        {
            "id": str(i),
            "name": f"Test Offer {i}",
            "description": f"Description for offer {i}.",
            "price": random.randint(100, 1000),
            "currency": "EUR",
            "customerId": str(random.randint(1, 5)),
            "status": random.choice(VALID_STATUSES),
            "createdAt": now,
            "updatedAt": now,
        }
        for i in range(1, 11)
    ]
    return await store.reset(OFFERS, rows)


@router.post("/sample", status_code=201)
async def import_sample_offers(
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    for doc in SAMPLE_OFFERS:
        await store.create(OFFERS, convert_exchange_offer(doc))
    return await store.list(OFFERS)
