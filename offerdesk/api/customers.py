from typing import Optional

from fastapi import APIRouter, Depends

from offerdesk.auth import ALL_ROLES, EDITORS, MANAGERS, authorize
from offerdesk.core.errors import NotFoundError
from offerdesk.core.models_core import CUSTOMERS
from offerdesk.deps import get_store
from offerdesk.schemas import CustomerIn
from offerdesk.store import FilterSpec, IEquals, build_filters
from offerdesk.store.base import RecordStore, utc_now_iso

router = APIRouter(prefix="/customers", tags=["customers"])

SEED_CUSTOMERS = [
    {"name": f"Test Customer {i}", "email": f"test{i}@example.com",
     "address": f"Test Street {i}, Sampletown", "contact": contact}
    for i, contact in enumerate(["123456789", "987654321", "555555555", "444444444", "333333333"], start=1)
]


async def _resolve(store: RecordStore, id_or_name: str) -> dict:
    """Match by id first, then by case-insensitive name."""
    try:
        return await store.get(CUSTOMERS, id_or_name)
    except NotFoundError:
        pass
    found = await store.find(CUSTOMERS, FilterSpec([IEquals("name", id_or_name)]))
    if not found:
        raise NotFoundError("Customer not found")
    return found


@router.get("")
async def list_customers(
    name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    contact: Optional[str] = None,
    role=Depends(authorize(ALL_ROLES)),
    store: RecordStore = Depends(get_store),
):
    filters = build_filters(CUSTOMERS, {"name": name, "email": email, "address": address, "contact": contact})
    return await store.list(CUSTOMERS, filters)


@router.post("", status_code=201)
async def create_customer(
    payload: CustomerIn,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    return await store.create(CUSTOMERS, payload.model_dump())


@router.put("/{id_or_name}")
async def update_customer(
    id_or_name: str,
    payload: CustomerIn,
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    customer = await _resolve(store, id_or_name)
    # empty fields keep their previous value
    return await store.update(CUSTOMERS, customer["id"], payload.model_dump())


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    role=Depends(authorize(MANAGERS)),
    store: RecordStore = Depends(get_store),
):
    # dependent offers disappear with the next sweep
    return await store.delete(CUSTOMERS, customer_id)


@router.post("/seed", status_code=201)
async def seed_customers(
    role=Depends(authorize(EDITORS)),
    store: RecordStore = Depends(get_store),
):
    """Replace all customers with five fixed test customers (ids 1..5)."""
    now = utc_now_iso()
    rows = [dict(c, id=str(i), createdAt=now, updatedAt=now) for i, c in enumerate(SEED_CUSTOMERS, start=1)]
    return await store.reset(CUSTOMERS, rows)
