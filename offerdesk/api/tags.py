from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from offerdesk.auth import ALL_ROLES, authorize
from offerdesk.deps import get_tag_search
from offerdesk.schemas import TagSearchIn
from offerdesk.services.tag_search import COMPLETED, TagSearchTaskManager

router = APIRouter(prefix="/tags", tags=["tag-search"])


@router.post("/search", status_code=202)
async def submit_search(
    payload: TagSearchIn,
    role=Depends(authorize(ALL_ROLES)),
    tag_search: TagSearchTaskManager = Depends(get_tag_search),
):
    task_id = await tag_search.submit(payload.tags, payload.substring, payload.caseInsensitive)
    return {"taskId": task_id}


@router.get("/search/{task_id}")
async def poll_search(
    task_id: str,
    role=Depends(authorize(ALL_ROLES)),
    tag_search: TagSearchTaskManager = Depends(get_tag_search),
):
    task = await tag_search.poll(task_id)
    return JSONResponse(task.to_dict(), status_code=200 if task.status == COMPLETED else 202)
