"""定时发布 API."""

from typing import Any

from fastapi import APIRouter, Depends

from newsdesk.api.deps import get_store, require_admin
from newsdesk.core.store import ArticleStore
from newsdesk.core.sweep import run_sweep

router = APIRouter(
    prefix="/sweep",
    tags=["sweep"],
    dependencies=[Depends(require_admin)],
)


@router.post("/publish-scheduled")
async def publish_scheduled(
    store: ArticleStore = Depends(get_store),
) -> dict[str, Any]:
    """立即发布所有已到计划时间的文章."""
    result = await run_sweep(store)
    return result.to_dict()
