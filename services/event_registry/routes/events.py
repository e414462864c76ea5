"""Current event management routes"""
from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from services.event_registry.models.event import EventCreate
from services.event_registry.services.event_registry import EventRegistry
from shared.cache.dependencies import get_cache_store
from shared.cache.store import CacheStore

router = APIRouter()


def get_event_registry(store: CacheStore = Depends(get_cache_store)) -> EventRegistry:
    return EventRegistry(store)


@router.post("/set-event")
async def set_event(payload: EventCreate, registry: EventRegistry = Depends(get_event_registry)):
    """Replace the event admitted at the gates"""
    if payload.missing_fields():
        return JSONResponse(
            status_code=400,
            content={
                "error": "One or more required fields not set: capacity, event_id, event_name, or event_validity",
                "success": False,
            },
        )

    await registry.set(payload.to_event())
    return {"msg": "Current event updated", "success": True}


@router.get("/event")
async def get_event(registry: EventRegistry = Depends(get_event_registry)):
    event = await registry.current()
    if event is None:
        return JSONResponse(
            status_code=404,
            content={"error": "No current event found", "success": False},
        )
    return {"event": event.model_dump(), "success": True}


@router.delete("/delete-event")
async def delete_event(registry: EventRegistry = Depends(get_event_registry)):
    await registry.delete()
    return {"msg": "Current event deleted successfully", "success": True}
