import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import get_current_role, get_store, require_principal
from app.models.user import UserRole
from app.schemas.class_section import ClassSectionIn, ClassSectionOut
from app.services.store import ScheduleStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=list[ClassSectionOut])
async def list_classes(
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(get_current_role),
) -> list[ClassSectionOut]:
    return await store.get_classes()


@router.put("/", response_model=ClassSectionOut)
async def upsert_class(
    payload: ClassSectionIn,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> ClassSectionOut:
    section = await store.save_class(payload)
    logger.info("Saved class %s", section.id)
    return section


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: str,
    store: ScheduleStore = Depends(get_store),
    _: UserRole = Depends(require_principal),
) -> None:
    await store.delete_class(class_id)
    logger.info("Deleted class %s with its schedule entries", class_id)
