"""Payment schedule admin API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shulpay.core.auth import get_shul_admin
from shulpay.core.database import get_db
from shulpay.models.payment_schedule import PaymentSchedule
from shulpay.schemas.schedule import ScheduleCreate, ScheduleResponse, ScheduleStatusUpdate
from shulpay.services.schedule_service import ScheduleService

router = APIRouter()


@router.get(
    "/",
    response_model=list[ScheduleResponse],
    summary="List schedules",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Permission denied"}},
)
async def list_schedules(
    person_id: UUID | None = None,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> list[PaymentSchedule]:
    return ScheduleService(db).list(shul_id, person_id=person_id)


@router.post(
    "/",
    response_model=ScheduleResponse,
    status_code=201,
    summary="Create schedule",
    responses={
        400: {"description": "Invalid schedule"},
        401: {"description": "Unauthorized"},
        403: {"description": "Permission denied"},
        404: {"description": "Processor or person not found"},
    },
)
async def create_schedule(
    data: ScheduleCreate,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> PaymentSchedule:
    return ScheduleService(db).create(shul_id, data)


@router.patch(
    "/{schedule_id}/status",
    response_model=ScheduleResponse,
    summary="Change schedule status",
    responses={
        400: {"description": "Status change not allowed"},
        401: {"description": "Unauthorized"},
        403: {"description": "Permission denied"},
        404: {"description": "Schedule not found"},
    },
)
async def set_schedule_status(
    schedule_id: UUID,
    data: ScheduleStatusUpdate,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> PaymentSchedule:
    return ScheduleService(db).set_status(shul_id, schedule_id, data.status)
