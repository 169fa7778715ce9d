"""Payment processor admin API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from shulpay.core.auth import get_shul_admin
from shulpay.core.database import get_db
from shulpay.models.processor import Processor
from shulpay.schemas.processor import ProcessorCreate, ProcessorResponse, ProcessorUpdate
from shulpay.services.processor_registry import ProcessorRegistry

router = APIRouter()


@router.get(
    "/",
    response_model=list[ProcessorResponse],
    summary="List processors",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Permission denied"}},
)
async def list_processors(
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> list[Processor]:
    return ProcessorRegistry(db).list(shul_id)


@router.post(
    "/",
    response_model=ProcessorResponse,
    status_code=201,
    summary="Add processor",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Permission denied"}},
)
async def add_processor(
    data: ProcessorCreate,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> Processor:
    """Add a processor. Credentials are stored but never returned."""
    return ProcessorRegistry(db).add(shul_id, data)


@router.patch(
    "/{processor_id}",
    response_model=ProcessorResponse,
    summary="Update processor",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Permission denied"},
        404: {"description": "Processor not found"},
    },
)
async def update_processor(
    processor_id: UUID,
    data: ProcessorUpdate,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> Processor:
    return ProcessorRegistry(db).update(shul_id, processor_id, data)


@router.delete(
    "/{processor_id}",
    status_code=204,
    summary="Remove processor",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Permission denied"},
        404: {"description": "Processor not found"},
        409: {"description": "Processor is still in use"},
    },
)
async def remove_processor(
    processor_id: UUID,
    shul_id: UUID = Depends(get_shul_admin),
    db: Session = Depends(get_db),
) -> Response:
    ProcessorRegistry(db).remove(shul_id, processor_id)
    return Response(status_code=204)
