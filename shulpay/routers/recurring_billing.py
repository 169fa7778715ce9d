from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shulpay.core.database import get_db
from shulpay.schemas.schedule import RecurringBillingResult
from shulpay.services.recurring_billing import RecurringBillingService

router = APIRouter()


@router.post(
    "/process-recurring-billing",
    response_model=RecurringBillingResult,
    summary="Run recurring billing",
)
def process_recurring_billing(db: Session = Depends(get_db)) -> RecurringBillingResult:
    """Invoice and charge every active schedule that is due today.

    Sync route: the run makes blocking gateway calls and must stay off the
    event loop.
    """
    return RecurringBillingService(db).run()
