from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.webhook_event import WebhookEvent


class WebhookEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: UUID) -> WebhookEvent | None:
        return self.db.query(WebhookEvent).filter(WebhookEvent.id == event_id).first()

    def get_by_external_id(self, external_event_id: str) -> list[WebhookEvent]:
        return (
            self.db.query(WebhookEvent)
            .filter(WebhookEvent.event_id == external_event_id)
            .order_by(WebhookEvent.created_at)
            .all()
        )

    def create(
        self,
        *,
        event_type: str,
        payload: dict[str, Any],
        event_id: str | None = None,
        processor_id: UUID | None = None,
        transaction_id: UUID | None = None,
        payment_id: UUID | None = None,
        processed_at: datetime | None = None,
        process_error: str | None = None,
    ) -> WebhookEvent:
        event = WebhookEvent(
            processor_id=processor_id,
            event_type=event_type,
            event_id=event_id,
            payload=payload,
            transaction_id=transaction_id,
            payment_id=payment_id,
            processed_at=processed_at,
            process_error=process_error,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def update(self, event: WebhookEvent, **fields: Any) -> WebhookEvent:
        for key, value in fields.items():
            setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)
        return event
