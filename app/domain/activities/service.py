"""Activity service - logging and removing billable work"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...database import transaction
from ...exceptions import ActivityLockedError, NotFoundError, ValidationError
from ...models import Activity
from ...permissions import ensure_client_access
from ..billing.rates import round_half_up
from ..billing.repository import BillingRepository
from ..clients.repository import ClientRepository
from .repository import ActivityRepository
from .schemas import ActivityCreate

logger = logging.getLogger(__name__)


class ActivityService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ActivityRepository()
        self.clients = ClientRepository()
        self.billing = BillingRepository()

    def get_activities(
        self, user: CurrentUser, client_id: Optional[str] = None, flagged: Optional[bool] = None
    ) -> list[Activity]:
        return self.repo.get_activities(self.db, user, client_id, flagged)

    def get_activity(self, activity_id: str, user: CurrentUser) -> Activity:
        activity = self.repo.get_activity_by_id(self.db, activity_id, user.org_id)
        if not activity:
            raise NotFoundError("Activity not found")
        ensure_client_access(user, activity.client, "You are not allowed to access this activity.")
        return activity

    def create_activity(self, data: ActivityCreate, user: CurrentUser) -> Activity:
        """Log a manual activity. Duration is derived from the time range."""
        client = self.clients.get_client_by_id(self.db, data.clientId, user.org_id)
        if not client:
            raise NotFoundError("Client not found")
        ensure_client_access(user, client)

        if data.serviceTypeId:
            service_type = self.billing.get_service_type(self.db, data.serviceTypeId, user.org_id)
            if not service_type or not service_type.is_active:
                raise ValidationError.for_field("serviceTypeId", "Unknown or inactive service type")

        duration = round_half_up((data.endTime - data.startTime).total_seconds() / 60)

        with transaction(self.db):
            activity = self.repo.create_activity(
                self.db,
                org_id=user.org_id,
                client_id=client.id,
                cm_id=user.user_id,
                source=data.source,
                start_time=data.startTime,
                end_time=data.endTime,
                duration=duration,
                billing_code=data.billingCode,
                is_billable=data.isBillable,
                is_flagged=False,
                notes=data.notes or "",
                service_type_id=data.serviceTypeId,
            )

        logger.info(f"📝 Activity {activity.id} logged for client {client.id} ({duration} min)")
        return activity

    def delete_activity(self, activity_id: str, user: CurrentUser) -> dict:
        """Delete an activity unless an invoice already bills it"""
        activity = self.get_activity(activity_id, user)

        if self.repo.is_invoiced(self.db, activity.id):
            raise ActivityLockedError("Activity is already on an invoice and cannot be deleted")

        with transaction(self.db):
            self.repo.delete_activity(self.db, activity)

        logger.info(f"🗑️ Activity {activity_id} deleted by {user.user_id}")
        return {"message": "Activity deleted"}
