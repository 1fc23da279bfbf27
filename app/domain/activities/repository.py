"""Activity repository - Database operations for billable activities"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...auth import CurrentUser
from ...models import Activity, Client
from ...models_invoice import InvoiceItem
from ...permissions import scope_to_owned_clients


class ActivityRepository:
    """Repository for activity database operations"""

    @staticmethod
    def get_activities(
        db: Session,
        user: CurrentUser,
        client_id: Optional[str] = None,
        flagged: Optional[bool] = None,
    ) -> list[Activity]:
        query = (
            db.query(Activity)
            .join(Client, Activity.client_id == Client.id)
            .filter(Activity.org_id == user.org_id)
        )
        query = scope_to_owned_clients(query, user)

        if client_id:
            query = query.filter(Activity.client_id == client_id)
        if flagged is not None:
            query = query.filter(Activity.is_flagged.is_(flagged))

        return query.order_by(Activity.start_time.desc()).all()

    @staticmethod
    def get_activity_by_id(db: Session, activity_id: str, org_id: str) -> Optional[Activity]:
        return (
            db.query(Activity)
            .options(joinedload(Activity.client))
            .filter(Activity.id == activity_id, Activity.org_id == org_id)
            .first()
        )

    @staticmethod
    def get_billable_activities(
        db: Session, org_id: str, client_id: str, period_start: datetime, period_end: datetime
    ) -> list[Activity]:
        """Billable activities that start and end inside the period, with their service type"""
        return (
            db.query(Activity)
            .options(joinedload(Activity.service_type))
            .filter(
                Activity.org_id == org_id,
                Activity.client_id == client_id,
                Activity.is_billable.is_(True),
                Activity.start_time >= period_start,
                Activity.end_time <= period_end,
            )
            .order_by(Activity.start_time.asc())
            .all()
        )

    @staticmethod
    def is_invoiced(db: Session, activity_id: str) -> bool:
        """True once any invoice item points at the activity"""
        return (
            db.query(InvoiceItem.id).filter(InvoiceItem.activity_id == activity_id).first()
            is not None
        )

    @staticmethod
    def create_activity(db: Session, **data) -> Activity:
        activity = Activity(**data)
        db.add(activity)
        db.flush()
        return activity

    @staticmethod
    def delete_activity(db: Session, activity: Activity) -> None:
        db.delete(activity)
        db.flush()
