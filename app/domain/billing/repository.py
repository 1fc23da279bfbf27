"""Billing repository - Database operations for rate rules and service types"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Organization, ServiceType


class BillingRepository:
    """Repository for billing configuration. Writes are flushed, the service commits."""

    @staticmethod
    def get_organization(db: Session, org_id: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == org_id).first()

    @staticmethod
    def update_org_rules(db: Session, org: Organization, rules: dict) -> Organization:
        org.billing_rules_json = dict(rules)
        db.flush()
        return org

    @staticmethod
    def get_service_types(db: Session, org_id: str, active_only: bool = True) -> list[ServiceType]:
        """Service types for an org, sorted by name"""
        query = db.query(ServiceType).filter(ServiceType.org_id == org_id)
        if active_only:
            query = query.filter(ServiceType.is_active.is_(True))
        return query.order_by(ServiceType.name.asc()).all()

    @staticmethod
    def get_service_type(db: Session, service_type_id: str, org_id: str) -> Optional[ServiceType]:
        return (
            db.query(ServiceType)
            .filter(ServiceType.id == service_type_id, ServiceType.org_id == org_id)
            .first()
        )

    @staticmethod
    def create_service_type(db: Session, org_id: str, **data) -> ServiceType:
        service_type = ServiceType(org_id=org_id, **data)
        db.add(service_type)
        db.flush()
        return service_type

    @staticmethod
    def update_service_type(db: Session, service_type: ServiceType, **updates) -> ServiceType:
        for key, value in updates.items():
            if hasattr(service_type, key):
                setattr(service_type, key, value)
        db.flush()
        return service_type
