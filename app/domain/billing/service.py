"""Billing service - org rate rules and service type configuration"""

import logging

from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...database import transaction
from ...exceptions import NotFoundError
from ...models import Organization, ServiceType
from .invoice_builder import RATE_TYPE_FLAT, RATE_TYPE_HOURLY
from .repository import BillingRepository
from .schemas import RateRules, ServiceTypeSyncItem

logger = logging.getLogger(__name__)


def normalize_rate_type(rate_type: str) -> str:
    """Anything that is not 'flat' is stored as hourly"""
    return RATE_TYPE_FLAT if rate_type == RATE_TYPE_FLAT else RATE_TYPE_HOURLY


class BillingRulesService:
    """Organization-wide default rate rules"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def _get_org(self, user: CurrentUser) -> Organization:
        org = self.repo.get_organization(self.db, user.org_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    def get_org_rules(self, user: CurrentUser) -> dict:
        org = self._get_org(user)
        return {"ok": True, "rules": org.billing_rules_json or {}}

    def save_org_rules(self, user: CurrentUser, rules: RateRules) -> dict:
        with transaction(self.db):
            org = self._get_org(user)
            self.repo.update_org_rules(self.db, org, rules.to_json())

        logger.info(f"💾 Org {user.org_id} billing rules updated by {user.user_id}")
        return {"ok": True, "rules": org.billing_rules_json}


class ServiceTypeService:
    """Named billable offerings (hourly or flat)"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def list_active(self, user: CurrentUser) -> list[ServiceType]:
        return self.repo.get_service_types(self.db, user.org_id, active_only=True)

    def bulk_sync(self, user: CurrentUser, items: list[ServiceTypeSyncItem]) -> list[ServiceType]:
        """
        Make the org's active service types match the editor payload.

        Rows with an id update that service type, rows without one create a
        new one. Org service types not present in the payload are deactivated
        (never deleted, old invoice items still point at them).
        """
        with transaction(self.db):
            existing = self.repo.get_service_types(self.db, user.org_id, active_only=False)
            existing_by_id = {svc.id: svc for svc in existing}
            kept_ids = set()
            created = 0

            for item in items:
                if not item.name or not item.name.strip() or not item.rateType or item.rateAmount is None:
                    continue

                data = {
                    "name": item.name.strip(),
                    "billing_code": (item.billingCode or "").strip() or None,
                    "rate_type": normalize_rate_type(item.rateType),
                    "rate_amount": item.rateAmount,
                    "is_active": True,
                }

                if item.id:
                    service_type = existing_by_id.get(item.id)
                    if not service_type:
                        raise NotFoundError(f"Service type {item.id} not found")
                    self.repo.update_service_type(self.db, service_type, **data)
                    kept_ids.add(item.id)
                else:
                    self.repo.create_service_type(self.db, user.org_id, **data)
                    created += 1

            deactivated = 0
            for service_type in existing:
                if service_type.id not in kept_ids and service_type.is_active:
                    self.repo.update_service_type(self.db, service_type, is_active=False)
                    deactivated += 1

        logger.info(
            f"✅ Service types synced for org {user.org_id}: "
            f"{len(kept_ids)} updated, {created} created, {deactivated} deactivated"
        )
        return self.repo.get_service_types(self.db, user.org_id, active_only=True)
