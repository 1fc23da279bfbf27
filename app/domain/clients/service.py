"""Client service - per-client billing rule overrides"""

import logging

from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...database import transaction
from ...exceptions import NotFoundError
from ...models import Client
from ...permissions import ensure_client_access
from ..billing.rates import resolve_billing_context
from ..billing.schemas import RateRules
from .repository import ClientRepository

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client billing configuration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_client(self, client_id: str, user: CurrentUser) -> Client:
        """Get a client in the caller's org (404 outside the tenant)"""
        client = self.repo.get_client_by_id(self.db, client_id, user.org_id)
        if not client:
            raise NotFoundError("Client not found")
        return client

    def get_billing_rules(self, client_id: str, user: CurrentUser) -> dict:
        """Org defaults, client overrides and the resolved result"""
        client = self.get_client(client_id, user)
        ensure_client_access(
            user, client, "You are not allowed to access this client's billing rules."
        )

        org = self.repo.get_organization(self.db, user.org_id)
        org_rules = (org.billing_rules_json if org else None) or {}
        client_rules = client.billing_rules_json or {}

        return {
            "ok": True,
            "orgRules": org_rules,
            "clientRules": client_rules,
            "effective": resolve_billing_context(client_rules, org_rules).to_dict(),
        }

    def save_billing_rules(self, client_id: str, user: CurrentUser, rules: RateRules) -> dict:
        with transaction(self.db):
            client = self.get_client(client_id, user)
            self.repo.update_billing_rules(self.db, client, rules.to_json())

        logger.info(f"💾 Client {client_id} billing rules updated by {user.user_id}")
        return {"ok": True, "clientRules": client.billing_rules_json}
