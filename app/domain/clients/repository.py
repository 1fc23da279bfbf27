"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client, Organization


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_client_by_id(db: Session, client_id: str, org_id: str) -> Optional[Client]:
        """Get a client within the caller's organization"""
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.org_id == org_id)
            .first()
        )

    @staticmethod
    def get_organization(db: Session, org_id: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == org_id).first()

    @staticmethod
    def update_billing_rules(db: Session, client: Client, rules: dict) -> Client:
        """Replace the client's rate rule overrides"""
        client.billing_rules_json = dict(rules)
        db.flush()
        return client
