"""Client router - per-client billing rule endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user, require_admin
from ...database import get_db
from ..billing.schemas import SaveRulesRequest
from .schemas import ClientRulesResponse, SaveClientRulesResponse
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("/{client_id}/billing-rules", response_model=ClientRulesResponse)
async def get_client_billing_rules(
    client_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
):
    """Org rules, client overrides and the effective billing context"""
    return service.get_billing_rules(client_id, user)


@router.post("/{client_id}/billing-rules", response_model=SaveClientRulesResponse)
async def save_client_billing_rules(
    client_id: str,
    body: SaveRulesRequest,
    user: CurrentUser = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    """Save client-specific billing rule overrides (admin only)"""
    return service.save_billing_rules(client_id, user, body.rules)
