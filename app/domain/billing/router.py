"""Billing router - FastAPI endpoints for rate rules and service types"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user, require_admin
from ...database import get_db
from .schemas import (
    RulesResponse,
    SaveRulesRequest,
    ServiceTypeListResponse,
    ServiceTypeResponse,
    ServiceTypeSyncRequest,
)
from .service import BillingRulesService, ServiceTypeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])
service_types_router = APIRouter(prefix="/service-types", tags=["Service Types"])


def get_rules_service(db: Session = Depends(get_db)) -> BillingRulesService:
    """Dependency injection for BillingRulesService"""
    return BillingRulesService(db)


def get_service_type_service(db: Session = Depends(get_db)) -> ServiceTypeService:
    """Dependency injection for ServiceTypeService"""
    return ServiceTypeService(db)


# ============================================================================
# ORGANIZATION RATE RULES
# ============================================================================


@router.get("/rules", response_model=RulesResponse)
async def get_billing_rules(
    user: CurrentUser = Depends(get_current_user),
    service: BillingRulesService = Depends(get_rules_service),
):
    """Organization-wide default billing rules"""
    return service.get_org_rules(user)


@router.post("/rules", response_model=RulesResponse)
async def save_billing_rules(
    body: SaveRulesRequest,
    user: CurrentUser = Depends(require_admin),
    service: BillingRulesService = Depends(get_rules_service),
):
    """Replace the organization-wide billing rules (admin only)"""
    return service.save_org_rules(user, body.rules)


# ============================================================================
# SERVICE TYPES
# ============================================================================


@service_types_router.get("", response_model=ServiceTypeListResponse)
async def list_service_types(
    user: CurrentUser = Depends(get_current_user),
    service: ServiceTypeService = Depends(get_service_type_service),
):
    """Active service types for the current org"""
    services = service.list_active(user)
    return {"services": [ServiceTypeResponse.from_model(s) for s in services]}


@service_types_router.post("/bulk-sync", response_model=ServiceTypeListResponse)
async def bulk_sync_service_types(
    body: ServiceTypeSyncRequest,
    user: CurrentUser = Depends(require_admin),
    service: ServiceTypeService = Depends(get_service_type_service),
):
    """Upsert service types from the editor and deactivate the ones removed (admin only)"""
    services = service.bulk_sync(user, body.services)
    return {"services": [ServiceTypeResponse.from_model(s) for s in services]}
