"""Billing domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .rates import ROUNDING_15M, ROUNDING_6M, ROUNDING_NONE


class RateRules(BaseModel):
    """
    Rate rule blob stored on an organization (defaults) or a client (overrides).

    Every field is optional; missing or zero values fall through to the next
    layer at resolution time. Unknown keys are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    hourlyRate: Optional[float] = None
    minDuration: Optional[float] = None
    rounding: Optional[str] = None  # "none" | "6m" | "15m"

    @field_validator("hourlyRate", "minDuration")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("must be zero or greater")
        return v

    @field_validator("rounding")
    @classmethod
    def validate_rounding(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        allowed = {ROUNDING_NONE, ROUNDING_6M, ROUNDING_15M}
        if v not in allowed:
            raise ValueError("rounding must be 'none', '6m' or '15m'")
        return v

    def to_json(self) -> dict:
        return self.model_dump(exclude_none=True)


class SaveRulesRequest(BaseModel):
    rules: RateRules


class RulesResponse(BaseModel):
    ok: bool = True
    rules: dict


class ServiceTypeSyncItem(BaseModel):
    """One row of the service type editor. Rows missing name, rateType or rateAmount are skipped."""

    id: Optional[str] = None
    name: Optional[str] = None
    billingCode: Optional[str] = None
    rateType: Optional[str] = None
    rateAmount: Optional[float] = None


class ServiceTypeSyncRequest(BaseModel):
    services: list[ServiceTypeSyncItem]


class ServiceTypeResponse(BaseModel):
    id: str
    name: str
    billingCode: Optional[str] = None
    rateType: str
    rateAmount: float
    isActive: bool

    @classmethod
    def from_model(cls, service_type) -> "ServiceTypeResponse":
        return cls(
            id=service_type.id,
            name=service_type.name,
            billingCode=service_type.billing_code,
            rateType=service_type.rate_type,
            rateAmount=service_type.rate_amount,
            isActive=service_type.is_active,
        )


class ServiceTypeListResponse(BaseModel):
    services: list[ServiceTypeResponse]
