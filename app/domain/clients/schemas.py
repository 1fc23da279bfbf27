"""Client domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel


class EffectiveRates(BaseModel):
    """Billing context actually applied to this client's activities"""

    hourlyRate: float
    minDuration: float
    rounding: str


class ClientRulesResponse(BaseModel):
    ok: bool = True
    orgRules: dict
    clientRules: dict
    effective: EffectiveRates


class SaveClientRulesResponse(BaseModel):
    ok: bool = True
    clientRules: dict


class ClientSummary(BaseModel):
    id: str
    name: str
    primaryCMId: Optional[str] = None

    @classmethod
    def from_model(cls, client) -> "ClientSummary":
        return cls(id=client.id, name=client.name, primaryCMId=client.primary_cm_id)
