from pydantic import BaseModel, Field
from typing import List, Optional

from .models import IdentityEvent

class IdentityEventIn(BaseModel):
    identity_hash: str = Field(min_length=1)
    sender: str = Field(min_length=1)
    attestation: str = Field(min_length=1)

    def to_event(self) -> IdentityEvent:
        return IdentityEvent(self.identity_hash, self.sender, self.attestation)

class IdentityEventBatch(BaseModel):
    ledger_endpoint: Optional[str] = None
    events: List[IdentityEventIn] = Field(default_factory=list)
