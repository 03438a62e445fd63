"""
Credential models for in-memory credential storage.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """A stored credential. `data` holds the secret fields for its type."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = Field(max_length=255)
    type: str = Field(max_length=100)  # e.g. 'oneMailApi'
    data: Dict[str, Any] = Field(default_factory=dict, repr=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Optional metadata
    description: Optional[str] = None
    last_used_at: Optional[datetime] = None


class OneMailApiCredential(BaseModel):
    """Data of a `oneMailApi` credential, sent as the X-BCP-API-KEY header."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(alias="apiKey", min_length=1, repr=False)


# Credential type name -> schema its data must satisfy
CREDENTIAL_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "oneMailApi": OneMailApiCredential,
}
