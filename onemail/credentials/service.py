"""
Credential service functions for storing and resolving credentials.

Credentials live in process memory only; nothing is written to disk.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from onemail.config import settings
from onemail.credentials.models import CREDENTIAL_SCHEMAS, Credential
from onemail.workflows.engine.errors import CredentialNotFoundError

logger = logging.getLogger(__name__)

_credentials: Dict[uuid.UUID, Credential] = {}


def save_credential(
    name: str, credential_type: str, data: Dict[str, Any], description: Optional[str] = None
) -> Credential:
    """Store a credential and return it. Data is validated against its type schema."""
    _validate_data(credential_type, data)
    credential = Credential(name=name, type=credential_type, data=dict(data), description=description)
    _credentials[credential.id] = credential
    logger.debug(f"Stored credential {credential.id} ({credential_type})")
    return credential


def delete_credential(cred_id: str) -> bool:
    try:
        cred_uuid = uuid.UUID(cred_id)
    except ValueError:
        return False
    return _credentials.pop(cred_uuid, None) is not None


def clear_credentials() -> None:
    _credentials.clear()


def list_credentials(credential_type: Optional[str] = None) -> List[Credential]:
    return [
        c for c in _credentials.values()
        if credential_type is None or c.type == credential_type
    ]


def get_credential_by_id(cred_id: str) -> Optional[Credential]:
    """
    Look up a credential by ID. Returns None for unknown or malformed IDs.
    """
    try:
        cred_uuid = uuid.UUID(cred_id)
    except ValueError:
        return None
    return _credentials.get(cred_uuid)


def _credential_from_settings(credential_type: str) -> Optional[Dict[str, Any]]:
    """Environment fallback so the CLI works without a stored credential."""
    if credential_type == "oneMailApi" and settings.ONEMAIL_API_KEY:
        return {"api_key": settings.ONEMAIL_API_KEY.get_secret_value()}
    return None


def _validate_data(credential_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    schema = CREDENTIAL_SCHEMAS.get(credential_type)
    if schema is None:
        return dict(data)
    try:
        return schema.model_validate(data).model_dump()
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise CredentialNotFoundError(credential_type, f"invalid data ({fields})") from None


async def get_active_credential(
    credential_type: str, reference: Union[str, Dict[str, Any], None] = None
) -> Dict[str, Any]:
    """
    Resolve the data of a credential of `credential_type`.

    `reference` may be the data itself, a stored credential ID, or None to use
    the first stored credential of that type and then the environment.
    Resolution happens on every call; nothing is cached.
    """
    data: Optional[Dict[str, Any]] = None

    if isinstance(reference, dict):
        data = reference
    elif isinstance(reference, str):
        credential = get_credential_by_id(reference)
        if credential is None:
            raise CredentialNotFoundError(credential_type, f"unknown credential id {reference}")
        if credential.type != credential_type:
            raise CredentialNotFoundError(
                credential_type, f"credential {reference} has type '{credential.type}'"
            )
        credential.last_used_at = datetime.utcnow()
        data = credential.data
    else:
        stored = list_credentials(credential_type)
        if stored:
            stored[0].last_used_at = datetime.utcnow()
            data = stored[0].data
        else:
            data = _credential_from_settings(credential_type)

    if data is None:
        raise CredentialNotFoundError(credential_type)

    return _validate_data(credential_type, data)
