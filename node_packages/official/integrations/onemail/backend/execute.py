"""
One Mail Node Package

Imports a subscriber into a One Mail automation. The import request itself
is declared in manifest.json; this module provides the dropdown loaders and
the preSend hook that types custom fields before the request is sent.
"""

from typing import Any, Dict, List
import logging

from onemail.workflows.engine.context import NodeContext
from onemail.workflows.engine.routing import RequestOptions

logger = logging.getLogger(__name__)

CREDENTIAL_TYPE = "oneMailApi"
AUTOMATIONS_PATH = "/api/bizfly/mail/automations"
FIELDS_PATH = "/api/bizfly/mail/fields"
DEFAULT_FIELD_TYPE = "text"


async def _get(context: NodeContext, path: str) -> Dict[str, Any]:
    # Credentials are read on every call; a rotated key takes effect immediately
    credentials = await context.get_credentials(CREDENTIAL_TYPE)
    return await context.helpers.request(
        "GET",
        path,
        headers={"X-BCP-API-KEY": f"{credentials['api_key']}"},
    )


async def get_automations(context: NodeContext) -> List[Dict[str, str]]:
    """
    Options for the "Automation Name or ID" dropdown, in the order the API returns them.
    """
    response = await _get(context, AUTOMATIONS_PATH)
    return [
        {"name": automation["name"], "value": automation["uuid"]}
        for automation in response["data"]
    ]


async def get_contact_fields(context: NodeContext) -> List[Dict[str, str]]:
    """
    Options for the "Contact Field Name or ID" dropdown: "Label (key)", with the type as description.
    """
    response = await _get(context, FIELDS_PATH)
    return [
        {
            "name": f"{field['label']} ({field['key']})",
            "value": field["key"],
            "description": field.get("type"),
        }
        for field in response["data"]
    ]


async def fetch_field_types(context: NodeContext) -> Dict[str, str]:
    """Current key -> type map of the account's contact fields."""
    response = await _get(context, FIELDS_PATH)
    return {field["key"]: field.get("type") for field in response["data"]}


def assign_field_types(entries: List[Dict[str, Any]], field_types: Dict[str, str]) -> List[Dict[str, Any]]:
    """
    Attach a type to every entry. Keys the API does not know are sent as text;
    no entry is dropped and order is kept.
    """
    processed = []
    for entry in entries:
        key = entry.get("key")
        field_type = field_types.get(key)
        if not field_type:
            logger.warning(f"Contact field '{key}' has no known type, sending it as {DEFAULT_FIELD_TYPE}")
            field_type = DEFAULT_FIELD_TYPE
        processed.append({
            "key": key,
            "value": entry.get("value", ""),
            "type": field_type,
        })
    return processed


async def enrich_custom_fields(context: NodeContext, request_options: RequestOptions) -> RequestOptions:
    """
    preSend hook: replace body.customFields with the typed entries.

    Field types are fetched on every submission so the request always matches
    the fields as they are defined right now. If that fetch fails the error
    propagates and the import request is never sent.
    """
    entries = context.get_node_parameter("contactFieldsUi.contactFields", []) or []
    field_types = await fetch_field_types(context)

    request_options.body["customFields"] = assign_field_types(entries, field_types)
    logger.debug(f"Typed {len(entries)} custom field(s) for import")

    return request_options


async def validate(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate configuration"""
    errors = []
    if not config.get("uuid"):
        errors.append("Automation is required")
    if not config.get("email"):
        errors.append("Email is required")
    return {"valid": len(errors) == 0, "errors": errors}
