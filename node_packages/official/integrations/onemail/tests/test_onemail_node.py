"""
Tests for the One Mail node package

Run with: pytest node_packages/official/integrations/onemail/tests/
"""

from pathlib import Path

import httpx
import pytest

from onemail.credentials.service import save_credential
from onemail.workflows.engine.error_handler import ErrorCategory, ErrorClassifier
from onemail.workflows.engine.nodes.loader import NodePackageLoader
from onemail.workflows.engine.errors import CredentialNotFoundError, NodeValidationError

NODE_ID = "onemail.automation"


def import_config(**overrides):
    config = {
        "resource": "automation",
        "operation": "import_subscriber",
        "uuid": "u1",
        "email": "jane@example.com",
        "contactFieldsUi": {"contactFields": []},
    }
    config.update(overrides)
    return config


@pytest.mark.asyncio
async def test_get_automations_keeps_remote_order(registry, onemail_api, api_credentials):
    options = await registry.load_options(
        NODE_ID, "get_automations", credentials=api_credentials, transport=onemail_api.transport
    )

    assert options == [{"name": "A", "value": "u1"}, {"name": "B", "value": "u2"}]
    request = onemail_api.requests[0]
    assert request.url == "https://api.onestop.bizdev.vn/api/bizfly/mail/automations"
    assert request.headers["X-BCP-API-KEY"] == "secret-key"


@pytest.mark.asyncio
async def test_get_contact_fields_builds_labels(registry, onemail_api, api_credentials):
    onemail_api.fields = [{"key": "k1", "label": "First", "type": "text"}]

    options = await registry.load_options(
        NODE_ID, "get_contact_fields", credentials=api_credentials, transport=onemail_api.transport
    )

    assert options == [{"name": "First (k1)", "value": "k1", "description": "text"}]


@pytest.mark.asyncio
async def test_options_loader_propagates_auth_failure(registry, onemail_api, api_credentials):
    onemail_api.fail_fields_with = 401

    with pytest.raises(httpx.HTTPStatusError):
        await registry.load_options(
            NODE_ID, "get_contact_fields", credentials=api_credentials, transport=onemail_api.transport
        )


@pytest.mark.asyncio
async def test_options_loader_rejects_payload_without_data(registry, api_credentials):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"items": []}))

    with pytest.raises(KeyError):
        await registry.load_options(NODE_ID, "get_automations", credentials=api_credentials, transport=transport)


@pytest.mark.asyncio
async def test_import_types_custom_fields_and_keeps_order(registry, onemail_api, api_credentials):
    config = import_config(contactFieldsUi={"contactFields": [
        {"key": "k1", "value": "x"},
        {"key": "k2", "value": "y"},
    ]})

    items = await registry.execute_node(
        NODE_ID, config, credentials=api_credentials, transport=onemail_api.transport
    )

    assert onemail_api.imports == [{
        "uuid": "u1",
        "email": "jane@example.com",
        "customFields": [
            {"key": "k1", "value": "x", "type": "number"},
            {"key": "k2", "value": "y", "type": "text"},
        ],
    }]
    assert items[0].json_data == {"success": True, "message": "Imported"}


@pytest.mark.asyncio
async def test_import_sends_empty_custom_fields_when_none_given(registry, onemail_api, api_credentials):
    await registry.execute_node(
        NODE_ID, import_config(contactFieldsUi={}), credentials=api_credentials, transport=onemail_api.transport
    )

    assert onemail_api.imports[0]["customFields"] == []


@pytest.mark.asyncio
async def test_import_fetches_field_types_on_every_submission(registry, onemail_api, api_credentials):
    config = import_config(contactFieldsUi={"contactFields": [{"key": "k1", "value": "2024-01-01"}]})

    await registry.execute_node(NODE_ID, config, credentials=api_credentials, transport=onemail_api.transport)
    onemail_api.fields = [{"key": "k1", "label": "First", "type": "date"}]
    await registry.execute_node(NODE_ID, config, credentials=api_credentials, transport=onemail_api.transport)

    assert len(onemail_api.calls("GET", "/api/bizfly/mail/fields")) == 2
    assert [body["customFields"][0]["type"] for body in onemail_api.imports] == ["number", "date"]


@pytest.mark.asyncio
async def test_field_type_failure_aborts_import(registry, onemail_api, api_credentials):
    onemail_api.fail_fields_with = 503
    config = import_config(contactFieldsUi={"contactFields": [{"key": "k1", "value": "x"}]})

    with pytest.raises(httpx.HTTPStatusError):
        await registry.execute_node(NODE_ID, config, credentials=api_credentials, transport=onemail_api.transport)

    assert onemail_api.imports == []


@pytest.mark.asyncio
async def test_import_request_carries_api_key_and_json_headers(registry, onemail_api, api_credentials):
    await registry.execute_node(
        NODE_ID, import_config(), credentials=api_credentials, transport=onemail_api.transport
    )

    request = onemail_api.calls("POST", "/api/bizfly/mail/automations/import-subscribe-manual")[0]
    assert request.url.host == "api.onestop.bizdev.vn"
    assert request.headers["X-BCP-API-KEY"] == "secret-key"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_import_uses_stored_credential(registry, onemail_api):
    credential = save_credential("Production", "oneMailApi", {"apiKey": "stored-key"})

    await registry.execute_node(
        NODE_ID, import_config(), credentials={"oneMailApi": str(credential.id)}, transport=onemail_api.transport
    )

    assert {r.headers["X-BCP-API-KEY"] for r in onemail_api.requests} == {"stored-key"}


@pytest.mark.asyncio
async def test_import_without_credential_fails_before_any_request(registry, onemail_api):
    with pytest.raises(CredentialNotFoundError):
        await registry.execute_node(NODE_ID, import_config(), transport=onemail_api.transport)

    assert onemail_api.requests == []


@pytest.mark.asyncio
async def test_missing_email_is_rejected(registry, onemail_api, api_credentials):
    with pytest.raises(NodeValidationError, match="Email is required"):
        await registry.execute_node(
            NODE_ID, import_config(email=""), credentials=api_credentials, transport=onemail_api.transport
        )

    assert onemail_api.requests == []


def test_assign_field_types_defaults_unknown_and_empty_types(registry):
    module = registry.get_node(NODE_ID).module

    processed = module.assign_field_types(
        [{"key": "a", "value": "1"}, {"key": "b", "value": "[1, 2]"}, {"key": "c"}],
        {"a": "number", "b": ""},
    )

    assert processed == [
        {"key": "a", "value": "1", "type": "number"},
        {"key": "b", "value": "[1, 2]", "type": "text"},
        {"key": "c", "value": "", "type": "text"},
    ]


@pytest.mark.asyncio
async def test_validate_lists_every_missing_field(registry):
    module = registry.get_node(NODE_ID).module

    result = await module.validate({})

    assert result == {"valid": False, "errors": ["Automation is required", "Email is required"]}


@pytest.mark.asyncio
async def test_field_without_type_is_sent_as_text(registry, onemail_api, api_credentials):
    onemail_api.fields = [{"key": "k1", "label": "First"}]
    config = import_config(contactFieldsUi={"contactFields": [{"key": "k1", "value": "x"}]})

    await registry.execute_node(NODE_ID, config, credentials=api_credentials, transport=onemail_api.transport)

    assert onemail_api.imports[0]["customFields"] == [{"key": "k1", "value": "x", "type": "text"}]


@pytest.mark.asyncio
async def test_field_without_type_still_listed(registry, onemail_api, api_credentials):
    onemail_api.fields = [{"key": "k1", "label": "First"}]

    options = await registry.load_options(
        NODE_ID, "get_contact_fields", credentials=api_credentials, transport=onemail_api.transport
    )

    assert options == [{"name": "First (k1)", "value": "k1", "description": None}]


@pytest.mark.asyncio
async def test_standalone_loader_uses_configured_base_url(onemail_api, api_credentials):
    loader = NodePackageLoader(Path(__file__).resolve().parents[1])
    loader.discover_nodes()

    options = await loader.load_options(
        NODE_ID, "get_automations", credentials=api_credentials, transport=onemail_api.transport
    )

    assert [option["value"] for option in options] == ["u1", "u2"]
    assert onemail_api.requests[0].url.host == "api.onestop.bizdev.vn"


@pytest.mark.asyncio
async def test_missing_data_key_is_classified_as_malformed_response(registry, api_credentials):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"items": []}))

    with pytest.raises(KeyError) as excinfo:
        await registry.load_options(NODE_ID, "get_automations", credentials=api_credentials, transport=transport)

    assert ErrorClassifier.classify(excinfo.value).category == ErrorCategory.MALFORMED_RESPONSE
