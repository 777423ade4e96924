"""
Tests for vendor adapters and the adapter registry.
"""
import base64
import json

import httpx
import pytest

from corebank.schemas.integration import IntegrationConfigSchema
from corebank.services.adapter_registry import AdapterRegistry, adapter_registry
from corebank.services.core_banking_adapters import (
    FinastraAdapter,
    MambuAdapter,
    TemenosAdapter,
    ThoughtMachineAdapter,
    build_url,
    decode_body,
    http_method_for,
)


def make_config(**overrides) -> IntegrationConfigSchema:
    data = {
        "id": "cfg-1",
        "core_type": "temenos",
        "api_endpoint": "https://core.example.com/api",
        "api_version": "v1",
        "auth_type": "basic",
        "auth_config": {"username": "user", "password": "pass"},
    }
    data.update(overrides)
    return IntegrationConfigSchema.model_validate(data)


class TestHttpMethod:
    """Operation name -> HTTP verb."""

    @pytest.mark.parametrize(
        "operation,method",
        [
            ("get_account_balance", "GET"),
            ("pull_transactions", "GET"),
            ("fetchCustomer", "GET"),
            ("delete_standing_order", "DELETE"),
            ("remove_beneficiary", "DELETE"),
            ("update_customer", "PATCH"),
            ("patch_limits", "PATCH"),
            ("create_payment", "POST"),
            ("transfer", "POST"),
            ("accounts/get_balance", "GET"),
            ("get_accounts/create", "POST"),
        ],
    )
    def test_method_from_operation_name(self, operation, method):
        """Test that the verb follows the last segment's prefix."""
        assert http_method_for(operation) == method


class TestBuildUrl:
    """Endpoint URL construction."""

    def test_joins_endpoint_version_and_operation(self):
        """Test the basic {endpoint}/{version}/{operation} shape."""
        assert build_url(make_config(), "create_payment") == "https://core.example.com/api/v1/create_payment"

    def test_no_doubled_slashes(self):
        """Test that stray slashes on any part are collapsed."""
        config = make_config(api_endpoint="https://core.example.com/api/", api_version="/v2/")
        assert build_url(config, "/accounts/get_balance") == "https://core.example.com/api/v2/accounts/get_balance"

    def test_empty_version_is_skipped(self):
        """Test that a missing version does not produce an empty segment."""
        config = make_config(api_version=None)
        assert build_url(config, "create_payment") == "https://core.example.com/api/create_payment"


class TestBuildRequest:
    """Headers, auth and body envelopes."""

    def test_temenos_envelope_and_basic_auth(self):
        """Test the temenos body envelope and basic credentials."""
        request = TemenosAdapter().build_request("create_payment", {"Amount": 5050}, make_config())

        expected = base64.b64encode(b"user:pass").decode("ascii")
        assert request.method == "POST"
        assert request.body == {"body": {"Amount": 5050}}
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"

    def test_finastra_json_api_envelope(self):
        """Test the JSON:API data.attributes envelope and media type."""
        request = FinastraAdapter().build_request("create_payment", {"amount": 1}, make_config(core_type="finastra"))

        assert request.body == {"data": {"attributes": {"amount": 1}}}
        assert request.headers["Content-Type"] == "application/vnd.api+json"
        assert request.headers["Accept"] == "application/vnd.api+json"

    def test_mambu_flat_payload_and_accept_header(self):
        """Test that mambu sends a flat payload with its versioned accept header."""
        config = make_config(core_type="mambu", auth_type="api_key", auth_config={"api_key": "k-123"})
        request = MambuAdapter().build_request("create_deposit", {"amount": 1}, config)

        assert request.body == {"amount": 1}
        assert request.headers["Accept"] == "application/vnd.mambu.v2+json"
        assert request.headers["apiKey"] == "k-123"

    def test_thought_machine_request_id_matches_header(self):
        """Test that the generated request_id is in both the body and X-Request-ID."""
        request = ThoughtMachineAdapter().build_request("create_posting", {"amount": 1}, make_config())

        assert request.body["amount"] == 1
        assert request.body["request_id"] == request.headers["X-Request-ID"]

    def test_request_ids_are_unique_per_exchange(self):
        """Test that each built request gets a fresh request id."""
        adapter = ThoughtMachineAdapter()
        first = adapter.build_request("create_posting", {}, make_config())
        second = adapter.build_request("create_posting", {}, make_config())
        assert first.body["request_id"] != second.body["request_id"]

    def test_api_key_default_and_custom_header(self):
        """Test the default API key header and a configured override."""
        adapter = TemenosAdapter()
        default = adapter.build_request("create_payment", {}, make_config(auth_type="api_key", auth_config={"api_key": "k"}))
        custom = adapter.build_request(
            "create_payment",
            {},
            make_config(auth_type="api_key", auth_config={"api_key": "k", "header_name": "X-Vendor-Key"}),
        )

        assert default.headers["X-API-Key"] == "k"
        assert custom.headers["X-Vendor-Key"] == "k"
        assert "X-API-Key" not in custom.headers

    def test_oauth2_bearer_token(self):
        """Test that oauth2 configs send a bearer token."""
        config = make_config(auth_type="oauth2", auth_config={"access_token": "tok"})
        request = FinastraAdapter().build_request("create_payment", {}, config)
        assert request.headers["Authorization"] == "Bearer tok"

    @pytest.mark.parametrize("operation", ["get_account_balance", "delete_standing_order"])
    def test_get_and_delete_have_no_body(self, operation):
        """Test that bodyless verbs never carry a payload."""
        request = TemenosAdapter().build_request(operation, {"accountId": "A1"}, make_config())
        assert request.body is None

    @pytest.mark.parametrize(
        "operation,has_key",
        [
            ("create_payment", True),
            ("update_customer", True),
            ("delete_standing_order", False),
            ("get_account_balance", False),
        ],
    )
    def test_idempotency_key_on_post_and_patch(self, operation, has_key):
        """Test that POST and PATCH carry an Idempotency-Key while GET and DELETE do not."""
        request = TemenosAdapter().build_request(operation, {}, make_config())
        assert ("Idempotency-Key" in request.headers) is has_key


class TestParseResponse:
    """Response decoding and envelope unwrapping."""

    def test_temenos_unwraps_body(self):
        """Test that temenos responses unwrap the body envelope."""
        response = httpx.Response(200, json={"header": {"status": "success"}, "body": {"Amount": 5050}})
        assert TemenosAdapter().parse_response(response) == {"Amount": 5050}

    def test_temenos_falls_back_to_data(self):
        """Test that temenos accepts a data envelope when body is absent."""
        response = httpx.Response(200, json={"data": {"Amount": 1}})
        assert TemenosAdapter().parse_response(response) == {"Amount": 1}

    def test_finastra_unwraps_attributes(self):
        """Test that finastra responses unwrap data.attributes."""
        response = httpx.Response(200, json={"data": {"id": "1", "attributes": {"amount": 1}}})
        assert FinastraAdapter().parse_response(response) == {"amount": 1}

    def test_thought_machine_unwraps_result(self):
        """Test that thought machine responses unwrap result."""
        response = httpx.Response(200, json={"result": {"posting_id": "p1"}})
        assert ThoughtMachineAdapter().parse_response(response) == {"posting_id": "p1"}

    def test_missing_envelope_returns_whole_object(self):
        """Test that an unexpected shape is returned as-is."""
        response = httpx.Response(200, json={"Amount": 1})
        assert TemenosAdapter().parse_response(response) == {"Amount": 1}
        assert MambuAdapter().parse_response(response) == {"Amount": 1}

    def test_non_json_body_is_wrapped_as_raw(self):
        """Test that HTML or text bodies never raise and surface under raw."""
        response = httpx.Response(502, text="<html>Bad Gateway</html>")
        assert TemenosAdapter().parse_response(response) == {"raw": "<html>Bad Gateway</html>"}

    def test_json_array_is_wrapped_as_raw(self):
        """Test that non-object JSON is wrapped rather than rejected."""
        response = httpx.Response(200, json=[1, 2])
        assert decode_body(response) == {"raw": [1, 2]}

    def test_empty_body(self):
        """Test that an empty body decodes to an empty raw string."""
        response = httpx.Response(204)
        assert decode_body(response) == {"raw": ""}


class TestAdapterRegistry:
    """Vendor type -> adapter resolution."""

    @pytest.mark.parametrize(
        "core_type,adapter_type",
        [
            ("temenos", TemenosAdapter),
            ("finastra", FinastraAdapter),
            ("mambu", MambuAdapter),
            ("thought_machine", ThoughtMachineAdapter),
            ("MAMBU", MambuAdapter),
        ],
    )
    def test_known_types(self, core_type, adapter_type):
        """Test that each supported vendor resolves to its adapter."""
        assert isinstance(adapter_registry.resolve(core_type), adapter_type)

    @pytest.mark.parametrize("core_type", ["custom", "fiserv", "", None])
    def test_unknown_types_use_baseline(self, core_type):
        """Test that custom and unknown vendors fall back to the temenos baseline."""
        assert adapter_registry.resolve(core_type) is adapter_registry.baseline
        assert isinstance(adapter_registry.baseline, TemenosAdapter)

    def test_empty_registry_raises(self):
        """Test that resolving against an empty registry is an error."""
        with pytest.raises(LookupError):
            AdapterRegistry().resolve("temenos")

    def test_register_under_alias(self):
        """Test registering an adapter under an explicit vendor key."""
        registry = AdapterRegistry()
        registry.register(TemenosAdapter())
        mambu = MambuAdapter()
        registry.register(mambu, core_type="mambu_eu")

        assert registry.resolve("mambu_eu") is mambu
        assert registry.core_types == ["temenos", "mambu_eu"]


def test_request_body_is_json_serializable():
    """Test that a built request body survives JSON encoding."""
    request = FinastraAdapter().build_request("create_payment", {"amount": 1, "tags": ["a"]}, make_config())
    assert json.loads(json.dumps(request.body)) == request.body
