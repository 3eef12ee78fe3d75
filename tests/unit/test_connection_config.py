import pytest
from pydantic import ValidationError

from opensearch_notebook.configs.connection import (
    AuthConfig,
    AuthOverrides,
    AuthType,
    ConnectionConfig,
    ConnectionOverrides,
    validate_connection_overrides,
)


class TestConnectionOverridesValidation:

    def test_basic_auth_without_password_is_invalid(self):
        overrides = ConnectionOverrides(auth=AuthOverrides(type=AuthType.BASIC, username="admin"))
        result = validate_connection_overrides(overrides)
        assert not result.valid
        assert result.error == "Basic auth requires both username and password"

    def test_basic_auth_with_password_is_valid(self):
        overrides = ConnectionOverrides(
            auth=AuthOverrides(type=AuthType.BASIC, username="admin", password="secret")
        )
        assert validate_connection_overrides(overrides).valid

    def test_apikey_requires_key(self):
        overrides = ConnectionOverrides(auth=AuthOverrides(type=AuthType.APIKEY))
        result = validate_connection_overrides(overrides)
        assert result.error == "API key auth requires api_key"

    @pytest.mark.parametrize("endpoint", ["not a url", "localhost:9200/path", "/relative"])
    def test_invalid_endpoint(self, endpoint):
        result = validate_connection_overrides(ConnectionOverrides(endpoint=endpoint))
        assert not result.valid
        assert result.error == f"Invalid endpoint URL: {endpoint}"

    def test_valid_endpoint(self):
        assert validate_connection_overrides(ConnectionOverrides(endpoint="https://search.example.com:9200")).valid

    @pytest.mark.parametrize("timeout,valid", [(999, False), (1000, True), (300000, True), (300001, False)])
    def test_timeout_range(self, timeout, valid):
        assert validate_connection_overrides(ConnectionOverrides(timeout=timeout)).valid is valid

    def test_overrides_are_frozen(self):
        overrides = ConnectionOverrides(endpoint="http://a:9200")
        with pytest.raises(ValidationError):
            overrides.endpoint = "http://b:9200"


class TestConnectionConfigMerge:

    def test_field_level_merge(self):
        base = ConnectionConfig(
            endpoint="http://base:9200",
            auth=AuthConfig(type=AuthType.BASIC, username="admin", password="admin"),
            timeout=30000,
        )
        merged = base.with_overrides(
            ConnectionOverrides(endpoint="http://other:9200", auth=AuthOverrides(password="changed"))
        )

        assert merged.endpoint == "http://other:9200"
        assert merged.auth.type == AuthType.BASIC
        assert merged.auth.username == "admin"
        assert merged.auth.password == "changed"
        assert merged.timeout == 30000
        # base untouched
        assert base.endpoint == "http://base:9200"
        assert base.auth.password == "admin"

    def test_empty_override_values_do_not_blank_base(self):
        base = ConnectionConfig(auth=AuthConfig(type=AuthType.APIKEY, api_key="k1"))
        merged = base.with_overrides(ConnectionOverrides(endpoint="", auth=AuthOverrides(api_key="")))
        assert merged.endpoint == base.endpoint
        assert merged.auth.api_key == "k1"

    def test_none_overrides_returns_base(self):
        base = ConnectionConfig()
        assert base.with_overrides(None) is base

    def test_is_empty(self):
        assert ConnectionOverrides().is_empty()
        assert ConnectionOverrides(auth=AuthOverrides()).is_empty()
        assert not ConnectionOverrides(timeout=5000).is_empty()
