"""
Unit tests for AzureDevOpsAuth.

Credential libraries are patched; no network access is made.
"""

import os
import pytest
import requests
from unittest.mock import Mock, patch
from ado_agents.auth import AzureDevOpsAuth
from azure.devops.connection import Connection


ORG_URL = "https://dev.azure.com/contoso"


class TestInitialize:
    """Test credential selection order."""

    @pytest.mark.asyncio
    async def test_pat(self):
        auth = AzureDevOpsAuth(ORG_URL + "/")

        with patch.dict(os.environ, {"AZURE_DEVOPS_PAT": "pat-value"}, clear=True):
            await auth.initialize()

        assert isinstance(auth.connection, Connection)
        assert isinstance(auth.session, requests.Session)
        assert auth.session.auth.username == ""
        assert auth.session.auth.password == "pat-value"
        assert auth.organization_url == ORG_URL
        assert auth.get_auth_info() == {
            "method": "Personal Access Token",
            "organization_url": ORG_URL,
            "authenticated": True
        }

    @pytest.mark.asyncio
    async def test_service_principal(self):
        env = {
            "AZURE_CLIENT_ID": "client",
            "AZURE_CLIENT_SECRET": "secret",
            "AZURE_TENANT_ID": "tenant",
        }
        credential = Mock()
        credential.get_token.return_value = Mock(token="sp-token")

        with patch.dict(os.environ, env, clear=True), \
                patch('ado_agents.auth.ClientSecretCredential', return_value=credential) as mock_class:
            auth = AzureDevOpsAuth(ORG_URL)
            await auth.initialize()

        mock_class.assert_called_once_with(tenant_id="tenant", client_id="client", client_secret="secret")
        credential.get_token.assert_called_once_with("499b84ac-1321-427f-aa17-267ca6975798/.default")
        assert auth.session.auth.password == "sp-token"
        assert auth.get_auth_info()["method"] == "Service Principal"

    @pytest.mark.asyncio
    async def test_default_credential(self):
        credential = Mock()
        credential.get_token.return_value = Mock(token="mi-token")

        with patch.dict(os.environ, {}, clear=True), \
                patch('ado_agents.auth.DefaultAzureCredential', return_value=credential):
            auth = AzureDevOpsAuth(ORG_URL)
            await auth.initialize()

        assert auth.session.auth.password == "mi-token"
        assert "DefaultAzureCredential" in auth.get_auth_info()["method"]

    @pytest.mark.asyncio
    async def test_all_methods_fail(self):
        credential = Mock()
        credential.get_token.side_effect = RuntimeError("no identity available")

        with patch.dict(os.environ, {}, clear=True), \
                patch('ado_agents.auth.DefaultAzureCredential', return_value=credential):
            auth = AzureDevOpsAuth(ORG_URL)
            with pytest.raises(ValueError, match="Failed to authenticate"):
                await auth.initialize()

        assert auth.connection is None
        assert auth.session is None
        assert auth.get_auth_info()["authenticated"] is False


class TestClients:
    """Test get_client and close."""

    @pytest.fixture
    def auth(self):
        auth = AzureDevOpsAuth(ORG_URL)
        auth.connection = Mock()
        auth.session = Mock()
        return auth

    def test_requires_initialize(self):
        with pytest.raises(RuntimeError, match="initialize"):
            AzureDevOpsAuth(ORG_URL).get_client('git')

    @pytest.mark.parametrize("client_type,factory_method", [
        ('work_item_tracking', 'get_work_item_tracking_client'),
        ('git', 'get_git_client'),
    ])
    def test_client_types(self, auth, client_type, factory_method):
        factory = getattr(auth.connection.clients_v7_1, factory_method)

        client = auth.get_client(client_type)

        factory.assert_called_once_with()
        assert client is factory.return_value

    def test_unknown_client_type(self, auth):
        with pytest.raises(ValueError, match="Unknown client type"):
            auth.get_client('build')

    @pytest.mark.asyncio
    async def test_close(self, auth):
        session = auth.session
        auth._credential = Mock()

        await auth.close()

        session.close.assert_called_once()
        auth._credential.close.assert_called_once()
        assert auth.session is None
        assert auth.connection is None
        assert auth.get_auth_info()["authenticated"] is False
