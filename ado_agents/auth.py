"""
Authentication handling for Azure DevOps
Supports Personal Access Tokens, Service Principals and DefaultAzureCredential
"""
import asyncio
import logging
import os
from typing import Optional

import requests
from azure.devops.connection import Connection
from azure.identity import DefaultAzureCredential, ClientSecretCredential
from msrest.authentication import BasicAuthentication

from .log_sanitizer import safe_log_error

logger = logging.getLogger(__name__)


class AzureDevOpsAuth:
    """
    Handles authentication to Azure DevOps using, in order:
    1. Personal Access Token (AZURE_DEVOPS_PAT)
    2. Service Principal (AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, AZURE_TENANT_ID)
    3. DefaultAzureCredential (managed identity, Azure CLI login, ...)

    Every method ends in HTTP basic credentials; Azure DevOps accepts an
    Entra ID access token in place of a PAT. The SDK clients come from the
    Connection; the signed session serves the plain GETs (pull request
    lookup by id, inline images).
    """

    # Azure DevOps resource ID for token acquisition
    AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

    def __init__(self, organization_url: str):
        """
        Initialize authentication handler

        Args:
            organization_url: Azure DevOps organization URL
                            (e.g., https://dev.azure.com/yourorg)
        """
        self.organization_url = organization_url.rstrip('/')
        self.connection: Optional[Connection] = None
        self.session: Optional[requests.Session] = None
        self._credential = None
        self._auth_method = None

    async def initialize(self):
        """Acquire credentials and establish connection to Azure DevOps"""
        auth_methods = [
            self._try_pat,
            self._try_service_principal,
            self._try_default_credential
        ]

        for auth_method in auth_methods:
            try:
                credentials = await auth_method()
                if credentials:
                    self.connection = Connection(base_url=self.organization_url, creds=credentials)
                    self.session = credentials.signed_session()
                    logger.info(f"Authenticated using: {self._auth_method}")
                    return
            except Exception as e:
                # Fall through to the next method
                logger.warning(safe_log_error(e, auth_method.__name__))
                continue

        raise ValueError(
            "Failed to authenticate. Please configure one of:\n"
            "1. Personal Access Token (AZURE_DEVOPS_PAT)\n"
            "2. Service Principal (AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, AZURE_TENANT_ID)\n"
            "3. Azure CLI login or Managed Identity (DefaultAzureCredential)"
        )

    async def _try_pat(self) -> Optional[BasicAuthentication]:
        """
        Attempt authentication using Personal Access Token
        Requires environment variable: AZURE_DEVOPS_PAT

        The token needs Work Items (read) and Code (read) scopes.
        """
        pat = os.getenv("AZURE_DEVOPS_PAT")

        if not pat:
            raise ValueError("AZURE_DEVOPS_PAT environment variable not set")

        self._auth_method = "Personal Access Token"
        return BasicAuthentication('', pat)

    async def _try_service_principal(self) -> Optional[BasicAuthentication]:
        """
        Attempt authentication using Service Principal
        Requires environment variables:
        - AZURE_CLIENT_ID
        - AZURE_CLIENT_SECRET
        - AZURE_TENANT_ID
        """
        client_id = os.getenv("AZURE_CLIENT_ID")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")
        tenant_id = os.getenv("AZURE_TENANT_ID")

        if not all([client_id, client_secret, tenant_id]):
            raise ValueError("Missing service principal credentials")

        credential = ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret
        )
        return await self._token_credentials(credential, "Service Principal")

    async def _try_default_credential(self) -> Optional[BasicAuthentication]:
        """
        Attempt authentication using DefaultAzureCredential
        This works for:
        - Azure VMs, Functions and Container Instances with managed identity
        - Local development with Azure CLI login
        """
        credential = DefaultAzureCredential()
        return await self._token_credentials(
            credential, "Azure Managed Identity / DefaultAzureCredential"
        )

    async def _token_credentials(self, credential, method: str) -> BasicAuthentication:
        token = await asyncio.to_thread(
            credential.get_token,
            f"{self.AZURE_DEVOPS_RESOURCE_ID}/.default"
        )

        self._credential = credential
        self._auth_method = method

        return BasicAuthentication('', token.token)

    def get_client(self, client_type: str):
        """
        Get a specific Azure DevOps client

        Args:
            client_type: Type of client to get. Options:
                - 'work_item_tracking': For work items, comments and queries
                - 'git': For pull requests and their threads

        The v7.1 factory is used because work item comments are a preview
        API that the released clients do not expose.

        Returns:
            The requested client instance
        """
        if not self.connection:
            raise RuntimeError("Not authenticated. Call initialize() first.")

        client_map = {
            'work_item_tracking': self.connection.clients_v7_1.get_work_item_tracking_client,
            'git': self.connection.clients_v7_1.get_git_client,
        }

        if client_type not in client_map:
            raise ValueError(f"Unknown client type: {client_type}")

        return client_map[client_type]()

    async def close(self):
        """Clean up resources"""
        if hasattr(self._credential, 'close'):
            self._credential.close()

        if self.session:
            self.session.close()
        self.session = None
        self.connection = None

    def get_auth_info(self) -> dict:
        """Get information about current authentication"""
        return {
            "method": self._auth_method,
            "organization_url": self.organization_url,
            "authenticated": self.connection is not None
        }
