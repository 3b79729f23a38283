"""
Integration tests against a real Azure DevOps organization.

Skipped unless credentials are configured. Run with: pytest -m integration

Environment:
    AZURE_DEVOPS_ORG_URL, AZURE_DEVOPS_PROJECT and one of the supported
    credentials (AZURE_DEVOPS_PAT, a service principal, or an Azure CLI login)
    ADO_TEST_WORK_ITEM_ID: a work item readable by those credentials
"""

import json
import os
import pytest
import pytest_asyncio
from ado_agents.auth import AzureDevOpsAuth
from ado_agents.service_manager import ServiceManager


@pytest.mark.integration
class TestRealOrganization:
    """Read-only calls against a live organization."""

    @pytest_asyncio.fixture
    async def manager(self):
        org_url = os.getenv("AZURE_DEVOPS_ORG_URL")
        project = os.getenv("AZURE_DEVOPS_PROJECT")
        if not org_url or not project:
            pytest.skip("AZURE_DEVOPS_ORG_URL / AZURE_DEVOPS_PROJECT not set")

        auth = AzureDevOpsAuth(org_url)
        await auth.initialize()
        yield ServiceManager(auth, default_project=project)
        await auth.close()

    @pytest.fixture
    def work_item_id(self):
        value = os.getenv("ADO_TEST_WORK_ITEM_ID")
        if not value:
            pytest.skip("ADO_TEST_WORK_ITEM_ID not set")
        return int(value)

    @pytest.mark.asyncio
    async def test_deep_dive(self, manager, work_item_id):
        result = await manager.get_deep_dive_service().work_item_deep_dive(work_item_id)

        assert result['work_item']['id'] == work_item_id
        json.dumps(result)

    @pytest.mark.asyncio
    async def test_missing_work_item(self, manager):
        result = await manager.get_deep_dive_service().work_item_deep_dive(2_000_000_000)

        assert result == {'error': "Work item 2000000000 not found."}

    @pytest.mark.asyncio
    async def test_descendant_tree(self, manager, work_item_id):
        result = await manager.get_hierarchy_service().get_descendant_tree(
            work_item_id, max_depth=2, max_items=50
        )

        assert result['tree']['id'] == work_item_id
        assert 1 <= result['returned'] <= 50
