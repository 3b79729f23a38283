"""
Saved query service
Runs stored work item queries by ID
"""
from typing import Any, Dict, List

from azure.devops.v7_1.work.models import TeamContext

from ..constants import ErrorPolicy, ExpandOptions, QueryLimits
from ..decorators import azure_devops_operation
from ..models import WorkItemSummary
from ..validation import validate_guid, validate_top


class QueryService:
    """Service for saved query execution"""

    def __init__(self, auth, project: str):
        """
        Initialize query service

        Args:
            auth: AzureDevOpsAuth instance
            project: Azure DevOps project name
        """
        self.auth = auth
        self.project = project
        self._wit_client = None

    @property
    def wit_client(self):
        """Lazy load work item tracking client"""
        if not self._wit_client:
            self._wit_client = self.auth.get_client('work_item_tracking')
        return self._wit_client

    @azure_devops_operation()
    async def run_saved_query(
        self,
        query_id: str,
        top: int = QueryLimits.DEFAULT_LIMIT
    ) -> List[Dict[str, Any]]:
        """
        Execute a saved query and return summaries of the matching work items.

        Args:
            query_id: Saved query GUID
            top: Maximum number of results to return

        Returns:
            List of work item summaries, in query order

        Raises:
            ValidationError: If query_id is not a GUID
            NotFoundError: If the query doesn't exist
        """
        query_id = validate_guid(query_id, "query_id")
        top = validate_top(top)

        team_context = TeamContext(project=self.project)
        query_result = self.wit_client.query_by_id(query_id, team_context=team_context, top=top)

        # Flat queries fill work_items; tree and one-hop queries fill work_item_relations
        if query_result.work_items:
            ids = [ref.id for ref in query_result.work_items]
        else:
            ids = []
            for relation in query_result.work_item_relations or []:
                target = relation.target
                if target and target.id not in ids:
                    ids.append(target.id)

        ids = ids[:top]
        if not ids:
            return []

        summaries = {}
        for i in range(0, len(ids), QueryLimits.BATCH_SIZE):
            batch = self.wit_client.get_work_items(
                ids=ids[i:i + QueryLimits.BATCH_SIZE],
                project=self.project,
                expand=ExpandOptions.FIELDS,
                error_policy=ErrorPolicy.OMIT
            )
            for wi in batch or []:
                if wi is not None:
                    summaries[wi.id] = WorkItemSummary.from_work_item(wi)

        return [summaries[i].to_dict() for i in ids if i in summaries]
