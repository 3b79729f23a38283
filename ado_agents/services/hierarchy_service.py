"""
Work item hierarchy service
Bounded descendant tree of a work item via parent -> child links
"""
import logging
from typing import Any, Dict, List

from ..constants import ExpandOptions, ErrorPolicy, HierarchyLimits, QueryLimits
from ..decorators import azure_devops_operation, validate_work_item_id
from ..hierarchy import TraversalState, build_tree
from ..models import WorkItemSummary
from ..validation import validate_traversal_limits

logger = logging.getLogger(__name__)


class HierarchyService:
    """Service for hierarchy traversal"""

    def __init__(self, auth, project: str):
        """
        Initialize hierarchy service

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

    @validate_work_item_id
    @azure_devops_operation(log_level=logging.INFO)
    async def get_descendant_tree(
        self,
        work_item_id: int,
        max_depth: int = HierarchyLimits.DEFAULT_MAX_DEPTH,
        max_items: int = HierarchyLimits.DEFAULT_MAX_ITEMS
    ) -> Dict[str, Any]:
        """
        Get a work item and its descendants as a nested tree.

        Children are discovered breadth first, fetching up to 200 items per
        request. Traversal stops at max_depth levels below the root or once
        max_items items have been visited, whichever comes first; a
        'returned' count equal to 'max_items' means the tree was truncated.

        Args:
            work_item_id: Root work item ID
            max_depth: Levels below the root to include (0 = root only)
            max_items: Maximum number of work items to visit

        Returns:
            Dictionary with 'root_id', 'tree' (summary fields plus
            'children'), 'items' (flat list sorted by id), 'max_depth',
            'max_items' and 'returned'

        Raises:
            ValidationError: If max_depth or max_items is out of range
        """
        max_depth, max_items = validate_traversal_limits(max_depth, max_items)

        state = TraversalState(work_item_id, max_depth, max_items)
        requests_made = 0

        while True:
            batch = state.next_batch(QueryLimits.BATCH_SIZE)
            if not batch:
                break
            for wi in self._get_work_items(batch, ExpandOptions.RELATIONS):
                state.record(wi)
            requests_made += 1

        # Items the relation fetch omitted get a second, fields-only attempt
        missing = state.missing_summaries()
        for i in range(0, len(missing), QueryLimits.BATCH_SIZE):
            for wi in self._get_work_items(missing[i:i + QueryLimits.BATCH_SIZE], ExpandOptions.FIELDS):
                state.summaries[wi.id] = WorkItemSummary.from_work_item(wi)
            requests_made += 1

        arena = state.build_arena(self.auth.organization_url)
        tree = build_tree(arena, work_item_id, state.depth, max_depth)

        logger.info(
            f"Traversed {len(arena)} work item(s) below {work_item_id} "
            f"in {requests_made} request(s)"
        )

        return {
            'root_id': work_item_id,
            'tree': tree,
            'items': [arena[i].summary.to_dict() for i in sorted(arena)],
            'max_depth': max_depth,
            'max_items': max_items,
            'returned': len(arena)
        }

    def _get_work_items(self, ids: List[int], expand: str) -> List[Any]:
        """One batch fetch; ids that cannot be read are dropped."""
        work_items = self.wit_client.get_work_items(
            ids=ids,
            project=self.project,
            expand=expand,
            error_policy=ErrorPolicy.OMIT
        )
        return [wi for wi in work_items or [] if wi is not None]
