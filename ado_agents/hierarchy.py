"""
Bounded descendant traversal of the work item hierarchy.

Pure state and tree-building logic; the API calls live in
services/hierarchy_service.py. Traversal is breadth first and batched:
ids are dequeued up to a batch size, the batch is fetched with relations
expanded, and newly discovered children are queued. The result is
rebuilt into a nested tree through a flat arena keyed by id.
"""
import re
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set

from .constants import LinkTypes
from .models import WorkItemNode, WorkItemSummary


WORK_ITEM_URL_PATTERN = re.compile(r'/workitems/(\d+)', re.IGNORECASE)


def work_item_url(organization_url: str, work_item_id: int) -> str:
    """REST URL of a work item, as the API reports it in relations."""
    return f"{organization_url.rstrip('/')}/_apis/wit/workItems/{work_item_id}"


def child_ids_from_relations(relations: Optional[Iterable]) -> List[int]:
    """
    Ids of the hierarchy children listed in a work item's relations.

    Only System.LinkTypes.Hierarchy-Forward relations are followed.
    Relations whose URL does not end in a work item id are ignored.
    """
    ids = []
    for relation in relations or []:
        if relation.rel != LinkTypes.HIERARCHY_FORWARD:
            continue
        matches = WORK_ITEM_URL_PATTERN.findall(relation.url or "")
        if matches:
            ids.append(int(matches[-1]))
    return ids


class TraversalState:
    """
    Bookkeeping for one descendant traversal.

    Attributes:
        visited: Ids dequeued for fetching, never more than max_items
        depth: Depth by id, root is 0; set when an id is first seen
        children: Parent id -> ordered child ids, without duplicates
        summaries: Id -> summary for every item the API returned
    """

    def __init__(self, root_id: int, max_depth: int, max_items: int):
        self.root_id = root_id
        self.max_depth = max_depth
        self.max_items = max_items

        self.queue = deque([root_id])
        self.visited: Set[int] = set()
        self.depth: Dict[int, int] = {root_id: 0}
        self.children: Dict[int, List[int]] = {}
        self.summaries: Dict[int, WorkItemSummary] = {}

    @property
    def is_full(self) -> bool:
        return len(self.visited) >= self.max_items

    def next_batch(self, batch_size: int) -> List[int]:
        """
        Dequeue the next ids to fetch and mark them visited.

        Skips ids already visited or deeper than max_depth. Stops once the
        batch is full, the queue is empty or max_items ids are visited.
        """
        batch = []
        while self.queue and len(batch) < batch_size and not self.is_full:
            work_item_id = self.queue.popleft()
            if work_item_id in self.visited:
                continue
            if self.depth.get(work_item_id, 0) > self.max_depth:
                continue
            self.visited.add(work_item_id)
            batch.append(work_item_id)
        return batch

    def record(self, work_item) -> None:
        """Store a fetched SDK WorkItem's summary and queue its children."""
        work_item_id = work_item.id
        self.summaries[work_item_id] = WorkItemSummary.from_work_item(work_item)

        parent_depth = self.depth.get(work_item_id, 0)
        edges = self.children.setdefault(work_item_id, [])

        for child_id in child_ids_from_relations(work_item.relations):
            if child_id not in edges:
                edges.append(child_id)
            if child_id not in self.depth:
                self.depth[child_id] = parent_depth + 1
            if child_id not in self.visited:
                self.queue.append(child_id)

    def missing_summaries(self) -> List[int]:
        """Visited ids the relation fetch returned nothing for, sorted."""
        return sorted(i for i in self.visited if i not in self.summaries)

    def build_arena(self, organization_url: str) -> Dict[int, WorkItemNode]:
        """One node per visited id; unknown items get a placeholder summary."""
        arena = {}
        for work_item_id in self.visited:
            summary = self.summaries.get(work_item_id)
            if summary is None:
                summary = WorkItemSummary.placeholder(
                    work_item_id, work_item_url(organization_url, work_item_id)
                )
            arena[work_item_id] = WorkItemNode(
                summary=summary,
                child_ids=list(self.children.get(work_item_id, []))
            )
        return arena


def build_tree(
    arena: Dict[int, WorkItemNode],
    root_id: int,
    depth: Dict[int, int],
    max_depth: int
) -> Optional[Dict[str, Any]]:
    """
    Rebuild the nested tree below root_id from the arena.

    Each node is its summary dict plus a 'children' list. Children that
    were never visited or sit deeper than max_depth are left out, and every
    id is placed at most once (first parent in breadth-first order wins),
    so hierarchy data that loops back on itself still yields a finite tree.

    Returns:
        Root node dict, or None if the root is not in the arena
    """
    if root_id not in arena:
        return None

    root = arena[root_id].summary.to_dict()
    root['children'] = []

    placed = {root_id}
    pending = deque([(root_id, root)])

    while pending:
        work_item_id, node = pending.popleft()
        for child_id in arena[work_item_id].child_ids:
            if child_id in placed or child_id not in arena:
                continue
            if depth.get(child_id, max_depth + 1) > max_depth:
                continue
            placed.add(child_id)

            child = arena[child_id].summary.to_dict()
            child['children'] = []
            node['children'].append(child)
            pending.append((child_id, child))

    return root
