"""
Data models for the Azure DevOps agent tools
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any

from .constants import FieldNames


def format_identity(identity) -> Optional[str]:
    """
    Flatten an identity reference to its display name.

    Identity fields inside work item `fields` stay plain dicts; comment and
    pull request authors are SDK IdentityRef models.
    """
    if not identity:
        return None
    if isinstance(identity, dict):
        return identity.get('displayName') or identity.get('uniqueName')
    if hasattr(identity, 'display_name'):
        return identity.display_name or getattr(identity, 'unique_name', None)
    return str(identity)


def format_date(date) -> Optional[str]:
    """Format date field as ISO-8601"""
    if not date:
        return None
    if isinstance(date, datetime):
        return date.isoformat()
    return str(date)


@dataclass(frozen=True)
class PrReference:
    """A pull request mentioned by a work item"""
    repo_id: Optional[str]
    pr_id: int

    @property
    def has_repo(self) -> bool:
        return bool(self.repo_id and self.repo_id.strip())


@dataclass
class ThreadComment:
    """One human comment in a pull request thread"""
    author: Optional[str]
    content: str
    date: Optional[str] = None


@dataclass
class ConversationThread:
    """A pull request thread that survived noise filtering"""
    thread_id: int
    file_path: Optional[str] = None
    comments: List[ThreadComment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WorkItemSummary:
    """Flattened projection of commonly used work item fields"""
    id: int
    url: str
    work_item_type: str = ""
    title: str = ""
    state: str = ""
    assigned_to: str = ""
    area_path: str = ""
    iteration_path: str = ""
    tags: str = ""
    description: str = ""

    @classmethod
    def from_work_item(cls, wi) -> "WorkItemSummary":
        """Build a summary from an SDK WorkItem"""
        fields = wi.fields or {}
        return cls(
            id=wi.id,
            url=wi.url or "",
            work_item_type=fields.get(FieldNames.WORK_ITEM_TYPE) or "",
            title=fields.get(FieldNames.TITLE) or "",
            state=fields.get(FieldNames.STATE) or "",
            assigned_to=format_identity(fields.get(FieldNames.ASSIGNED_TO)) or "",
            area_path=fields.get(FieldNames.AREA_PATH) or "",
            iteration_path=fields.get(FieldNames.ITERATION_PATH) or "",
            tags=fields.get(FieldNames.TAGS) or "",
            description=fields.get(FieldNames.DESCRIPTION) or "",
        )

    @classmethod
    def placeholder(cls, work_item_id: int, url: str) -> "WorkItemSummary":
        """Summary for an item that could not be fetched"""
        return cls(id=work_item_id, url=url)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WorkItemNode:
    """
    Arena entry for the descendant tree.

    Children are referenced by ID so malformed hierarchy data (an item
    listing one of its ancestors as a child) cannot create object cycles.
    """
    summary: WorkItemSummary
    child_ids: List[int] = field(default_factory=list)


@dataclass
class InlineImage:
    """An image referenced from an HTML field, fetched as base64"""
    url: str
    base64: Optional[str] = None
    content_type: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.error:
            return {'url': self.url, 'error': self.error}
        return {'url': self.url, 'base64': self.base64, 'content_type': self.content_type}
