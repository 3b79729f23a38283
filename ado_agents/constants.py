"""
Constants and field definitions for Azure DevOps operations.

Defines field sets, limits and the fixed phrase lists used to tell
automated pull request activity apart from human discussion.
"""

from typing import List


# ============================================================================
# Field Reference Names
# ============================================================================

class FieldNames:
    """Azure DevOps field reference names."""

    # System fields
    AREA_PATH = "System.AreaPath"
    ITERATION_PATH = "System.IterationPath"
    WORK_ITEM_TYPE = "System.WorkItemType"
    STATE = "System.State"
    REASON = "System.Reason"
    ASSIGNED_TO = "System.AssignedTo"
    CREATED_DATE = "System.CreatedDate"
    CREATED_BY = "System.CreatedBy"
    CHANGED_DATE = "System.ChangedDate"
    TITLE = "System.Title"
    DESCRIPTION = "System.Description"
    TAGS = "System.Tags"

    # Microsoft.VSTS.Common fields
    PRIORITY = "Microsoft.VSTS.Common.Priority"
    SEVERITY = "Microsoft.VSTS.Common.Severity"
    ACCEPTANCE_CRITERIA = "Microsoft.VSTS.Common.AcceptanceCriteria"

    # Microsoft.VSTS.TCM (Test Case Management) fields
    REPRO_STEPS = "Microsoft.VSTS.TCM.ReproSteps"


# ============================================================================
# Field Sets
# ============================================================================

# Fields scanned for pull request references
PR_SCAN_FIELDS: List[str] = [
    FieldNames.DESCRIPTION,
    FieldNames.REPRO_STEPS,
]

# HTML fields scanned for inline images
IMAGE_SCAN_FIELDS: List[str] = [
    FieldNames.DESCRIPTION,
    FieldNames.REPRO_STEPS,
    FieldNames.ACCEPTANCE_CRITERIA,
]


# ============================================================================
# Limits
# ============================================================================

class QueryLimits:
    """Default limits for queries and batched lookups."""

    DEFAULT_LIMIT = 200

    # Maximum allowed by Azure DevOps API
    MAX_LIMIT = 20000

    # Batch size for work item retrieval
    BATCH_SIZE = 200

    # Discussion comments read by the deep dive
    COMMENTS_TOP = 200


class HierarchyLimits:
    """Caps for the bounded descendant traversal."""

    DEFAULT_MAX_DEPTH = 5
    MAX_DEPTH = 20

    DEFAULT_MAX_ITEMS = 500
    MAX_ITEMS = 2000


# Seconds; (connect, read) for inline image downloads
IMAGE_FETCH_TIMEOUT = (10, 30)


# ============================================================================
# Expand Options
# ============================================================================

class ExpandOptions:
    """Work item expand options for Azure DevOps API."""

    RELATIONS = "Relations"
    FIELDS = "Fields"
    ALL = "All"


class ErrorPolicy:
    """Batch get error policies."""

    OMIT = "omit"


# ============================================================================
# Link Types
# ============================================================================

class LinkTypes:
    """Work item link types."""

    HIERARCHY_FORWARD = "System.LinkTypes.Hierarchy-Forward"


# ============================================================================
# Pull Request Thread Noise
# ============================================================================

# Author display names containing any of these belong to service identities
SYSTEM_IDENTITY_MARKERS: List[str] = [
    "microsoft.visualstudio.services",
]

# Whole-comment matches (lowercased, trimmed)
NOISE_EXACT_PHRASES: List[str] = [
    "policy status has been updated",
]

# Substring matches (lowercased, trimmed)
NOISE_SUBSTRINGS: List[str] = [
    "joined as a reviewer",
    "published the pull request",
    "set auto-complete",
    "set autocomplete",
    "updated the pull request status",
]

# "The reference refs/heads/<branch> was updated." push notices
REF_UPDATE_PREFIX = "the reference refs/heads/"
REF_UPDATE_MARKER = " was updated"

# Minimum remaining comments and distinct authors for a thread to count
# as a conversation
MIN_THREAD_COMMENTS = 2
MIN_THREAD_AUTHORS = 2


# ============================================================================
# Inline Images
# ============================================================================

DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"
PNG_CONTENT_TYPE = "image/png"
IMAGE_FETCH_ERROR = "Could not fetch image"

