"""
Pull request reference extraction.

Finds pull requests mentioned by a work item, either through artifact
links and PR URLs (repository known) or through free-text mentions such as
"!1234", "PR 1234" and "Pull request 1234" (repository unknown).
"""
import re
from typing import Iterable, List, Optional
from urllib.parse import unquote_plus

from .models import PrReference


# vstfs:///Git/PullRequestId/{projectId}%2F{repoId}%2F{prId}, once decoded
ARTIFACT_PATTERN = re.compile(r'Git/PullRequestId/[^/]+/([^/]+)/(\d+)')

# https://dev.azure.com/{org}/{project}/_git/{repo}/pullrequest/{prId}
PATH_PATTERN = re.compile(r'_git/([^/"]+)/pullrequest/(\d+)', re.IGNORECASE)

# "!1234"; "![alt](...)" is markdown image syntax, not a mention
MENTION_PATTERN = re.compile(r'!(?!\[)(\d+)')

PR_TEXT_PATTERN = re.compile(r'\bPR\s+(\d+)\b', re.IGNORECASE)
PULL_REQUEST_TEXT_PATTERN = re.compile(r'\bPull\s*request\s+(\d+)\b', re.IGNORECASE)


def extract_pr_references(text: Optional[str]) -> List[PrReference]:
    """
    Extract every pull request reference from a text blob.

    The text is URL-decoded first. Matches are returned in pattern order
    (artifact links, PR URLs, "!" mentions, "PR n", "Pull request n") and
    may contain duplicates; see add_pr_reference.

    Args:
        text: Relation URL, HTML field or comment text

    Returns:
        List of references, possibly empty
    """
    if not text:
        return []

    decoded = unquote_plus(text)
    results = []

    for match in ARTIFACT_PATTERN.finditer(decoded):
        results.append(PrReference(match.group(1), int(match.group(2))))

    for match in PATH_PATTERN.finditer(decoded):
        results.append(PrReference(match.group(1), int(match.group(2))))

    for pattern in (MENTION_PATTERN, PR_TEXT_PATTERN, PULL_REQUEST_TEXT_PATTERN):
        for match in pattern.finditer(decoded):
            results.append(PrReference(None, int(match.group(1))))

    return results


def add_pr_reference(references: List[PrReference], reference: PrReference) -> None:
    """
    Add a reference unless its PR ID is already present.

    An existing entry without a repository is replaced in place by one
    that has a repository, so the list holds at most one entry per PR ID
    and prefers a resolved repository regardless of discovery order.
    """
    for index, existing in enumerate(references):
        if existing.pr_id != reference.pr_id:
            continue
        if not existing.has_repo and reference.has_repo:
            references[index] = reference
        return

    references.append(reference)


def collect_pr_references(texts: Iterable[Optional[str]]) -> List[PrReference]:
    """Extract and deduplicate references across several text blobs."""
    references: List[PrReference] = []
    for text in texts:
        for reference in extract_pr_references(text):
            add_pr_reference(references, reference)
    return references
