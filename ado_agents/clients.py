"""
Plain REST lookups that the SDK clients do not cover the way we need.

The pull-request-by-id call resolves a repository id for a pull request
found only by number. It goes through the signed requests session of
AzureDevOpsAuth; HTTP failures surface as requests.HTTPError and are
mapped to the error classes in errors.py by @handle_ado_error.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


API_VERSION = "7.1"

# Seconds; (connect, read)
REQUEST_TIMEOUT = (10, 60)


def get_json(session: requests.Session, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """
    Send a GET request and decode the JSON body.

    Raises:
        requests.HTTPError: For 4xx/5xx responses
        AuthenticationError: When the service answers with its sign-in
            page instead of JSON (invalid or expired credentials)
    """
    query = {'api-version': API_VERSION}
    query.update(params or {})

    logger.debug(f"GET {url} {query}")
    response = session.get(url, params=query, timeout=REQUEST_TIMEOUT)

    # Rejected credentials get a 203 with an HTML sign-in page
    content_type = response.headers.get('Content-Type', 'application/json')
    if response.status_code == 203 or (response.ok and 'json' not in content_type):
        raise AuthenticationError(
            message="Authentication failed. Azure DevOps returned a sign-in page; "
            "the token is likely invalid or expired."
        )

    response.raise_for_status()
    return response.json() if response.content else None


def get_pull_request_by_id(
    session: requests.Session,
    organization_url: str,
    pull_request_id: int,
    project: Optional[str] = None
) -> Dict[str, Any]:
    """Look up a pull request without knowing its repository."""
    base = organization_url.rstrip('/')
    if project:
        base = f"{base}/{quote(project, safe='')}"
    return get_json(session, f"{base}/_apis/git/pullrequests/{pull_request_id}") or {}
