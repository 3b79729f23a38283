"""
Inline image capture for work item HTML fields.

Images pasted into descriptions and comments are stored as attachments
behind authenticated URLs, so an agent reading the work item cannot see
them. They are downloaded once and returned base64 encoded. Credentials
are only sent to the organization's own host; images hosted elsewhere are
fetched anonymously.
"""
import base64
import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

import requests

from .constants import (
    IMAGE_FETCH_TIMEOUT,
    DEFAULT_IMAGE_CONTENT_TYPE,
    PNG_CONTENT_TYPE,
    IMAGE_FETCH_ERROR,
)
from .log_sanitizer import safe_log_error
from .models import InlineImage

logger = logging.getLogger(__name__)


IMG_SRC_PATTERN = re.compile(r'<img[^>]+src="([^"]+)"', re.IGNORECASE)


def extract_image_urls(html: Optional[str]) -> List[str]:
    """Return the src attribute of every <img> tag, in document order."""
    if not html:
        return []
    return IMG_SRC_PATTERN.findall(html)


def guess_content_type(url: str, header: Optional[str] = None) -> str:
    """
    Content type of a downloaded image.

    Uses the media type of the Content-Type header (parameters stripped)
    when present, otherwise guesses from the URL.
    """
    if header:
        media_type = header.split(';', 1)[0].strip()
        if media_type:
            return media_type

    path = url.split('?', 1)[0].lower()
    if path.endswith('.png'):
        return PNG_CONTENT_TYPE
    return DEFAULT_IMAGE_CONTENT_TYPE


def is_organization_host(url: str, organization_url: str) -> bool:
    """True when url points at the same host as the organization URL."""
    host = urlsplit(url).hostname
    return bool(host) and host == urlsplit(organization_url).hostname


def fetch_image(session: requests.Session, url: str, organization_url: str) -> InlineImage:
    """Download one image; a failed download yields an error entry."""
    get = session.get if is_organization_host(url, organization_url) else requests.get
    try:
        response = get(url, timeout=IMAGE_FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(safe_log_error(e, f"Could not fetch inline image {url}"))
        return InlineImage(url=url, error=IMAGE_FETCH_ERROR)

    return InlineImage(
        url=url,
        base64=base64.b64encode(response.content).decode('ascii'),
        content_type=guess_content_type(url, response.headers.get('Content-Type'))
    )


def fetch_inline_images(
    session: requests.Session,
    html_fields: Iterable[Optional[str]],
    organization_url: str
) -> List[InlineImage]:
    """
    Fetch every distinct image referenced by the given HTML fields.

    URLs are compared case-insensitively; the first spelling seen is the
    one fetched and reported.

    Args:
        session: Authenticated session (AzureDevOpsAuth.session)
        html_fields: Field values and comment texts, None entries allowed
        organization_url: Only URLs on this host get the session's credentials

    Returns:
        One InlineImage per distinct URL, in discovery order
    """
    seen = set()
    urls = []
    for html in html_fields:
        for url in extract_image_urls(html):
            key = url.lower()
            if key not in seen:
                seen.add(key)
                urls.append(url)

    if urls:
        logger.debug(f"Fetching {len(urls)} inline image(s)")

    return [fetch_image(session, url, organization_url) for url in urls]
