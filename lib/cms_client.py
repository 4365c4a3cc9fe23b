# =============================================================================
# lib/cms_client.py - Sanity CMS Client
# =============================================================================
# Thin wrapper over Sanity's HTTP query API. Templates and case studies are
# authored in Sanity and synced into the database by admins.
#
# Usage:
#   cms = SanityClient.from_settings(settings)
#   templates = cms.fetch(TEMPLATE_QUERY)
#   cms.close()
# =============================================================================

from __future__ import annotations

import html
import json
import logging
from typing import Any

import httpx

from app.config import Settings

logger = logging.getLogger(__name__)


TEMPLATE_QUERY = """
*[_type == "template" && defined(_id)] {
  _id,
  title,
  format,
  niche,
  concept,
  structure,
  isPublished,
  _updatedAt,
  _createdAt
}
"""

CASE_STUDY_QUERY = """
*[_type == "caseStudy" && defined(_id)] {
  _id,
  title,
  niche,
  format,
  hook,
  body,
  cta,
  analysis,
  coverImageUrl,
  resultViews,
  resultEngagement,
  resultConversions,
  originalTemplate,
  publishDate,
  categoryId,
  sanityId,
  _updatedAt,
  _createdAt
}
"""


class CMSError(Exception):
    """Raised when a CMS query fails or the CMS is not configured."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SanityClient:
    """
    GROQ query client for one Sanity project/dataset.

    Uses the CDN host in production (cached, eventually consistent) and the
    live API host otherwise.
    """

    def __init__(
        self,
        project_id: str,
        dataset: str,
        api_version: str,
        token: str | None = None,
        use_cdn: bool = False,
        http: httpx.Client | None = None,
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version
        self.use_cdn = use_cdn
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = http or httpx.Client(timeout=10.0, headers=headers)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SanityClient":
        return cls(
            project_id=settings.SANITY_PROJECT_ID,
            dataset=settings.SANITY_DATASET,
            api_version=settings.SANITY_API_VERSION,
            token=settings.SANITY_API_TOKEN,
            use_cdn=settings.is_production,
        )

    @property
    def configured(self) -> bool:
        return bool(self.project_id)

    @property
    def query_url(self) -> str:
        host = "apicdn.sanity.io" if self.use_cdn else "api.sanity.io"
        version = self.api_version.lstrip("v")
        return f"https://{self.project_id}.{host}/v{version}/data/query/{self.dataset}"

    def fetch(self, query: str, params: dict[str, Any] | None = None) -> Any:
        """
        Run a GROQ query and return its `result`.

        Params are passed as `$name` query-string arguments, JSON encoded
        as Sanity expects.

        Raises:
            CMSError: If the CMS is not configured or the request fails
        """
        if not self.configured:
            raise CMSError("SANITY_PROJECT_ID is not set")

        query_params: dict[str, str] = {"query": query}
        for name, value in (params or {}).items():
            query_params[f"${name}"] = json.dumps(value)

        try:
            response = self._http.get(self.query_url, params=query_params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Sanity query failed with {e.response.status_code}: {e.response.text[:200]}")
            raise CMSError(
                f"Sanity query failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Sanity request error: {e}")
            raise CMSError(f"Sanity request failed: {e}") from e

        return response.json().get("result")

    def close(self) -> None:
        self._http.close()


# =============================================================================
# Portable Text
# =============================================================================

_BLOCK_TAGS = {
    "h1": "h1",
    "h2": "h2",
    "h3": "h3",
    "blockquote": "blockquote",
}


def portable_text_to_html(blocks: Any) -> str:
    """
    Render Sanity Portable Text blocks as simple HTML.

    Only text blocks are rendered; headings and blockquotes keep their tag,
    every other style becomes a paragraph. Non-block items are dropped.
    """
    if not isinstance(blocks, list):
        return ""

    parts: list[str] = []
    for block in blocks:
        if not isinstance(block, dict) or block.get("_type") != "block":
            continue
        text = "".join(
            html.escape(child.get("text") or "")
            for child in block.get("children") or []
            if isinstance(child, dict)
        )
        tag = _BLOCK_TAGS.get(block.get("style") or "normal", "p")
        parts.append(f"<{tag}>{text}</{tag}>")
    return "".join(parts)
