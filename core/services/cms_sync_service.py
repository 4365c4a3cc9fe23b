# =============================================================================
# core/services/cms_sync_service.py - CMS -> Database Sync
# =============================================================================
# Copies templates and case studies authored in Sanity into the `templates`
# and `tasks` tables. Each CMS document is written on its own; a failing
# document is reported in `errors` and the rest still sync.
#
# Matching rules:
# - Templates: an existing row with the same (title, format) is updated.
# - Case studies: an existing admin case study whose id equals the
#   document's `sanityId` is updated; anything else is inserted.
# =============================================================================

import logging
from typing import Any

from supabase import Client, PostgrestAPIError

from core.models.task import TaskFormat, TaskStatus
from core.models.template import SyncReport
from lib.cms_client import CASE_STUDY_QUERY, TEMPLATE_QUERY, SanityClient, portable_text_to_html
from lib.supabase_client import EXPECTED_ERRORS, error_message, is_not_found
from lib.utils import utcnow

logger = logging.getLogger(__name__)


def template_structure(document: dict[str, Any]) -> dict[str, str]:
    """
    Normalise a template's structure for its format.

    Long-form templates only carry a body; short-form ones carry
    hook, body and CTA.
    """
    structure = document.get("structure") or {}
    if document.get("format") == TaskFormat.LONG.value:
        return {"body": structure.get("body") or ""}
    return {
        "hook": structure.get("hook") or "",
        "body": structure.get("body") or "",
        "cta": structure.get("cta") or "",
    }


def case_study_row(document: dict[str, Any], user_id: str) -> dict[str, Any]:
    """Map a Sanity case study document to a `tasks` row."""
    return {
        "user_id": user_id,
        "title": document.get("title"),
        "niche": document.get("niche"),
        "format": document.get("format"),
        "hook": document.get("hook") or None,
        "body": document.get("body") or None,
        "cta": document.get("cta") or None,
        "analysis": portable_text_to_html(document.get("analysis") or []) or None,
        "cover_image_url": document.get("coverImageUrl") or None,
        "result_views": document.get("resultViews") or None,
        "result_engagement": document.get("resultEngagement") or None,
        "result_conversions": document.get("resultConversions") or None,
        "original_template": document.get("originalTemplate") or None,
        "status": TaskStatus.PUBLISHED.value,
        "publish_date": document.get("publishDate") or utcnow().isoformat(),
        "is_admin_case_study": True,
        "category_id": document.get("categoryId") or None,
    }


class CMSSyncService:
    """Admin-triggered sync from the CMS into the database."""

    @staticmethod
    def sync_templates(cms: SanityClient, client: Client, user_id: str) -> SyncReport:
        """
        Sync every CMS template.

        Args:
            cms: Sanity client
            client: Caller's user-scoped Supabase client
            user_id: Admin performing the sync (recorded as created_by)

        Raises:
            CMSError: If the CMS query itself fails
        """
        documents = cms.fetch(TEMPLATE_QUERY) or []
        report = SyncReport(success=True, total=len(documents))
        errors: list[str] = []

        for document in documents:
            title = document.get("title")
            row = {
                "title": title,
                "format": document.get("format"),
                "niche": document.get("niche"),
                "concept": document.get("concept") or None,
                "structure": template_structure(document),
                "is_published": bool(document.get("isPublished")),
            }
            try:
                existing = (
                    client.table("templates")
                    .select("id")
                    .eq("title", title)
                    .eq("format", document.get("format"))
                    .limit(1)
                    .execute()
                ).data or []

                if existing:
                    client.table("templates").update(row).eq("id", existing[0]["id"]).execute()
                else:
                    client.table("templates").insert({**row, "created_by": user_id}).execute()
                report.synced += 1
            except EXPECTED_ERRORS as e:
                errors.append(f'Template "{title}": {error_message(e)}')

        report.errors = errors or None
        logger.info(f"Synced {report.synced}/{report.total} templates ({len(errors)} errors)")
        return report

    @staticmethod
    def sync_case_studies(cms: SanityClient, client: Client, user_id: str) -> SyncReport:
        """
        Sync every CMS case study into `tasks` as admin case studies.

        Raises:
            CMSError: If the CMS query itself fails
        """
        documents = cms.fetch(CASE_STUDY_QUERY) or []
        report = SyncReport(success=True, total=len(documents))
        errors: list[str] = []

        for document in documents:
            title = document.get("title")
            row = case_study_row(document, user_id)
            try:
                existing_id = CMSSyncService._existing_case_study(client, document.get("sanityId"))
                if existing_id:
                    # Ownership of an existing case study never changes
                    row.pop("user_id")
                    client.table("tasks").update(row).eq("id", existing_id).execute()
                else:
                    client.table("tasks").insert(row).execute()
                report.synced += 1
            except EXPECTED_ERRORS as e:
                errors.append(f'Case Study "{title}": {error_message(e)}')

        report.errors = errors or None
        logger.info(f"Synced {report.synced}/{report.total} case studies ({len(errors)} errors)")
        return report

    @staticmethod
    def _existing_case_study(client: Client, sanity_id: str | None) -> str | None:
        if not sanity_id:
            return None
        try:
            response = (
                client.table("tasks")
                .select("id")
                .eq("id", sanity_id)
                .eq("is_admin_case_study", True)
                .single()
                .execute()
            )
        except PostgrestAPIError as e:
            if is_not_found(e):
                return None
            raise
        return (response.data or {}).get("id")
