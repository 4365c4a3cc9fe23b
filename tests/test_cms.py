# =============================================================================
# tests/test_cms.py - CMS Client & Sync Tests
# =============================================================================
# Unit tests for the Sanity client, Portable Text rendering and the
# template / case-study sync.
#
# Run with: pytest tests/test_cms.py -v
# =============================================================================

import json
from unittest.mock import MagicMock

import httpx
import pytest

from core.services.cms_sync_service import CMSSyncService, case_study_row, template_structure
from lib.cms_client import TEMPLATE_QUERY, CMSError, SanityClient, portable_text_to_html
from tests.conftest import ADMIN_ID, FakeSupabase, not_found, pg_error


def sanity_client(handler, use_cdn=False):
    return SanityClient(
        project_id="abc123",
        dataset="production",
        api_version="2024-01-01",
        use_cdn=use_cdn,
        http=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestSanityClient:
    """Tests for SanityClient."""

    def test_query_url_hosts(self):
        assert sanity_client(lambda r: None).query_url == (
            "https://abc123.api.sanity.io/v2024-01-01/data/query/production"
        )
        assert "apicdn.sanity.io" in sanity_client(lambda r: None, use_cdn=True).query_url

    def test_fetch_returns_result_and_encodes_params(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"result": [{"title": "A"}]})

        result = sanity_client(handler).fetch("*[_type == $type]", {"type": "template"})

        assert result == [{"title": "A"}]
        assert seen["params"]["query"] == "*[_type == $type]"
        assert json.loads(seen["params"]["$type"]) == "template"

    def test_http_error_raises_cms_error(self):
        client = sanity_client(lambda r: httpx.Response(401, json={"error": "unauthorized"}))

        with pytest.raises(CMSError) as exc_info:
            client.fetch(TEMPLATE_QUERY)

        assert exc_info.value.status_code == 401

    def test_unconfigured_client_refuses(self):
        client = SanityClient(project_id="", dataset="production", api_version="2024-01-01")

        with pytest.raises(CMSError):
            client.fetch(TEMPLATE_QUERY)


class TestPortableText:
    """Tests for portable_text_to_html."""

    def test_renders_blocks(self):
        blocks = [
            {"_type": "block", "style": "h2", "children": [{"text": "Why it worked"}]},
            {"_type": "block", "style": "normal", "children": [{"text": "Strong "}, {"text": "hook"}]},
            {"_type": "image", "asset": {}},
        ]

        assert portable_text_to_html(blocks) == "<h2>Why it worked</h2><p>Strong hook</p>"

    def test_escapes_text(self):
        blocks = [{"_type": "block", "children": [{"text": "<b>&"}]}]
        assert portable_text_to_html(blocks) == "<p>&lt;b&gt;&amp;</p>"

    def test_non_list_is_empty(self):
        assert portable_text_to_html(None) == ""


class TestSyncHelpers:
    """Tests for the document -> row mapping."""

    def test_long_form_structure_keeps_body_only(self):
        document = {"format": "Duga Forma", "structure": {"hook": "h", "body": "b", "cta": "c"}}
        assert template_structure(document) == {"body": "b"}

    def test_short_form_structure_fills_missing_parts(self):
        document = {"format": "Kratka Forma", "structure": {"hook": "h"}}
        assert template_structure(document) == {"hook": "h", "body": "", "cta": ""}

    def test_case_study_row(self):
        row = case_study_row({
            "title": "Leg day reel",
            "niche": "Fitness",
            "format": "Kratka Forma",
            "analysis": [{"_type": "block", "children": [{"text": "Great hook"}]}],
            "resultViews": "1.2M",
            "publishDate": "2024-03-01T00:00:00Z",
        }, ADMIN_ID)

        assert row["user_id"] == ADMIN_ID
        assert row["is_admin_case_study"] is True
        assert row["status"] == "published"
        assert row["analysis"] == "<p>Great hook</p>"
        assert row["result_views"] == "1.2M"
        assert row["hook"] is None


class TestCMSSyncService:
    """Tests for CMSSyncService."""

    def test_sync_templates_collects_item_errors(self):
        """Test that one failing template doesn't stop the others."""
        cms = MagicMock()
        cms.fetch.return_value = [
            {"title": "Existing", "format": "Kratka Forma", "niche": "Fitness", "isPublished": True},
            {"title": "Broken", "format": "Kratka Forma", "niche": "Fitness", "isPublished": True},
            {"title": "Fresh", "format": "Duga Forma", "niche": "Marketing", "isPublished": False},
        ]
        db = FakeSupabase().respond(
            "templates",
            [{"id": "tpl-1"}], [],              # Existing: lookup, update
            pg_error("constraint violated"),    # Broken: lookup fails
            [], [],                             # Fresh: lookup, insert
        )

        report = CMSSyncService.sync_templates(cms, db, ADMIN_ID)

        assert report.success
        assert report.total == 3
        assert report.synced == 2
        assert report.errors == ['Template "Broken": constraint violated']
        assert db.queries_on("templates", "update")[0].filters() == {"id": "tpl-1"}
        insert = db.queries_on("templates", "insert")[0]
        assert insert.payload()["created_by"] == ADMIN_ID
        assert insert.payload()["structure"] == {"body": ""}

    def test_sync_case_studies_updates_by_sanity_id(self):
        cms = MagicMock()
        cms.fetch.return_value = [
            {"sanityId": "cs-1", "title": "Known", "niche": "Fitness", "format": "Kratka Forma"},
            {"sanityId": "cs-2", "title": "New", "niche": "Fitness", "format": "Kratka Forma"},
        ]
        db = FakeSupabase().respond(
            "tasks",
            {"id": "cs-1"}, [],                 # Known: lookup, update
            not_found(), [],                    # New: lookup, insert
        )

        report = CMSSyncService.sync_case_studies(cms, db, ADMIN_ID)

        assert report.synced == 2
        assert report.errors is None
        update = db.queries_on("tasks", "update")[0]
        assert "user_id" not in update.payload()
        assert db.queries_on("tasks", "insert")[0].payload()["user_id"] == ADMIN_ID

    def test_cms_failure_propagates(self):
        cms = MagicMock()
        cms.fetch.side_effect = CMSError("Sanity request failed")

        with pytest.raises(CMSError):
            CMSSyncService.sync_templates(cms, FakeSupabase(), ADMIN_ID)
