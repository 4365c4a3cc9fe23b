# =============================================================================
# core/resources/competitors.py - Competitors Resource
# =============================================================================

from __future__ import annotations

import logging

from core.models.competitor import Competitor, CompetitorCreate, CompetitorUpdate
from core.resources.base import MutationResult, Resource
from lib.supabase_client import first_row

logger = logging.getLogger(__name__)

TABLE = "competitors"


class CompetitorsResource(Resource[list[Competitor]]):
    """Competitors tracked by one user, newest first."""

    name = "competitors"

    def empty(self) -> list[Competitor]:
        return []

    def fetch(self) -> list[Competitor]:
        response = (
            self._client.table(TABLE)
            .select("*")
            .eq("user_id", self._user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Competitor.model_validate(row) for row in response.data or []]

    def create(self, competitor: CompetitorCreate) -> MutationResult[Competitor]:
        def action() -> Competitor:
            payload = competitor.model_dump(exclude_unset=True)
            payload["user_id"] = self._user_id
            response = self._client.table(TABLE).insert(payload).execute()
            created = Competitor.model_validate(first_row(response, "Competitor"))
            self._update(lambda items: [created, *items])
            return created

        return self._mutate("create", action)

    def update(self, competitor_id: str, updates: CompetitorUpdate) -> MutationResult[Competitor]:
        def action() -> Competitor:
            response = (
                self._client.table(TABLE)
                .update(updates.model_dump(exclude_unset=True))
                .eq("id", competitor_id)
                .execute()
            )
            updated = Competitor.model_validate(first_row(response, "Competitor"))
            self._update(lambda items: [updated if c.id == competitor_id else c for c in items])
            return updated

        return self._mutate("update", action)

    def delete(self, competitor_id: str) -> MutationResult[str]:
        def action() -> str:
            self._client.table(TABLE).delete().eq("id", competitor_id).execute()
            self._update(lambda items: [c for c in items if c.id != competitor_id])
            return competitor_id

        return self._mutate("delete", action)
