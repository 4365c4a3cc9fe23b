# =============================================================================
# core/resources/profile.py - Profile Resource
# =============================================================================
# The caller's `profiles` row with nested `social_links`.
#
# The row is created on first fetch when it does not exist yet, so every
# signed-in user has a profile after their first visit.
#
# Social links are saved one by one. A save is NOT atomic: each add/remove
# is reported separately and earlier successes stay applied when a later
# item fails.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from supabase import PostgrestAPIError

from core.models.notification import Notification
from core.models.profile import Profile, ProfileUpdate, SocialLink, SocialLinkInput
from core.resources.base import MutationResult, Resource
from lib.supabase_client import first_row, is_not_found

logger = logging.getLogger(__name__)

TABLE = "profiles"
PROFILE_SELECT = "*, social_links(*)"


@dataclass
class SocialLinkChange:
    """One add or remove performed while saving social links."""
    action: str  # "add" | "remove"
    url: str
    link_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SocialLinkReport:
    """Per-item outcome of save_social_links()."""
    changes: list[SocialLinkChange] = field(default_factory=list)

    @property
    def failures(self) -> list[SocialLinkChange]:
        return [change for change in self.changes if not change.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def notifications(self) -> list[Notification]:
        """One error notification per failed item."""
        result = []
        for change in self.failures:
            title = "Failed to add link" if change.action == "add" else "Failed to remove link"
            result.append(Notification.error(title, change.error))
        return result


class ProfileResource(Resource[Profile | None]):
    """
    Profile and social links for one user.

    Example:
        profile = ProfileResource(db, user.id)
        profile.load()
        report = profile.save_social_links([SocialLinkInput(url="https://...")])
    """

    name = "profile"

    def empty(self) -> Profile | None:
        return None

    def fetch(self) -> Profile:
        try:
            response = (
                self._client.table(TABLE)
                .select(PROFILE_SELECT)
                .eq("id", self._user_id)
                .single()
                .execute()
            )
        except PostgrestAPIError as e:
            if not is_not_found(e):
                raise
            return self._create_default()
        return Profile.model_validate(response.data)

    def _create_default(self) -> Profile:
        logger.info(f"Creating profile for user {self._user_id}")
        response = self._client.table(TABLE).insert({"id": self._user_id}).execute()
        return Profile.model_validate(first_row(response, "Profile"))

    # -------------------------------------------------------------------------
    # Profile fields
    # -------------------------------------------------------------------------

    def update(self, updates: ProfileUpdate) -> MutationResult[Profile]:
        """Write the explicitly-set profile fields. Social links are ignored."""
        def action() -> Profile:
            fields = updates.profile_fields()
            if not fields and self.state.data is not None:
                return self.state.data
            response = (
                self._client.table(TABLE)
                .update(fields)
                .eq("id", self._user_id)
                .execute()
            )
            row = first_row(response, "Profile")
            links = self.state.data.social_links if self.state.data else []
            updated = Profile.model_validate({**row, "social_links": [l.model_dump() for l in links]})
            self._update(lambda _: updated)
            return updated

        return self._mutate("update", action)

    # -------------------------------------------------------------------------
    # Social links
    # -------------------------------------------------------------------------

    def add_social_link(self, url: str) -> MutationResult[SocialLink]:
        def action() -> SocialLink:
            response = (
                self._client.table("social_links")
                .insert({"profile_id": self._user_id, "url": url})
                .execute()
            )
            link = SocialLink.model_validate(first_row(response, "Social link"))
            self._update(
                lambda p: p.model_copy(update={"social_links": [*p.social_links, link]}) if p else p
            )
            return link

        return self._mutate("add_social_link", action)

    def remove_social_link(self, link_id: str) -> MutationResult[str]:
        def action() -> str:
            self._client.table("social_links").delete().eq("id", link_id).execute()
            self._update(
                lambda p: p.model_copy(update={
                    "social_links": [l for l in p.social_links if l.id != link_id]
                }) if p else p
            )
            return link_id

        return self._mutate("remove_social_link", action)

    def save_social_links(self, desired: Iterable[SocialLinkInput]) -> SocialLinkReport:
        """
        Make the stored links match `desired`.

        Links without a known id are added, stored links missing from
        `desired` are removed. New links go first, then removals, each as its
        own request. Failures don't stop the remaining items.
        """
        desired = list(desired)
        current = self.state.data.social_links if self.state.data else []
        current_ids = {link.id for link in current}
        desired_ids = {link.id for link in desired if link.id}

        report = SocialLinkReport()

        for link in desired:
            if link.id and link.id in current_ids:
                continue
            result = self.add_social_link(link.url)
            report.changes.append(SocialLinkChange(
                action="add",
                url=link.url,
                link_id=result.data.id if result.data else None,
                error=result.error,
            ))

        for link in current:
            if link.id in desired_ids:
                continue
            result = self.remove_social_link(link.id)
            report.changes.append(SocialLinkChange(
                action="remove",
                url=link.url,
                link_id=link.id,
                error=result.error,
            ))

        if report.failures:
            logger.warning(
                f"Saved social links for user {self._user_id} with "
                f"{len(report.failures)}/{len(report.changes)} failures"
            )
        return report
