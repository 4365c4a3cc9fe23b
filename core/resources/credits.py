# =============================================================================
# core/resources/credits.py - AI Credits Resource & Poller
# =============================================================================
# Reads the caller's `ai_credits` row for the current (month, year) and
# derives remaining credits from the 500 monthly quota. Writes are
# conditional (see consume) and the table carries a unique
# (user_id, month, year) constraint for the first-use upsert.
#
# Failure policy: when the read fails, the resource records the error AND
# reports zero usage (500 remaining). The UI keeps working during an outage
# and the error field tells callers the count is not authoritative.
#
# CreditsPoller re-runs load() on a fixed interval as an asyncio task until
# stop() is called. Views that open a poller must stop it on teardown.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from supabase import Client

from core.models.credits import AICredits
from core.resources.base import MutationResult, Resource
from lib.utils import first_of_next_month, utcnow

logger = logging.getLogger(__name__)

TABLE = "ai_credits"

# Default refresh interval for open credit views
POLL_INTERVAL_SECONDS = 30.0

# Conditional writes tried by consume() before giving up
CONSUME_ATTEMPTS = 3


class InsufficientCreditsError(Exception):
    """Raised internally when a consume() request exceeds the remaining credits."""


class CreditsContentionError(Exception):
    """Raised internally when every consume() attempt lost a race with another writer."""


class CreditsResource(Resource[AICredits | None]):
    """
    Monthly AI credit counter for one user.

    Example:
        credits = CreditsResource(db, user.id)
        credits.load()
        if credits.has_credits:
            credits.consume(1)
    """

    name = "credits"

    def __init__(
        self,
        client: Client,
        user_id: str | UUID | None,
        now: Callable[[], datetime] = utcnow,
    ):
        self._now = now
        super().__init__(client, user_id)

    def empty(self) -> AICredits | None:
        return None

    def _zero_usage(self) -> AICredits:
        return AICredits.from_usage(0, first_of_next_month(self._now()))

    def _fetch_rows(self, now: datetime) -> list[dict[str, Any]]:
        # Not .single(): PGRST116 is also what PostgREST returns for two rows,
        # and a duplicated month must not read as "nothing used".
        response = (
            self._client.table(TABLE)
            .select("*")
            .eq("user_id", self._user_id)
            .eq("month", now.month)
            .eq("year", now.year)
            .order("id")
            .execute()
        )
        return response.data or []

    @staticmethod
    def _used(rows: list[dict[str, Any]]) -> int:
        return sum(row.get("credits_used") or 0 for row in rows)

    def fetch(self) -> AICredits:
        now = self._now()
        used = self._used(self._fetch_rows(now))
        return AICredits.from_usage(used, first_of_next_month(now))

    def fallback(self, exc: BaseException) -> AICredits:
        return self._zero_usage()

    @property
    def has_credits(self) -> bool:
        credits = self.state.data
        return credits is not None and credits.has_credits

    def _create_row(self, now: datetime, amount: int) -> bool:
        """Insert the month's row. False when a concurrent request created it first."""
        response = (
            self._client.table(TABLE)
            .upsert(
                {
                    "user_id": self._user_id,
                    "month": now.month,
                    "year": now.year,
                    "credits_used": amount,
                    "reset_at": first_of_next_month(now).isoformat(),
                },
                on_conflict="user_id,month,year",
                ignore_duplicates=True,
            )
            .execute()
        )
        return bool(response.data)

    def _increment_row(self, row: dict[str, Any], amount: int) -> bool:
        """Compare-and-set on the row's counter. False when it changed since it was read."""
        seen = row.get("credits_used") or 0
        response = (
            self._client.table(TABLE)
            .update({"credits_used": seen + amount})
            .eq("id", row["id"])
            .eq("credits_used", seen)
            .execute()
        )
        return bool(response.data)

    def consume(self, amount: int = 1) -> MutationResult[AICredits]:
        """
        Record `amount` credits as used this month.

        Each attempt reads the month's usage, refuses when fewer than `amount`
        credits remain, then writes conditionally: the month's row is created
        with ON CONFLICT DO NOTHING, and an existing row is only updated if
        its counter still holds the value that was read. A lost race re-reads
        and tries again, up to CONSUME_ATTEMPTS times.

        Returns:
            MutationResult with the new usage, or the error that stopped it
        """
        if amount < 1:
            raise ValueError("amount must be positive")

        def action() -> AICredits:
            for attempt in range(1, CONSUME_ATTEMPTS + 1):
                now = self._now()
                rows = self._fetch_rows(now)
                used = self._used(rows)
                current = AICredits.from_usage(used, first_of_next_month(now))
                if current.credits_remaining < amount:
                    raise InsufficientCreditsError(
                        f"Not enough AI credits: {current.credits_remaining} remaining"
                    )

                written = self._increment_row(rows[0], amount) if rows else self._create_row(now, amount)
                if written:
                    updated = AICredits.from_usage(used + amount, first_of_next_month(now))
                    self._update(lambda _: updated)
                    return updated

                logger.info(
                    f"Credits for user {self._user_id} changed during consume "
                    f"(attempt {attempt}/{CONSUME_ATTEMPTS}), retrying"
                )

            raise CreditsContentionError(
                "AI credits are being used elsewhere, please try again"
            )

        try:
            return self._mutate("consume", action)
        except (InsufficientCreditsError, CreditsContentionError) as e:
            return MutationResult(error=str(e))


class CreditsPoller:
    """
    Periodically reloads a CreditsResource.

    Loads run in a worker thread (the Supabase client is synchronous). After
    each load `on_update` is awaited with the new state, if given.

    Usage:
        poller = CreditsPoller(credits, interval=30, on_update=send)
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        resource: CreditsResource,
        interval: float = POLL_INTERVAL_SECONDS,
        on_update: Callable[..., Any] | None = None,
    ):
        self.resource = resource
        self.interval = interval
        self.on_update = on_update
        self._task: asyncio.Task | None = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Credits poller started for user {self.resource.user_id}")

    async def _run(self) -> None:
        # A failed load is already absorbed by load(). Anything escaping here
        # (a push to a closed socket, a programming error) ends this poller
        # only, and stop() must still succeed afterwards.
        try:
            while not self._stopped.is_set():
                state = await asyncio.to_thread(self.resource.load)
                if self.on_update is not None:
                    await self.on_update(state)
                try:
                    await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    continue
        except Exception as e:
            logger.warning(f"Credits poller for user {self.resource.user_id} stopped on error: {e}")

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        self._stopped.set()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Credits poller for user {self.resource.user_id} ended with error: {e}")
        self._task = None
        logger.debug(f"Credits poller stopped for user {self.resource.user_id}")
