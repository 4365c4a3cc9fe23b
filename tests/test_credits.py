# =============================================================================
# tests/test_credits.py - AI Credits Tests
# =============================================================================
# Unit tests for the credits model, CreditsResource and CreditsPoller:
# - Absent row reads as 0 used / 500 remaining
# - used + remaining always equals the quota
# - Failed reads fall back to zero usage with the error recorded
# - consume() refuses past the quota, creates the month's row and
#   retries conditional writes it lost to a concurrent request
# - The poller reloads periodically and stops cleanly
#
# Run with: pytest tests/test_credits.py -v
# =============================================================================

import asyncio
from datetime import datetime, timezone

import pytest

from core.models.credits import MAX_CREDITS, AICredits
from core.resources.credits import CONSUME_ATTEMPTS, CreditsPoller, CreditsResource
from lib.utils import first_of_next_month
from tests.conftest import USER_ID, FakeSupabase, pg_error

NOW = datetime(2024, 12, 15, 9, 30, tzinfo=timezone.utc)


def fixed_now():
    return NOW


def credits_resource(db, user_id=USER_ID):
    return CreditsResource(db, user_id, now=fixed_now)


class TestAICredits:
    """Tests for the AICredits model."""

    @pytest.mark.parametrize("used", [0, 1, 250, 499, 500, 520])
    def test_sum_equals_quota(self, used):
        credits = AICredits.from_usage(used, first_of_next_month(NOW))
        assert credits.credits_used + credits.credits_remaining == MAX_CREDITS

    def test_remaining_is_not_clamped(self):
        """Test that over-use shows as negative remaining."""
        credits = AICredits.from_usage(520, first_of_next_month(NOW))
        assert credits.credits_remaining == -20
        assert not credits.has_credits

    def test_reset_at_crosses_year(self):
        credits = AICredits.from_usage(0, first_of_next_month(NOW))
        assert credits.reset_at == "2025-01-01T00:00:00+00:00"


class TestCreditsResource:
    """Tests for CreditsResource.load and consume."""

    def test_absent_row_reads_as_unused(self):
        """Test that a month without a row means nothing used."""
        db = FakeSupabase().respond("ai_credits", [])

        state = credits_resource(db).load()

        assert state.error is None
        assert state.loading is False
        assert state.data.credits_used == 0
        assert state.data.credits_remaining == 500

    def test_existing_row(self):
        db = FakeSupabase().respond("ai_credits", [{"id": "c1", "credits_used": 42}])

        state = credits_resource(db).load()

        assert state.data.credits_used == 42
        assert state.data.credits_remaining == 458
        query = db.queries_on("ai_credits")[0]
        assert query.filters() == {"user_id": USER_ID, "month": 12, "year": 2024}

    def test_duplicate_rows_count_toward_usage(self):
        """Test that two rows for the same month are not mistaken for no row."""
        db = FakeSupabase().respond("ai_credits", [
            {"id": "c1", "credits_used": 300},
            {"id": "c2", "credits_used": 200},
        ])

        state = credits_resource(db).load()

        assert state.error is None
        assert state.data.credits_used == 500
        assert not state.data.has_credits

    def test_error_falls_back_to_zero_usage(self):
        """Test that a failed read keeps a usable counter and records the error."""
        db = FakeSupabase().respond("ai_credits", pg_error("connection refused"))

        state = credits_resource(db).load()

        assert state.error == "connection refused"
        assert state.data.credits_used == 0
        assert state.data.credits_remaining == 500

    def test_null_user_never_queries(self):
        db = FakeSupabase()

        state = credits_resource(db, user_id=None).load()

        assert db.executed == []
        assert state.loading is False
        assert state.data is None

    def test_consume_creates_row_for_new_month(self):
        """Test that the first consume of a month upserts the row."""
        db = FakeSupabase().respond("ai_credits", [], [{"id": "c1", "credits_used": 1}])
        credits = credits_resource(db)

        result = credits.consume(1)

        assert result.ok
        assert result.data.credits_used == 1
        upsert = db.queries_on("ai_credits", "upsert")[0]
        assert upsert.payload() == {
            "user_id": USER_ID,
            "month": 12,
            "year": 2024,
            "credits_used": 1,
            "reset_at": "2025-01-01T00:00:00+00:00",
        }
        _, _, kwargs = next(call for call in upsert.calls if call[0] == "upsert")
        assert kwargs == {"on_conflict": "user_id,month,year", "ignore_duplicates": True}
        assert credits.state.data.credits_remaining == 499

    def test_consume_updates_existing_row(self):
        db = FakeSupabase().respond(
            "ai_credits",
            [{"id": "c1", "credits_used": 10}],
            [{"id": "c1", "credits_used": 12}],
        )

        result = credits_resource(db).consume(2)

        assert result.data.credits_used == 12
        update = db.queries_on("ai_credits", "update")[0]
        assert update.payload() == {"credits_used": 12}
        assert update.filters() == {"id": "c1", "credits_used": 10}

    def test_consume_retries_after_concurrent_update(self):
        """Test that an increment lost to another request is re-read and retried."""
        # Arrange: the row moves from 10 to 11 between our read and our write
        db = FakeSupabase().respond(
            "ai_credits",
            [{"id": "c1", "credits_used": 10}],
            [],
            [{"id": "c1", "credits_used": 11}],
            [{"id": "c1", "credits_used": 12}],
        )

        # Act
        result = credits_resource(db).consume(1)

        # Assert: both increments survive
        assert result.data.credits_used == 12
        updates = db.queries_on("ai_credits", "update")
        assert [u.payload() for u in updates] == [{"credits_used": 11}, {"credits_used": 12}]
        assert updates[1].filters() == {"id": "c1", "credits_used": 11}

    def test_consume_after_concurrent_first_use(self):
        """Test that losing the first-use insert race updates the winner's row."""
        db = FakeSupabase().respond(
            "ai_credits",
            [],
            [],
            [{"id": "c1", "credits_used": 1}],
            [{"id": "c1", "credits_used": 2}],
        )

        result = credits_resource(db).consume(1)

        assert result.data.credits_used == 2
        assert len(db.queries_on("ai_credits", "upsert")) == 1
        assert db.queries_on("ai_credits", "update")[0].filters() == {"id": "c1", "credits_used": 1}

    def test_consume_with_duplicate_rows_never_inserts(self):
        """Test that a duplicated month is charged on its first row instead of growing."""
        db = FakeSupabase().respond(
            "ai_credits",
            [{"id": "c1", "credits_used": 3}, {"id": "c2", "credits_used": 1}],
            [{"id": "c1", "credits_used": 4}],
        )

        result = credits_resource(db).consume(1)

        assert result.data.credits_used == 5
        assert db.queries_on("ai_credits", "upsert") == []
        assert db.queries_on("ai_credits", "insert") == []
        assert db.queries_on("ai_credits", "update")[0].filters() == {"id": "c1", "credits_used": 3}

    def test_consume_gives_up_under_contention(self):
        db = FakeSupabase()
        for _ in range(CONSUME_ATTEMPTS):
            db.respond("ai_credits", [{"id": "c1", "credits_used": 10}], [])

        result = credits_resource(db).consume(1)

        assert not result.ok
        assert "try again" in result.error
        assert len(db.queries_on("ai_credits", "update")) == CONSUME_ATTEMPTS

    def test_consume_refuses_when_exhausted(self):
        """Test that consume never writes past the quota."""
        db = FakeSupabase().respond("ai_credits", [{"id": "c1", "credits_used": 500}])

        result = credits_resource(db).consume(1)

        assert not result.ok
        assert "0 remaining" in result.error
        assert db.queries_on("ai_credits", "update") == []

    def test_consume_write_failure_is_reported(self):
        db = FakeSupabase().respond(
            "ai_credits", [{"id": "c1", "credits_used": 3}], pg_error("write failed")
        )
        credits = credits_resource(db)

        result = credits.consume(1)

        assert result.error == "write failed"
        assert credits.state.error == "write failed"

    def test_consume_without_user(self):
        result = credits_resource(FakeSupabase(), user_id=None).consume(1)
        assert result.error == "User not authenticated"


class TestCreditsPoller:
    """Tests for CreditsPoller."""

    def test_polls_and_stops_cleanly(self):
        """Test that the poller pushes updates and its task ends on stop()."""
        db = FakeSupabase()
        for used in range(10):
            db.respond("ai_credits", [{"id": "c1", "credits_used": used}])
        updates = []

        async def on_update(state):
            updates.append(state.data.credits_used)

        async def scenario():
            poller = CreditsPoller(credits_resource(db), interval=0.01, on_update=on_update)
            poller.start()
            assert poller.running
            while len(updates) < 3:
                await asyncio.sleep(0.01)
            await poller.stop()
            return poller

        poller = asyncio.run(scenario())

        assert not poller.running
        assert updates[:3] == [0, 1, 2]

    def test_failing_update_ends_poller_and_stop_succeeds(self):
        """Test that a push to a closed socket ends the poller without breaking stop()."""
        calls = []

        async def on_update(state):
            calls.append(state)
            raise RuntimeError("socket closed")

        async def scenario():
            poller = CreditsPoller(credits_resource(FakeSupabase()), interval=0.01, on_update=on_update)
            poller.start()
            while poller.running:
                await asyncio.sleep(0.01)
            await poller.stop()
            return poller

        poller = asyncio.run(scenario())

        assert len(calls) == 1
        assert not poller.running

    def test_stop_before_start(self):
        async def scenario():
            poller = CreditsPoller(credits_resource(FakeSupabase()), interval=0.01)
            await poller.stop()
            return poller

        assert not asyncio.run(scenario()).running

    def test_no_loads_after_stop(self):
        db = FakeSupabase()

        async def scenario():
            poller = CreditsPoller(credits_resource(db), interval=0.01)
            poller.start()
            await asyncio.sleep(0.05)
            await poller.stop()
            # Let a load that was already running in its thread finish
            await asyncio.sleep(0.02)
            executed = len(db.executed)
            await asyncio.sleep(0.05)
            return executed

        executed = asyncio.run(scenario())
        assert len(db.executed) == executed
