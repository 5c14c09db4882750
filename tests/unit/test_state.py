"""Newsletter lifecycle transitions."""

from datetime import UTC, datetime, timedelta

import pytest

from bulletin.domain import state
from bulletin.domain.entities import Newsletter, NewsletterStatistics, NewsletterStatus
from bulletin.domain.errors import IllegalTransition, InvalidScheduleTime

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

DRAFT = NewsletterStatus.DRAFT
SCHEDULED = NewsletterStatus.SCHEDULED
SENDING = NewsletterStatus.SENDING
SENT = NewsletterStatus.SENT
FAILED = NewsletterStatus.FAILED
CANCELLED = NewsletterStatus.CANCELLED


def make_newsletter(status: NewsletterStatus = DRAFT) -> Newsletter:
    return Newsletter(number=5, header_text="Weekly", status=status)


class TestGuards:
    @pytest.mark.parametrize(
        "current,new,allowed",
        [
            (DRAFT, SCHEDULED, True),
            (DRAFT, SENDING, True),
            (DRAFT, SENT, False),
            (DRAFT, CANCELLED, False),
            (SCHEDULED, SENDING, True),
            (SCHEDULED, CANCELLED, True),
            (SCHEDULED, DRAFT, False),
            (SENDING, SENT, True),
            (SENDING, FAILED, True),
            (SENDING, CANCELLED, False),
            (FAILED, SENDING, True),
            (FAILED, DRAFT, False),
            (SENT, SENDING, False),
            (CANCELLED, SCHEDULED, False),
        ],
    )
    def test_can_transition(self, current, new, allowed) -> None:
        assert state.can_transition(current, new) is allowed

    def test_final_states_have_no_exits(self) -> None:
        for status in (SENT, CANCELLED):
            assert state.is_final(status)
            assert all(not state.can_transition(status, s) for s in NewsletterStatus)

    def test_editable_statuses(self) -> None:
        assert [s for s in NewsletterStatus if state.can_edit(s)] == [DRAFT, SCHEDULED]

    def test_sendable_statuses(self) -> None:
        assert [s for s in NewsletterStatus if state.can_send(s)] == [DRAFT, SCHEDULED, FAILED]

    def test_cancellable_statuses(self) -> None:
        # SENDING is cancellable by guard but has no CANCELLED edge
        assert [s for s in NewsletterStatus if state.can_cancel(s)] == [SCHEDULED, SENDING]


class TestTransition:
    def test_transition_updates_status_and_timestamp(self) -> None:
        newsletter = make_newsletter()

        state.transition(newsletter, SENDING, NOW)

        assert newsletter.status == SENDING
        assert newsletter.updated_at == NOW

    def test_illegal_transition_raises_and_leaves_state(self) -> None:
        newsletter = make_newsletter(SENT)

        with pytest.raises(IllegalTransition) as exc:
            state.transition(newsletter, SENDING, NOW)

        assert exc.value.code == "illegal_transition"
        assert exc.value.current == SENT
        assert newsletter.status == SENT


class TestSchedule:
    def test_schedule_future(self) -> None:
        newsletter = make_newsletter()
        when = NOW + timedelta(hours=2)

        state.schedule(newsletter, when, NOW)

        assert newsletter.status == SCHEDULED
        assert newsletter.scheduled_at == when

    def test_schedule_past_raises(self) -> None:
        newsletter = make_newsletter()

        with pytest.raises(InvalidScheduleTime):
            state.schedule(newsletter, NOW - timedelta(minutes=1), NOW)

        assert newsletter.status == DRAFT
        assert newsletter.scheduled_at is None

    def test_schedule_now_is_not_future(self) -> None:
        with pytest.raises(InvalidScheduleTime):
            state.schedule(make_newsletter(), NOW, NOW)

    def test_naive_time_raises(self) -> None:
        newsletter = make_newsletter()

        with pytest.raises(InvalidScheduleTime, match="UTC offset"):
            state.schedule(newsletter, datetime(2030, 1, 1), NOW)

        assert newsletter.status == DRAFT

    def test_reschedule_keeps_status(self) -> None:
        newsletter = make_newsletter()
        state.schedule(newsletter, NOW + timedelta(hours=1), NOW)

        later = NOW + timedelta(days=1)
        state.schedule(newsletter, later, NOW)

        assert newsletter.status == SCHEDULED
        assert newsletter.scheduled_at == later

    def test_schedule_sent_newsletter_raises(self) -> None:
        with pytest.raises(IllegalTransition):
            state.schedule(make_newsletter(SENT), NOW + timedelta(hours=1), NOW)

    def test_past_time_reported_before_state(self) -> None:
        with pytest.raises(InvalidScheduleTime):
            state.schedule(make_newsletter(SENT), NOW - timedelta(hours=1), NOW)


class TestDeliveryTransitions:
    def test_mark_as_sent_merges_statistics(self) -> None:
        newsletter = make_newsletter()
        state.mark_as_sending(newsletter, NOW)

        state.mark_as_sent(
            newsletter, NewsletterStatistics(recipients=10, sent=10, campaign_id="c1"), NOW
        )

        assert newsletter.status == SENT
        assert newsletter.sent_at == NOW
        assert newsletter.statistics.sent == 10
        assert newsletter.statistics.campaign_id == "c1"

    def test_mark_as_sending_from_sent_raises(self) -> None:
        with pytest.raises(IllegalTransition):
            state.mark_as_sending(make_newsletter(SENT), NOW)

    def test_mark_as_sent_requires_sending(self) -> None:
        with pytest.raises(IllegalTransition):
            state.mark_as_sent(make_newsletter(DRAFT), None, NOW)

    def test_mark_as_failed_records_reason(self) -> None:
        newsletter = make_newsletter(SENDING)

        state.mark_as_failed(
            newsletter,
            "provider down",
            NOW,
            NewsletterStatistics(recipients=3, failed=3, errors=["provider down"]),
        )

        assert newsletter.status == FAILED
        assert newsletter.statistics.failure_reason == "provider down"
        assert newsletter.statistics.failed == 3
        assert newsletter.statistics.errors == ["provider down"]

    def test_failed_can_retry(self) -> None:
        newsletter = make_newsletter(FAILED)

        state.mark_as_sending(newsletter, NOW)

        assert newsletter.status == SENDING


class TestCancel:
    def test_cancel_scheduled(self) -> None:
        newsletter = make_newsletter(SCHEDULED)

        state.cancel(newsletter, NOW)

        assert newsletter.status == CANCELLED

    @pytest.mark.parametrize("status", [DRAFT, SENT, FAILED, CANCELLED])
    def test_cancel_not_allowed(self, status) -> None:
        with pytest.raises(IllegalTransition):
            state.cancel(make_newsletter(status), NOW)

    def test_cancel_sending_has_no_edge(self) -> None:
        newsletter = make_newsletter(SENDING)

        with pytest.raises(IllegalTransition):
            state.cancel(newsletter, NOW)

        assert newsletter.status == SENDING
