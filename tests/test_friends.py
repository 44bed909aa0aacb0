"""
Friends / attendance aggregator tests
"""

from clubdesk.engine.friends import eligible_population, summarize_friends
from clubdesk.engine.models import AdultProfile, AttendanceFact


def _yes(event, *profile_ids):
    return {
        pid: AttendanceFact(event_id=event.event_id, profile_id=pid, attending="yes")
        for pid in profile_ids
    }


class TestAdultEvent:
    """men / women / juniors buckets"""

    def test_buckets(self, adults, kid, practice_far):
        facts = _yes(practice_far, "p-men", "p-junior")
        facts["p-women"] = AttendanceFact(event_id=practice_far.event_id, profile_id="p-women", attending="no")

        summary = summarize_friends(practice_far, adults + [kid], facts)

        assert set(summary) == {"men", "women", "juniors"}
        # Bob, Dan, Pat / Alice, Carol / Eve
        assert summary["men"].total == 3
        assert summary["women"].total == 2
        assert summary["juniors"].total == 1
        assert summary["men"].yes == 1
        assert summary["juniors"].yes == 1
        assert summary["women"].yes == 0
        assert [p.name for p in summary["men"].people] == ["Bob"]

    def test_totals_equal_eligible_population(self, adults, kid, practice_far):
        population = adults + [kid]
        summary = summarize_friends(practice_far, population, {})
        eligible = eligible_population(practice_far, population)
        assert sum(b.total for b in summary.values()) == len(eligible)
        assert all(b.yes <= b.total for b in summary.values())

    def test_inactive_excluded(self, man, practice_far):
        gone = AdultProfile(profile_id="gone", name="Gone", gender="Male", groups=["Men"], status="removed")
        summary = summarize_friends(practice_far, [man, gone], _yes(practice_far, "gone"))
        assert summary["men"].total == 1
        assert summary["men"].yes == 0

    def test_invisible_excluded(self, man, woman, practice_soon):
        summary = summarize_friends(practice_soon, [man, woman], _yes(practice_soon, "p-women"))
        assert summary["women"].total == 0
        assert summary["women"].yes == 0


class TestChildEvent:
    def test_kids_bucket_only(self, adults, kid, kids_13_15):
        summary = summarize_friends(kids_13_15, adults + [kid], _yes(kids_13_15, "kid-14"))
        assert set(summary) == {"kids"}
        assert summary["kids"].total == 1
        assert summary["kids"].yes == 1
        assert summary["kids"].people[0].profile_id == "kid-14"
