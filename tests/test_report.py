"""Tests for daily report generation."""

import pytest

from conftest import pageleave, pageview
from daily_analytics.models import CanonicalRecord
from daily_analytics.report import generate_report

DATE = "2026-01-15"

EXCELLENT_BOUNCE = "Bounce rate is excellent, showing strong visitor stickiness"
REASONABLE_BOUNCE = "Bounce rate is within a reasonable range"
HIGH_BOUNCE = "Bounce rate is high, recommend improving page content"
NEW_MIX = "New visitors are predominant, showing good acquisition"
RETURN_MIX = "Return visitors are predominant, showing good loyalty"


class TestEmptyReport:
    """Test the report for a day with no records."""

    def test_summary_is_zero(self):
        summary = generate_report([], DATE).summary
        assert summary.pv == 0
        assert summary.uv == 0
        assert summary.new_visitors == 0
        assert summary.return_visitors == 0
        assert summary.avg_session_duration == 0
        assert summary.bounce_rate == 0
        assert summary.pages_per_session == 0

    def test_has_24_zeroed_hours(self):
        hourly = generate_report([], DATE).hourly_data
        assert len(hourly) == 24
        assert all(h.pv == 0 and h.uv == 0 for h in hourly)

    def test_only_unconditional_insights(self):
        """Peak-hour and top-page lines are skipped."""
        assert generate_report([], DATE).insights == [EXCELLENT_BOUNCE, RETURN_MIX]

    def test_empty_breakdowns(self):
        report = generate_report([], DATE)
        assert report.date == DATE
        assert report.page_stats == []
        assert report.source_stats == []


class TestSummary:
    """Test headline metrics."""

    def test_single_google_pageview(self):
        report = generate_report(
            [pageview(visitor="A", path="/home", referrer="search_google", is_new=True)], DATE
        )
        assert report.summary.pv == 1
        assert report.summary.uv == 1
        assert report.summary.new_visitors == 1
        assert len(report.source_stats) == 1
        assert report.source_stats[0].source == "Google Search"
        assert report.source_stats[0].percentage == 100

    def test_unique_visitors_counted_once(self):
        records = [pageview(visitor="A"), pageview(visitor="A"), pageview(visitor="B")]
        summary = generate_report(records, DATE).summary
        assert summary.pv == 3
        assert summary.uv == 2

    def test_pageleaves_do_not_count_as_views(self):
        records = [pageview(visitor="A"), pageleave(5000, visitor="B")]
        summary = generate_report(records, DATE).summary
        assert summary.pv == 1
        assert summary.uv == 1

    def test_return_visitors_is_difference(self):
        records = [pageview(visitor="A", is_new=True), pageview(visitor="B"), pageview(visitor="C")]
        summary = generate_report(records, DATE).summary
        assert summary.new_visitors == 1
        assert summary.return_visitors == 2

    def test_return_visitors_not_clamped(self):
        """Repeat new-visitor page views can push the difference below zero."""
        records = [pageview(visitor="A", is_new=True, path="/a"), pageview(visitor="A", is_new=True, path="/b")]
        summary = generate_report(records, DATE).summary
        assert summary.new_visitors == 2
        assert summary.return_visitors == -1

    def test_pages_per_session(self):
        records = [pageview(visitor="A", path="/a"), pageview(visitor="A", path="/b"), pageview(visitor="B")]
        assert generate_report(records, DATE).summary.pages_per_session == 1.5

    def test_pages_per_session_two_decimals(self):
        records = [pageview(visitor="A"), pageview(visitor="B"), pageview(visitor="C"), pageview(visitor="C")]
        # 4 / 3 == 1.333...
        assert generate_report(records, DATE).summary.pages_per_session == 1.33


class TestAvgSessionDuration:
    """Test page-leave duration averaging."""

    def test_averages_in_seconds(self):
        records = [pageleave(10_000), pageleave(20_000)]
        assert generate_report(records, DATE).summary.avg_session_duration == 15

    def test_one_hour_is_excluded(self):
        assert generate_report([pageleave(3_600_000)], DATE).summary.avg_session_duration == 0

    def test_just_under_one_hour_is_included(self):
        # 3599.999s rounds to 3600
        assert generate_report([pageleave(3_599_999)], DATE).summary.avg_session_duration == 3600

    @pytest.mark.parametrize("duration", [0, -1000, None])
    def test_invalid_durations_excluded(self, duration):
        records = [pageleave(duration), pageleave(4000)]
        assert generate_report(records, DATE).summary.avg_session_duration == 4

    def test_outliers_excluded_not_clamped(self):
        records = [pageleave(2000), pageleave(7_200_000)]
        assert generate_report(records, DATE).summary.avg_session_duration == 2

    def test_rounds_half_up(self):
        # 2.5s rounds to 3, not to the even 2
        assert generate_report([pageleave(2500)], DATE).summary.avg_session_duration == 3

    def test_pageview_durations_ignored(self):
        record = pageview()
        record.duration = 50_000
        assert generate_report([record], DATE).summary.avg_session_duration == 0


class TestBounceRate:
    """Test bounce rate."""

    def test_single_path_visitor_bounces(self):
        records = [pageview(visitor="A", path="/a"), pageview(visitor="A", path="/a")]
        assert generate_report(records, DATE).summary.bounce_rate == 1.0

    def test_two_paths_is_not_a_bounce(self):
        records = [pageview(visitor="A", path="/a"), pageview(visitor="A", path="/b")]
        assert generate_report(records, DATE).summary.bounce_rate == 0.0

    def test_view_count_per_path_does_not_matter(self):
        records = [
            pageview(visitor="A", path="/a"),
            pageview(visitor="A", path="/a"),
            pageview(visitor="A", path="/a"),
            pageview(visitor="A", path="/b"),
            pageview(visitor="B", path="/a"),
        ]
        assert generate_report(records, DATE).summary.bounce_rate == 0.5

    def test_three_decimals(self):
        records = [
            pageview(visitor="A", path="/a"),
            pageview(visitor="B", path="/a"),
            pageview(visitor="C", path="/a"),
            pageview(visitor="C", path="/b"),
        ]
        # 2 / 3
        assert generate_report(records, DATE).summary.bounce_rate == 0.667


class TestPageStats:
    """Test per-page breakdown."""

    def test_groups_by_path(self):
        paths = ["/a", "/b", "/c", "/a", "/b", "/a", "/d"]
        records = [pageview(visitor=f"v{i}", path=p) for i, p in enumerate(paths)]
        pages = generate_report(records, DATE).page_stats
        assert len(pages) == 4
        assert sum(p.pv for p in pages) == len(paths)

    def test_sorted_by_pv_desc(self):
        records = [pageview(path="/b"), pageview(path="/a"), pageview(path="/a")]
        pages = generate_report(records, DATE).page_stats
        assert [p.path for p in pages] == ["/a", "/b"]

    def test_ties_keep_first_seen_order(self):
        records = [pageview(path="/x"), pageview(path="/y"), pageview(path="/z")]
        pages = generate_report(records, DATE).page_stats
        assert [p.path for p in pages] == ["/x", "/y", "/z"]

    def test_uv_is_distinct_visitors(self):
        records = [pageview(visitor="A", path="/a"), pageview(visitor="A", path="/a"), pageview(visitor="B", path="/a")]
        page = generate_report(records, DATE).page_stats[0]
        assert page.pv == 3
        assert page.uv == 2

    def test_name_from_last_seen_record(self):
        records = [pageview(path="/a", name="Old title"), pageview(path="/a", name="New title")]
        assert generate_report(records, DATE).page_stats[0].name == "New title"

    def test_name_falls_back_to_path(self):
        assert generate_report([pageview(path="/about")], DATE).page_stats[0].name == "/about"

    def test_missing_path_defaults_to_root(self):
        record = pageview()
        record.page_path = None
        page = generate_report([record], DATE).page_stats[0]
        assert page.path == "/"
        assert page.name == "/"


class TestSourceStats:
    """Test traffic source breakdown."""

    @pytest.mark.parametrize("tag,label", [
        ("direct", "Direct"),
        ("search_baidu", "Baidu Search"),
        ("search_google", "Google Search"),
        ("social_weibo", "Weibo"),
        ("social_zhihu", "Zhihu"),
        ("social_linkedin", "LinkedIn"),
        ("newsletter", "Other"),
    ])
    def test_labels(self, tag, label):
        source = generate_report([pageview(referrer=tag)], DATE).source_stats[0]
        assert source.source == label
        assert source.key == tag

    def test_unknown_tags_stay_separate(self):
        records = [pageview(referrer="partner_a"), pageview(referrer="partner_b")]
        sources = generate_report(records, DATE).source_stats
        assert [s.source for s in sources] == ["Other", "Other"]
        assert {s.key for s in sources} == {"partner_a", "partner_b"}

    def test_missing_referrer_is_direct(self):
        record = pageview()
        record.referrer = None
        assert generate_report([record], DATE).source_stats[0].source == "Direct"

    def test_sorted_by_uv_desc(self):
        records = [
            pageview(visitor="A", referrer="direct"),
            pageview(visitor="A", referrer="direct"),
            pageview(visitor="A", referrer="direct"),
            pageview(visitor="B", referrer="search_google"),
            pageview(visitor="C", referrer="search_google"),
        ]
        sources = generate_report(records, DATE).source_stats
        assert [s.source for s in sources] == ["Google Search", "Direct"]
        # Percentage is by page views, not visitors
        assert [s.percentage for s in sources] == [40, 60]

    def test_percentages_sum_to_about_100(self):
        tags = ["direct", "search_google", "social_weibo"] * 3 + ["social_zhihu"] * 4
        records = [pageview(visitor=f"v{i}", referrer=t) for i, t in enumerate(tags)]
        sources = generate_report(records, DATE).source_stats
        assert abs(sum(s.percentage for s in sources) - 100) <= len(sources)

    def test_percentage_rounds_half_up(self):
        # 1 of 8 is 12.5% -> 13, 7 of 8 is 87.5% -> 88
        records = [pageview(visitor="A", referrer="search_baidu")] + [
            pageview(visitor=f"v{i}", referrer="direct") for i in range(7)
        ]
        percentages = {s.key: s.percentage for s in generate_report(records, DATE).source_stats}
        assert percentages == {"direct": 88, "search_baidu": 13}


class TestHourlyData:
    """Test 24-hour distribution."""

    def test_labels(self):
        hourly = generate_report([], DATE).hourly_data
        assert hourly[0].hour == "00:00"
        assert hourly[9].hour == "09:00"
        assert hourly[23].hour == "23:00"

    def test_buckets_by_hour(self):
        records = [
            pageview(visitor="A", hour=9),
            pageview(visitor="A", hour=9),
            pageview(visitor="B", hour=9),
            pageview(visitor="C", hour=21),
        ]
        hourly = generate_report(records, DATE).hourly_data
        assert (hourly[9].pv, hourly[9].uv) == (3, 2)
        assert (hourly[21].pv, hourly[21].uv) == (1, 1)
        assert sum(h.pv for h in hourly) == 4

    def test_always_24_entries_in_order(self):
        hourly = generate_report([pageview(hour=5)], DATE).hourly_data
        assert [h.hour for h in hourly] == [f"{i:02d}:00" for i in range(24)]


class TestInsights:
    """Test narrative insights."""

    def test_peak_hour(self):
        records = [pageview(hour=14), pageview(hour=14), pageview(hour=8)]
        assert generate_report(records, DATE).insights[0] == "Traffic peaked at 14:00 with 2 page views"

    def test_peak_hour_ties_pick_earliest(self):
        records = [pageview(hour=20), pageview(hour=3)]
        assert generate_report(records, DATE).insights[0] == "Traffic peaked at 03:00 with 1 page views"

    def test_top_page_share(self):
        records = [
            pageview(visitor="A", path="/a", name="Home"),
            pageview(visitor="B", path="/a", name="Home"),
            pageview(visitor="C", path="/b"),
        ]
        insights = generate_report(records, DATE).insights
        assert insights[1] == '"Home" is the most popular page, accounting for 66.7% of total traffic'

    def test_top_page_full_share(self):
        insights = generate_report([pageview(path="/a", name="Home")], DATE).insights
        assert insights[1] == '"Home" is the most popular page, accounting for 100.0% of total traffic'

    def _visitors(self, bounced, stayed):
        records = []
        for i in range(bounced):
            records.append(pageview(visitor=f"b{i}", path="/a"))
        for i in range(stayed):
            records.append(pageview(visitor=f"s{i}", path="/a"))
            records.append(pageview(visitor=f"s{i}", path="/b"))
        return records

    def test_bounce_excellent(self):
        assert EXCELLENT_BOUNCE in generate_report(self._visitors(1, 3), DATE).insights

    def test_bounce_reasonable_at_lower_boundary(self):
        # 2 of 5 is exactly 0.4
        insights = generate_report(self._visitors(2, 3), DATE).insights
        assert REASONABLE_BOUNCE in insights
        assert EXCELLENT_BOUNCE not in insights

    def test_bounce_high_at_upper_boundary(self):
        # 3 of 5 is exactly 0.6
        insights = generate_report(self._visitors(3, 2), DATE).insights
        assert HIGH_BOUNCE in insights
        assert REASONABLE_BOUNCE not in insights

    def test_new_visitor_mix(self):
        records = [pageview(visitor="A", is_new=True), pageview(visitor="B", is_new=True), pageview(visitor="C")]
        assert generate_report(records, DATE).insights[-1] == NEW_MIX

    def test_equal_mix_uses_return_phrasing(self):
        records = [pageview(visitor="A", is_new=True), pageview(visitor="B")]
        assert generate_report(records, DATE).insights[-1] == RETURN_MIX

    def test_full_order(self):
        insights = generate_report([pageview(path="/a", name="Home", is_new=True, hour=9)], DATE).insights
        assert insights == [
            "Traffic peaked at 09:00 with 1 page views",
            '"Home" is the most popular page, accounting for 100.0% of total traffic',
            HIGH_BOUNCE,
            NEW_MIX,
        ]


class TestReportProperties:
    """Test general report guarantees."""

    def _records(self):
        return [
            pageview(visitor="A", path="/a", referrer="search_google", is_new=True, hour=8),
            pageview(visitor="B", path="/b", referrer="social_zhihu", hour=9),
            pageview(visitor="A", path="/b", hour=9),
            pageleave(30_000, visitor="A"),
        ]

    def test_idempotent(self):
        records = self._records()
        assert generate_report(records, DATE) == generate_report(records, DATE)

    def test_does_not_modify_input(self):
        records = self._records()
        before = [r.model_copy() for r in records]
        generate_report(records, DATE)
        assert records == before

    def test_accepts_any_iterable(self):
        assert generate_report(iter(self._records()), DATE).summary.pv == 3

    def test_malformed_records_do_not_raise(self):
        records = [CanonicalRecord(), CanonicalRecord(type="pageview"), CanonicalRecord(type="pageleave")]
        report = generate_report(records, DATE)
        assert report.summary.pv == 1
        assert report.page_stats[0].path == "/"

    def test_serializes_camel_case(self):
        data = generate_report(self._records(), DATE).model_dump(by_alias=True)
        assert set(data) == {"date", "summary", "hourlyData", "pageStats", "sourceStats", "insights"}
        assert set(data["summary"]) == {
            "pv", "uv", "newVisitors", "returnVisitors",
            "avgSessionDuration", "bounceRate", "pagesPerSession",
        }
