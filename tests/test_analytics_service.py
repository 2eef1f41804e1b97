from datetime import date, datetime, timedelta

from uptime_watchdog.models.daily_summary import DailySummary
from uptime_watchdog.models.incident import Incident
from uptime_watchdog.models.target import Target
from uptime_watchdog.services import analytics_service, result_store

DAY = date(2026, 3, 10)
DAY_START = datetime(2026, 3, 10)


def record_day(database, target_id, make_result, outcomes):
    """outcomes: list of (is_up, http_status, latency_ms), one per minute of DAY."""
    with database.writer() as db:
        for i, (is_up, status, latency) in enumerate(outcomes):
            result = make_result(is_up=is_up, http_status=status, timestamp=DAY_START + timedelta(minutes=i))
            record = result_store.record_result(db, target_id, result)
            record.latency_ms = latency


def test_ninety_five_of_a_hundred_is_ninety_five_percent(database, make_target, make_result):
    target_id = make_target()
    record_day(database, target_id, make_result, [(True, 200, 100)] * 95 + [(False, 503, 0)] * 5)

    with database.writer() as db:
        summary = analytics_service.generate_daily_summary(db, target_id, DAY)

    assert summary.total_checks == 100
    assert summary.successful_checks == 95
    assert summary.failed_checks == 5
    assert summary.uptime_percentage == 95.0


def test_redirects_are_up_but_not_successful(database, make_target, make_result):
    target_id = make_target()
    record_day(database, target_id, make_result, [(True, 200, 100), (True, 301, 100), (True, 204, 100), (False, 0, 0)])

    with database.writer() as db:
        summary = analytics_service.generate_daily_summary(db, target_id, DAY)

    assert summary.successful_checks == 2
    assert summary.failed_checks == 2
    assert summary.successful_checks + summary.failed_checks == summary.total_checks
    assert summary.uptime_percentage == 50.0


def test_day_without_checks_produces_no_row(database, make_target):
    target_id = make_target()

    with database.writer() as db:
        assert analytics_service.generate_daily_summary(db, target_id, DAY) is None

    with database.session() as db:
        assert db.query(DailySummary).count() == 0


def test_latency_stats_ignore_failed_probes(database, make_target, make_result):
    target_id = make_target()
    record_day(database, target_id, make_result, [(True, 200, 100), (True, 200, 300), (False, 0, 0)])

    with database.writer() as db:
        summary = analytics_service.generate_daily_summary(db, target_id, DAY)

    assert summary.avg_latency_ms == 200.0
    assert summary.min_latency_ms == 100
    assert summary.max_latency_ms == 300


def test_rerun_overwrites_the_same_row(database, make_target, make_result):
    target_id = make_target()
    record_day(database, target_id, make_result, [(True, 200, 100)] * 3)
    with database.writer() as db:
        analytics_service.generate_daily_summary(db, target_id, DAY)

    # Late-arriving record for the same day
    with database.writer() as db:
        result_store.record_result(db, target_id, make_result(is_up=False, timestamp=DAY_START + timedelta(hours=5)))
    with database.writer() as db:
        analytics_service.generate_daily_summary(db, target_id, DAY)

    with database.session() as db:
        rows = db.query(DailySummary).filter_by(target_id=target_id).all()
    assert len(rows) == 1
    assert rows[0].total_checks == 4
    assert rows[0].uptime_percentage == 75.0


def test_downtime_counts_incident_overlap_with_the_day(database, make_target, make_result):
    target_id = make_target()
    record_day(database, target_id, make_result, [(True, 200, 100)])
    with database.writer() as db:
        # Started the day before: counts toward downtime, not toward incident_count
        db.add(Incident(target_id=target_id, start_time=DAY_START - timedelta(hours=1),
                        end_time=DAY_START + timedelta(minutes=10), duration_seconds=4200))
        db.add(Incident(target_id=target_id, start_time=DAY_START + timedelta(hours=2),
                        end_time=DAY_START + timedelta(hours=2, minutes=5, seconds=30), duration_seconds=330))

    with database.writer() as db:
        summary = analytics_service.generate_daily_summary(db, target_id, DAY)

    assert summary.downtime_minutes == 15
    assert summary.incident_count == 1


def test_generate_for_all_skips_targets_without_data(database, make_target, make_result):
    with_data = make_target("a", "https://a.test")
    make_target("b", "https://b.test")
    record_day(database, with_data, make_result, [(True, 200, 100)])

    assert analytics_service.generate_daily_summaries_for_all(database, DAY) == 1


def test_generate_for_all_is_best_effort(database, make_target, make_result, monkeypatch):
    a = make_target("a", "https://a.test")
    b = make_target("b", "https://b.test")
    record_day(database, a, make_result, [(True, 200, 100)])
    record_day(database, b, make_result, [(True, 200, 100)])

    real = analytics_service.generate_daily_summary

    def flaky(db, target_id, day, now=None):
        if target_id == a:
            raise RuntimeError("boom")
        return real(db, target_id, day, now)

    monkeypatch.setattr(analytics_service, "generate_daily_summary", flaky)

    assert analytics_service.generate_daily_summaries_for_all(database, DAY) == 1
    with database.session() as db:
        assert [s.target_id for s in db.query(DailySummary).all()] == [b]


def test_target_metrics_window(database, make_target, make_result):
    target_id = make_target()
    now = DAY_START + timedelta(hours=12)
    record_day(database, target_id, make_result, [(True, 200, 100), (True, 200, 200), (False, 500, 0), (True, 200, 300)])
    with database.writer() as db:
        db.add(Incident(target_id=target_id, start_time=DAY_START + timedelta(minutes=2),
                        end_time=DAY_START + timedelta(minutes=3), duration_seconds=60))

    with database.session() as db:
        metrics = analytics_service.get_target_metrics(db, target_id, days=1, now=now)

    assert metrics["total_checks"] == 4
    assert metrics["uptime_percentage"] == 75.0
    assert metrics["avg_latency_ms"] == 200.0
    assert metrics["incident_count"] == 1
    assert metrics["total_downtime_seconds"] == 60
    assert metrics["mttr_seconds"] == 60
    assert metrics["longest_incident_seconds"] == 60


def test_dashboard_summary_counts_status(database, make_target):
    up = make_target("a", "https://a.test")
    down = make_target("b", "https://b.test")
    make_target("c", "https://c.test", enabled=False)
    now = datetime(2026, 3, 10, 12, 0)
    with database.writer() as db:
        db.get(Target, up).current_status = "up"
        db.get(Target, down).current_status = "down"
        db.add(Incident(target_id=down, start_time=now - timedelta(hours=1)))
        db.add(DailySummary(target_id=up, date=date(2026, 3, 9), uptime_percentage=99.0))
        db.add(DailySummary(target_id=down, date=date(2026, 3, 9), uptime_percentage=97.0))

    with database.session() as db:
        summary = analytics_service.get_dashboard_summary(db, now=now)

    assert summary["total_targets"] == 2
    assert summary["targets_up"] == 1
    assert summary["targets_down"] == 1
    assert summary["average_uptime"] == 98.0
    assert summary["total_incidents_last_7"] == 1
    assert summary["targets_with_issues"] == 1
