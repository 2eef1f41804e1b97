"""HTTP surface, with the scheduler never started."""
import json
from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from uptime_watchdog.config import Settings
from uptime_watchdog import main
from uptime_watchdog.main import create_app
from uptime_watchdog.services import audit_service
from uptime_watchdog.schemas.probe import ProbeResult
from uptime_watchdog.utils.time_utils import utcnow

DAY = "2026-03-10"
T0 = datetime(2026, 3, 10, 12, 0, 0)
SITES = [
    {"name": "alpha", "url": "https://alpha.test/"},
    {"name": "beta", "url": "https://beta.test/"},
]


@pytest.fixture
def targets_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"settings": {"check_interval_seconds": 30}, "sites": SITES}))
    return path


@pytest.fixture
def app(targets_file):
    application = create_app(Settings(DB_URL="sqlite://", TARGETS_FILE=str(targets_file), ADMIN_API_KEYS={}))
    yield application
    application.state.context.close()
    application.state.context.database.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


def probe(target, is_up, timestamp, latency_ms=120):
    return ProbeResult(
        target=target,
        url=f"https://{target}.test/",
        timestamp=timestamp,
        http_status=200 if is_up else 502,
        is_up=is_up,
        latency_ms=latency_ms if is_up else 0,
        error_message=None if is_up else "HTTP 502",
    )


def target_id(client, name):
    return next(t["id"] for t in client.get("/targets/").json() if t["name"] == name)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.json()["message"]
    assert "X-Process-Time" in response.headers


def test_targets_file_is_loaded_at_startup(app, client):
    names = [t["name"] for t in client.get("/targets/").json()]

    assert names == ["alpha", "beta"]
    assert app.state.context.settings.CHECK_INTERVAL_SECONDS == 30


def test_get_unknown_target_is_404(client):
    assert client.get("/targets/9999").status_code == 404


def test_disable_target(app, client):
    alpha = target_id(client, "alpha")

    response = client.put(f"/targets/{alpha}", json={"enabled": False})

    assert response.status_code == 200
    assert response.json()["enabled"] is False
    assert [t["name"] for t in client.get("/targets/").json() if t["enabled"]] == ["beta"]
    with app.state.context.database.session() as db:
        updates = audit_service.get_by_action(db, "site_updated")
    assert [entry.entity_id for entry in updates] == [alpha]
    assert json.loads(updates[0].new_value) == {"enabled": False}
    assert json.loads(updates[0].old_value) == {"enabled": True}


def test_update_rejects_non_http_url(client):
    alpha = target_id(client, "alpha")

    response = client.put(f"/targets/{alpha}", json={"url": "ftp://alpha.test"})

    assert response.status_code == 400


def test_update_unknown_target_is_404(client):
    assert client.put("/targets/9999", json={"enabled": False}).status_code == 404


def test_status_board_and_notifications(app, client):
    monitor = app.state.monitor
    monitor.process_round([probe("alpha", True, T0), probe("beta", True, T0)])
    monitor.process_round([probe("alpha", False, T0 + timedelta(seconds=30)), probe("beta", True, T0 + timedelta(seconds=30))])

    status = client.get("/status").json()
    assert {t["target"]: t["status"] for t in status["targets"]} == {"alpha": "down", "beta": "up"}

    notifications = client.get("/notifications").json()
    assert notifications["count"] == 1
    notification_id = notifications["notifications"][0]["id"]
    assert "alpha" in notifications["notifications"][0]["message"]

    assert client.post(f"/notifications/{notification_id}/read").status_code == 200
    assert client.get("/notifications", params={"unread": True}).json()["count"] == 0
    assert client.post("/notifications/unknown/read").status_code == 404

    assert client.post("/notifications/read-all").status_code == 200
    assert client.post("/notifications/clear").status_code == 200
    assert client.get("/notifications").json()["count"] == 0


def test_incidents_endpoint(app, client):
    now = utcnow()
    monitor = app.state.monitor
    monitor.process_round([probe("alpha", True, now - timedelta(minutes=3))])
    monitor.process_round([probe("alpha", False, now - timedelta(minutes=2))])
    monitor.process_round([probe("alpha", True, now - timedelta(minutes=1))])

    incidents = client.get(f"/analytics/targets/{target_id(client, 'alpha')}/incidents").json()

    assert len(incidents) == 1
    assert incidents[0]["duration_seconds"] == 60


def test_latency_endpoint(app, client):
    now = utcnow()
    app.state.monitor.process_round([probe("beta", True, now - timedelta(minutes=5), latency_ms=200)])

    buckets = client.get(f"/analytics/targets/{target_id(client, 'beta')}/latency", params={"hours": 2}).json()

    assert sum(b["count"] for b in buckets) == 1
    assert buckets[0]["avg_latency_ms"] == 200.0


def test_analytics_unknown_target_is_404(client):
    assert client.get("/analytics/targets/9999").status_code == 404
    assert client.get("/analytics/targets/9999/summaries").status_code == 404


def test_dashboard(client):
    response = client.get("/analytics/dashboard")

    assert response.status_code == 200
    assert response.json()["total_targets"] == 2


def test_target_metrics(client):
    response = client.get(f"/analytics/targets/{target_id(client, 'alpha')}", params={"days": 7})

    assert response.status_code == 200
    assert response.json()["period_days"] == 7
    assert response.json()["mttr_seconds"] is None


def test_generate_summary_for_a_date(app, client):
    app.state.monitor.process_round([probe("alpha", True, T0), probe("beta", False, T0)])

    first = client.post("/admin/generate-summary", params={"date": DAY})
    again = client.post("/admin/generate-summary", params={"date": DAY})

    assert first.status_code == 200
    assert first.json()["generated"] == 2
    assert again.json()["generated"] == 2
    assert client.get("/admin/stats").json()["counts"]["daily_summaries"] == 2


def test_generate_summary_rejects_bad_date(client):
    assert client.post("/admin/generate-summary", params={"date": "10/03/2026"}).status_code == 400


def test_admin_cleanup_and_stats(client):
    cleanup = client.post("/admin/cleanup")
    stats = client.get("/admin/stats").json()

    assert cleanup.status_code == 200
    assert set(cleanup.json()["deleted"]) == {
        "uptime_records", "incidents", "daily_summaries", "notification_logs", "audit_logs",
    }
    assert stats["counts"]["targets"] == 2
    assert stats["maintenance"]["retention_days"] == 90


def test_admin_sync_picks_up_new_sites(client, targets_file):
    targets_file.write_text(json.dumps({"sites": SITES + [{"name": "gamma", "url": "https://gamma.test/"}]}))

    response = client.post("/admin/sync")

    assert response.status_code == 200
    assert response.json()["added"] == 1
    assert len(client.get("/targets/").json()) == 3


def test_admin_sync_with_broken_file_is_400(client, targets_file):
    targets_file.write_text("{broken")

    assert client.post("/admin/sync").status_code == 400


def test_sync_status_reports_drift(client, targets_file):
    before = client.get("/admin/sync/status").json()
    assert (before["config_sites"], before["database_sites"], before["in_sync"]) == (2, 2, True)
    assert before["last_sync"] is not None

    targets_file.write_text(json.dumps({"sites": SITES[:1]}))
    assert client.post("/admin/sync").status_code == 200

    after = client.get("/admin/sync/status").json()
    assert (after["config_sites"], after["database_sites"], after["in_sync"]) == (1, 2, False)
    assert after["orphaned"] == ["beta"]


def test_uptime_trend_is_oldest_first(app, client):
    today = utcnow().replace(hour=12, minute=0, second=0, microsecond=0)
    for days_ago in (2, 1):
        day = today - timedelta(days=days_ago)
        app.state.monitor.process_round([probe("alpha", True, day)])
        assert client.post("/admin/generate-summary", params={"date": day.date().isoformat()}).status_code == 200

    trend = client.get(f"/analytics/targets/{target_id(client, 'alpha')}/uptime-trend", params={"days": 7}).json()

    assert [row["date"] for row in trend] == [
        (today - timedelta(days=2)).date().isoformat(),
        (today - timedelta(days=1)).date().isoformat(),
    ]
    assert client.get("/analytics/targets/9999/uptime-trend").status_code == 404


def test_sla_report(app, client):
    yesterday = utcnow().replace(hour=12, minute=0, second=0, microsecond=0) - timedelta(days=1)
    app.state.monitor.process_round([probe("alpha", True, yesterday), probe("beta", False, yesterday)])
    client.post("/admin/generate-summary", params={"date": yesterday.date().isoformat()})

    report = client.get("/analytics/sla-report", params={"sla_target": 99}).json()

    by_name = {row["target_name"]: row for row in report}
    assert list(by_name) == ["alpha", "beta"]
    assert by_name["alpha"]["actual_uptime"] == 100.0
    assert by_name["alpha"]["sla_compliant"] is True
    assert by_name["beta"]["actual_uptime"] == 0.0
    assert by_name["beta"]["sla_compliant"] is False
    assert by_name["beta"]["uptime_gap"] == 99.0

    default = client.get("/analytics/sla-report").json()
    assert default[0]["sla_target_percentage"] == 99.9


def test_update_settings_applies_to_running_jobs(app, client):
    context = app.state.context

    response = client.put("/admin/settings", json={
        "check_interval_seconds": 60,
        "timeout_seconds": 7,
        "retention_days": 30,
        "aggregation_time": "02:15",
        "cleanup_time": "04:00",
        "data_cleanup_enabled": False,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["check_interval_seconds"] == 60
    assert body["aggregation_time"] == "02:15"
    assert app.state.scheduler.get_job("probe_round").trigger.interval == timedelta(seconds=60)
    assert context.dispatcher.timeout == 7
    assert context.dispatcher.round_deadline == 60
    assert context.maintenance.retention_days == 30
    assert context.maintenance.aggregation_time == (2, 15)
    assert context.maintenance.cleanup_time == (4, 0)
    assert context.maintenance.data_cleanup is False
    assert client.get("/admin/settings").json() == body

    with context.database.session() as db:
        entries = audit_service.get_by_action(db, "settings_updated")
    assert len(entries) == 1
    assert json.loads(entries[0].old_value)["check_interval_seconds"] == 30


def test_update_settings_clamps_interval_and_timeout(app, client):
    body = client.put("/admin/settings", json={"check_interval_seconds": 1, "timeout_seconds": 1}).json()

    assert body["check_interval_seconds"] == 5
    assert app.state.context.dispatcher.round_deadline == 5


def test_update_settings_rejects_bad_time(app, client):
    timeout = app.state.context.dispatcher.timeout

    response = client.put("/admin/settings", json={"timeout_seconds": 3, "cleanup_time": "27:00"})

    assert response.status_code == 400
    # Nothing applied
    assert app.state.context.dispatcher.timeout == timeout
    assert app.state.context.maintenance.cleanup_time == (3, 0)


def test_importing_main_builds_no_app():
    assert "app" not in vars(main)

    application = main.app
    try:
        assert isinstance(application, FastAPI)
        assert main.app is application
    finally:
        application.state.context.close()
        application.state.context.database.dispose()
        del main.app


class TestAdminAuth:
    @pytest.fixture
    def client(self, targets_file):
        application = create_app(Settings(
            DB_URL="sqlite://",
            TARGETS_FILE=str(targets_file),
            ADMIN_API_KEYS={"s3cret-key": "Ops"},
        ))
        yield TestClient(application)
        application.state.context.close()
        application.state.context.database.dispose()

    def test_missing_key_is_rejected(self, client):
        response = client.get("/admin/stats")
        assert response.status_code == 401

    def test_wrong_key_is_rejected(self, client):
        assert client.get("/admin/stats", headers={"X-API-Key": "nope"}).status_code == 401

    def test_header_key_is_accepted(self, client):
        assert client.get("/admin/stats", headers={"X-API-Key": "s3cret-key"}).status_code == 200

    def test_bearer_key_is_accepted(self, client):
        assert client.get("/admin/stats", headers={"Authorization": "Bearer s3cret-key"}).status_code == 200

    def test_dashboard_routes_stay_open(self, client):
        assert client.get("/targets/").status_code == 200
