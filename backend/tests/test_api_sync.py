from datetime import timedelta

from fastapi.testclient import TestClient

from sheetsync.exceptions import SourceReadError
from sheetsync.main import app
from sheetsync.models.audit_log import AuditLog
from sheetsync.scheduler import SyncScheduler, schedule_sync
from sheetsync.services.run_recorder import SyncRunRecorder
from sheetsync.utils.timeutils import utcnow


def test_trigger_success(client: TestClient, make_mapping, db):
    mapping = make_mapping()

    response = client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["rows_processed"] == 2
    assert data["run_id"] is not None
    assert db.query(AuditLog).filter(AuditLog.action == "sync_triggered").count() == 1


def test_trigger_failure_is_reported_in_body(client: TestClient, make_mapping, source_reader):
    mapping = make_mapping()
    source_reader.error = SourceReadError("No data found in source spreadsheet")

    response = client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "No data found in source spreadsheet"
    assert data["details"]["phase"] == "reading"


def test_trigger_unknown_mapping(client: TestClient):
    assert client.post("/api/v1/sync/trigger", json={"mapping_id": 404}).status_code == 404


def test_trigger_inactive_mapping(client: TestClient, make_mapping):
    mapping = make_mapping(is_active=False)
    response = client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})
    assert response.status_code == 400
    assert response.json()["detail"] == f"Mapping {mapping.id} is inactive"


def test_trigger_while_running(client: TestClient, make_mapping, db, source_reader):
    mapping = make_mapping()
    SyncRunRecorder(db).create_run(mapping.id, "scheduled")

    response = client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})

    assert response.status_code == 409
    assert response.json()["detail"] == f"Sync is already running for mapping {mapping.id}"
    assert source_reader.calls == []


def test_status_and_history(client: TestClient, make_mapping):
    mapping = make_mapping()
    client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})
    client.post("/api/v1/sync/trigger", json={"mapping_id": mapping.id})

    status = client.get(f"/api/v1/sync/status/{mapping.id}").json()
    assert status["is_running"] is False
    assert status["success_rate"] == 100.0
    assert status["last_sync"] is not None
    assert status["next_sync"] is not None

    runs = client.get(f"/api/v1/sync/runs/{mapping.id}", params={"limit": 1}).json()
    assert runs["total"] == 2
    assert len(runs["data"]) == 1
    assert runs["data"][0]["status"] == "success"

    assert client.get("/api/v1/sync/status/999").status_code == 404


def test_one_time_jobs(client: TestClient, make_mapping):
    mapping = make_mapping(sync_frequency="manual")
    scheduled_for = (utcnow() + timedelta(hours=1)).isoformat()

    response = client.post("/api/v1/sync/jobs", json={"mapping_id": mapping.id, "scheduled_for": scheduled_for})
    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    jobs = client.get("/api/v1/sync/jobs", params={"mapping_id": mapping.id}).json()
    assert len(jobs) == 1

    response = client.delete(f"/api/v1/sync/jobs/{mapping.id}")
    assert response.json() == {"mapping_id": mapping.id, "cancelled": 1}
    jobs = client.get("/api/v1/sync/jobs", params={"mapping_id": mapping.id, "status": "cancelled"}).json()
    assert len(jobs) == 1

    missing = client.post("/api/v1/sync/jobs", json={"mapping_id": 999, "scheduled_for": scheduled_for})
    assert missing.status_code == 404


def test_job_list_is_scoped_to_owner(client: TestClient, make_mapping, db):
    mine = make_mapping(sync_frequency="manual")
    theirs = make_mapping(user_id="someone-else", sync_frequency="manual")
    schedule_sync(db, mine.id, utcnow() + timedelta(hours=1))
    schedule_sync(db, theirs.id, utcnow() + timedelta(hours=1))

    jobs = client.get("/api/v1/sync/jobs").json()
    assert [job["mapping_id"] for job in jobs] == [mine.id]
    assert client.get("/api/v1/sync/jobs", params={"mapping_id": theirs.id}).status_code == 404


def test_scheduler_not_configured(client: TestClient):
    assert client.get("/api/v1/scheduler/").status_code == 503


def test_scheduler_status_and_manual_tick(client: TestClient, make_mapping, monkeypatch,
                                          session_factory, source_reader, target_writer, locks):
    scheduler = SyncScheduler(
        session_factory=session_factory,
        source_reader=source_reader,
        target_writer=target_writer,
        interval_seconds=120,
        locks=locks
    )
    monkeypatch.setattr(app.state, "scheduler", scheduler, raising=False)
    make_mapping(last_sync_at=None)

    status = client.get("/api/v1/scheduler/").json()
    assert status["running"] is False
    assert status["interval_seconds"] == 120
    assert status["next_tick"] is None

    summary = client.post("/api/v1/scheduler/tick").json()
    assert summary["due"] == 1
    assert summary["succeeded"] == 1

    assert client.get("/api/v1/scheduler/").json()["last_summary"] == summary
