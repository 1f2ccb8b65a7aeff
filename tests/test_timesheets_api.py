import json

from conftest import ADMIN, JANE, JOHN, fixed_clock, login

from timesheet_api.repositories import JsonTimesheetRepository
from timesheet_api.storage import MemoryRecordStore, PersistResult


class SwitchableStore(MemoryRecordStore):
    """Memory store whose writes can be made to fail."""

    failing = False

    def persist(self, records):
        if self.failing:
            return PersistResult(ok=False, error="disk full")
        return super().persist(records)


def create_timesheet_payload(entries=None, week_starting="2025-01-06", week_ending="2025-01-12"):
    payload = {
        "entries": entries
        if entries is not None
        else [
            {"date": "2025-01-06", "hours": 8, "description": "API work", "project": "Backend"},
            {"date": "2025-01-07", "hours": "", "description": "Leave"},
            {"date": "2025-01-08", "hours": "3.5", "description": "Review"},
        ]
    }
    if week_starting is not None:
        payload["weekStarting"] = week_starting
    if week_ending is not None:
        payload["weekEnding"] = week_ending
    return payload


def assert_timesheet_shape(ts: dict):
    for key in ["id", "ownerId", "weekStarting", "weekEnding", "totalHours", "entries"]:
        assert key in ts
    assert isinstance(ts["id"], int)
    assert isinstance(ts["totalHours"], float)
    for entry in ts["entries"]:
        assert set(entry) == {"id", "date", "hours", "description", "project"}


def create(client, headers, payload=None):
    res = client.post("/api/timesheets", json=payload or create_timesheet_payload(), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json() == {"message": "Healthy", "backend": "json"}

    def test_api_index(self, client):
        res = client.get("/api")
        assert res.status_code == 200
        assert res.json()["status"] == "Server is running successfully!"

    def test_unknown_route(self, client):
        res = client.get("/api/nope")
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Route not found"}


class TestAuthRequired:
    def test_missing_token(self, client):
        res = client.get("/api/timesheets")
        assert res.status_code == 401
        assert res.headers["www-authenticate"] == "Bearer"
        assert res.json() == {"success": False, "message": "Access token required"}

    def test_unknown_token(self, client):
        res = client.get("/api/timesheets", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 401
        assert res.json()["message"] == "Invalid or expired token"


class TestTimesheetsCRUD:
    def test_create(self, client, john):
        res = client.post("/api/timesheets", json=create_timesheet_payload(), headers=john)
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "Timesheet created successfully"
        ts = body["data"]
        assert_timesheet_shape(ts)
        assert ts["ownerId"] == 1
        assert ts["totalHours"] == 11.5
        assert [e["id"] for e in ts["entries"]] == [1, 2, 3]
        assert ts["entries"][1]["hours"] is None
        assert ts["entries"][1]["project"] == "General"
        assert ts["entries"][2]["hours"] == 3.5

    def test_create_defaults_to_current_week(self, client, john):
        ts = create(client, john, create_timesheet_payload(week_starting=None, week_ending=None))
        assert ts["weekStarting"] == "2025-01-06"
        assert ts["weekEnding"] == "2025-01-12"

    def test_client_total_is_ignored(self, client, john):
        payload = create_timesheet_payload()
        payload["totalHours"] = 100
        assert create(client, john, payload)["totalHours"] == 11.5

    def test_second_record_entry_ids(self, client, john):
        create(client, john)
        create(client, john)
        third = create(client, john, create_timesheet_payload(entries=[
            {"date": "2025-01-06", "hours": 1, "description": "a"},
            {"date": "2025-01-07", "hours": 2, "description": "b"},
        ]))
        assert third["id"] == 3
        assert [e["id"] for e in third["entries"]] == [201, 202]

    def test_get_and_not_found(self, client, john):
        ts = create(client, john)
        res = client.get(f"/api/timesheets/{ts['id']}", headers=john)
        assert res.status_code == 200
        assert res.json()["data"] == ts

        res_404 = client.get("/api/timesheets/999999", headers=john)
        assert res_404.status_code == 404
        assert res_404.json() == {"success": False, "message": "Timesheet not found"}

    def test_list_own(self, client, john, jane):
        create(client, john)
        create(client, jane)
        create(client, john)
        res = client.get("/api/timesheets", headers=john)
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert body["total"] == 2
        assert [t["id"] for t in body["data"]] == [1, 3]

    def test_update_week_only_keeps_entries(self, client, john):
        ts = create(client, john)
        res = client.put(f"/api/timesheets/{ts['id']}", json={"weekStarting": "2025-01-13"}, headers=john)
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Timesheet updated successfully"
        updated = body["data"]
        assert updated["weekStarting"] == "2025-01-13"
        assert updated["weekEnding"] == ts["weekEnding"]
        assert updated["entries"] == ts["entries"]
        assert updated["totalHours"] == ts["totalHours"]

    def test_update_blank_week_keeps_value(self, client, john):
        ts = create(client, john)
        res = client.put(f"/api/timesheets/{ts['id']}", json={"weekStarting": ""}, headers=john)
        assert res.status_code == 200
        assert res.json()["data"]["weekStarting"] == "2025-01-06"

    def test_update_replaces_entries(self, client, john):
        ts = create(client, john)
        first = ts["entries"][0]
        payload = {"entries": [
            {"id": first["id"], "date": "2025-01-06", "hours": 6, "description": "API work"},
            {"date": "2025-01-09", "hours": 1, "description": "Standup", "project": "Ops"},
        ]}
        res = client.put(f"/api/timesheets/{ts['id']}", json=payload, headers=john)
        assert res.status_code == 200
        updated = res.json()["data"]
        assert updated["totalHours"] == 7.0
        assert [e["id"] for e in updated["entries"]] == [first["id"], 2]
        assert updated["entries"][0]["project"] == "General"

    def test_update_not_found(self, client, john):
        res = client.put("/api/timesheets/424242", json={"weekStarting": "2025-01-13"}, headers=john)
        assert res.status_code == 404
        assert res.json()["message"] == "Timesheet not found"

    def test_delete(self, client, john):
        ts = create(client, john)
        res = client.delete(f"/api/timesheets/{ts['id']}", headers=john)
        assert res.status_code == 200
        assert res.json() == {"success": True, "message": "Timesheet deleted successfully"}

        assert client.get(f"/api/timesheets/{ts['id']}", headers=john).status_code == 404
        assert client.delete(f"/api/timesheets/{ts['id']}", headers=john).status_code == 404

    def test_deleted_id_is_never_reused(self, client, john):
        for _ in range(5):
            create(client, john)
        assert client.delete("/api/timesheets/5", headers=john).status_code == 200
        assert create(client, john)["id"] == 6


class TestOwnership:
    def test_other_users_record_is_not_found(self, client, john, jane):
        ts = create(client, john)
        url = f"/api/timesheets/{ts['id']}"
        assert client.get(url, headers=jane).status_code == 404
        assert client.put(url, json={"weekStarting": "2025-02-03"}, headers=jane).status_code == 404
        res = client.delete(url, headers=jane)
        assert res.status_code == 404
        assert res.json()["message"] == "Timesheet not found"
        assert client.get(url, headers=john).json()["data"]["weekStarting"] == "2025-01-06"

    def test_list_all_denied_for_employee(self, client, john):
        res = client.get("/api/timesheets/all", headers=john)
        assert res.status_code == 403
        assert res.json() == {"success": False, "message": "Access denied. Admin role required."}

    def test_list_all_for_admin(self, client, john, jane, admin):
        create(client, john)
        create(client, jane)
        res = client.get("/api/timesheets/all", headers=admin)
        assert res.status_code == 200
        body = res.json()
        assert body["total"] == 2
        assert {t["ownerId"] for t in body["data"]} == {1, 2}

    def test_admin_reads_only_own_on_get(self, client, john, admin):
        ts = create(client, john)
        assert client.get(f"/api/timesheets/{ts['id']}", headers=admin).status_code == 404


class TestValidationErrors:
    def assert_validation_error(self, res):
        assert res.status_code == 400
        body = res.json()
        assert body["success"] is False
        assert body["error"] == "ValidationError"
        assert body["message"] == "Request validation failed"
        assert isinstance(body["detail"], list)

    def test_create_requires_entries(self, client, john):
        self.assert_validation_error(
            client.post("/api/timesheets", json=create_timesheet_payload(entries=[]), headers=john)
        )
        self.assert_validation_error(client.post("/api/timesheets", json={}, headers=john))

    def test_hours_out_of_range(self, client, john):
        payload = create_timesheet_payload(entries=[{"date": "2025-01-06", "hours": 25, "description": "x"}])
        self.assert_validation_error(client.post("/api/timesheets", json=payload, headers=john))

    def test_hours_not_a_number(self, client, john):
        payload = create_timesheet_payload(entries=[{"date": "2025-01-06", "hours": "lots", "description": "x"}])
        self.assert_validation_error(client.post("/api/timesheets", json=payload, headers=john))

    def test_bad_dates(self, client, john):
        self.assert_validation_error(
            client.post("/api/timesheets", json=create_timesheet_payload(week_starting="06/01/2025"), headers=john)
        )
        payload = create_timesheet_payload(entries=[{"date": "soon", "hours": 1, "description": "x"}])
        self.assert_validation_error(client.post("/api/timesheets", json=payload, headers=john))

    def test_description_and_project_bounds(self, client, john):
        too_long = create_timesheet_payload(entries=[{"date": "2025-01-06", "description": "x" * 201}])
        self.assert_validation_error(client.post("/api/timesheets", json=too_long, headers=john))
        blank = create_timesheet_payload(entries=[{"date": "2025-01-06", "description": "   "}])
        self.assert_validation_error(client.post("/api/timesheets", json=blank, headers=john))
        project = create_timesheet_payload(entries=[{"date": "2025-01-06", "project": "p" * 101}])
        self.assert_validation_error(client.post("/api/timesheets", json=project, headers=john))

    def test_update_bad_date(self, client, john):
        ts = create(client, john)
        res = client.put(f"/api/timesheets/{ts['id']}", json={"weekEnding": "not-a-date"}, headers=john)
        self.assert_validation_error(res)


class TestPersistence:
    def test_writes_reach_the_document(self, client, john, settings):
        ts = create(client, john)
        with open(settings.timesheets_file, encoding="utf-8") as f:
            docs = json.load(f)
        assert docs[0]["id"] == ts["id"]
        assert docs[0]["ownerId"] == 1
        assert docs[0]["totalHours"] == 11.5

    def test_data_survives_restart(self, make_client):
        first = make_client()
        create(first, login(first, JOHN))
        second = make_client()
        res = second.get("/api/timesheets", headers=login(second, JOHN))
        assert res.json()["total"] == 1

    def test_lenient_policy_reports_success(self, make_client, tmp_path):
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        client = make_client(timesheets_file=str(blocked))
        res = client.post("/api/timesheets", json=create_timesheet_payload(), headers=login(client, JOHN))
        assert res.status_code == 201

    def test_strict_policy_surfaces_failure(self, make_client, tmp_path):
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        client = make_client(timesheets_file=str(blocked), strict_persistence=True)
        res = client.post("/api/timesheets", json=create_timesheet_payload(), headers=login(client, JOHN))
        assert res.status_code == 503
        assert res.headers["retry-after"] == "1"
        assert res.json()["success"] is False

        listed = client.get("/api/timesheets", headers=login(client, JOHN)).json()
        assert listed["total"] == 0

    def strict_client(self, make_client):
        store = SwitchableStore()
        repo = JsonTimesheetRepository(store, clock=fixed_clock, rollback_on_failure=True)
        client = make_client(repository=repo, strict_persistence=True)
        return client, store, login(client, JOHN)

    def test_strict_create_can_be_retried(self, make_client):
        client, store, headers = self.strict_client(make_client)
        store.failing = True
        for _ in range(2):
            assert client.post("/api/timesheets", json=create_timesheet_payload(), headers=headers).status_code == 503
        assert client.get("/api/timesheets", headers=headers).json()["total"] == 0

        store.failing = False
        res = client.post("/api/timesheets", json=create_timesheet_payload(), headers=headers)
        assert res.status_code == 201
        assert client.get("/api/timesheets", headers=headers).json()["total"] == 1
        assert len(store.load()) == 1

    def test_strict_update_leaves_record_unchanged(self, make_client):
        client, store, headers = self.strict_client(make_client)
        ts = create(client, headers)
        store.failing = True
        res = client.put(f"/api/timesheets/{ts['id']}", json={"weekStarting": "2025-02-03", "entries": []}, headers=headers)
        assert res.status_code == 503
        assert client.get(f"/api/timesheets/{ts['id']}", headers=headers).json()["data"] == ts

    def test_strict_delete_can_be_retried(self, make_client):
        client, store, headers = self.strict_client(make_client)
        ts = create(client, headers)
        store.failing = True
        assert client.delete(f"/api/timesheets/{ts['id']}", headers=headers).status_code == 503
        assert client.get(f"/api/timesheets/{ts['id']}", headers=headers).status_code == 200

        store.failing = False
        assert client.delete(f"/api/timesheets/{ts['id']}", headers=headers).status_code == 200
        assert store.load() == []

    def test_memory_backend(self, make_client):
        client = make_client(persistence_backend="memory")
        assert client.get("/").json()["backend"] == "memory"
        headers = login(client, ADMIN)
        create(client, headers)
        assert client.get("/api/timesheets/all", headers=headers).json()["total"] == 1


class TestUnexpectedErrors:
    def test_internal_failure_is_reported_generically(self, client, jane, monkeypatch):
        repo = client.app.state.repository

        def boom(owner_id):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(repo, "list_for_owner", boom)
        res = client.get("/api/timesheets", headers=jane)
        assert res.status_code == 500
        assert res.json() == {"success": False, "message": "Something went wrong!"}
