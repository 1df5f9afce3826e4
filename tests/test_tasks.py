import pytest
from conftest import TASK

from timebox.models.task import Task, TaskHistory


class TestTaskCrud:
    def test_create_task(self, client, auth_headers):
        response = client.post("/api/tasks", json=TASK, headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert isinstance(body["id"], int)
        assert body["title"] == "Write report"
        assert body["description"] == ""
        assert body["startDate"] == "2024-03-01"
        assert body["dueDate"] == "2024-03-05"
        assert body["timeRequired"] == 60
        assert body["completed"] is False
        assert body["completedAt"] is None
        assert body["scheduledTimes"] == []
        assert body["createdAt"].endswith("Z")

    def test_create_requires_title(self, client, auth_headers):
        payload = dict(TASK)
        del payload["title"]

        response = client.post("/api/tasks", json=payload, headers=auth_headers)

        assert response.status_code == 400

    def test_create_rejects_negative_time(self, client, auth_headers):
        response = client.post("/api/tasks", json=dict(TASK, timeRequired=-5), headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.parametrize("time_required", ["60", 60.0, 60.5, "60.5", " 60.9 "])
    def test_time_required_truncated_to_whole_minutes(self, client, auth_headers, time_required):
        response = client.post("/api/tasks", json=dict(TASK, timeRequired=time_required), headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["timeRequired"] == 60

    @pytest.mark.parametrize("time_required", ["sixty", "", None, "-1"])
    def test_time_required_must_be_a_number(self, client, auth_headers, time_required):
        response = client.post("/api/tasks", json=dict(TASK, timeRequired=time_required), headers=auth_headers)

        assert response.status_code == 400

    def test_update_truncates_time_required(self, client, auth_headers, create_task):
        task = create_task()

        response = client.put(f"/api/tasks/{task['id']}", json={"timeRequired": "45.7"}, headers=auth_headers)

        assert response.json()["timeRequired"] == 45

    def test_requires_session(self, client):
        assert client.get("/api/tasks").status_code == 401
        assert client.get("/api/tasks", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_list_only_own_tasks_newest_first(self, client, auth_headers, other_headers, create_task):
        first = create_task(title="First")
        second = create_task(title="Second")
        create_task(headers=other_headers, title="Bob's")

        response = client.get("/api/tasks", headers=auth_headers)

        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [second["id"], first["id"]]

    def test_partial_update(self, client, auth_headers, create_task):
        task = create_task()

        response = client.put(
            f"/api/tasks/{task['id']}",
            json={"title": "Write final report", "scheduledTime": "2024-03-01T09:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Write final report"
        assert body["timeRequired"] == 60
        assert body["scheduledTime"] == "2024-03-01T09:00:00Z"

    def test_clear_scheduled_time(self, client, auth_headers, create_task):
        task = create_task(scheduledTime="2024-03-01T09:00:00Z")

        response = client.put(f"/api/tasks/{task['id']}", json={"scheduledTime": None}, headers=auth_headers)

        assert response.json()["scheduledTime"] is None

    def test_update_missing_task(self, client, auth_headers):
        response = client.put("/api/tasks/9999", json={"title": "x"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"detail": "Task not found"}

    def test_other_users_task_is_forbidden(self, client, other_headers, create_task):
        task = create_task()

        assert client.put(f"/api/tasks/{task['id']}", json={"title": "x"}, headers=other_headers).status_code == 403
        assert client.delete(f"/api/tasks/{task['id']}", headers=other_headers).status_code == 403

    def test_delete_task(self, client, auth_headers, create_task, db):
        task = create_task()
        client.post(
            f"/api/tasks/{task['id']}/scheduled-times",
            json={"startTime": "2024-03-01T09:00:00Z", "duration": 30},
            headers=auth_headers,
        )
        client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)

        response = client.delete(f"/api/tasks/{task['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get("/api/tasks", headers=auth_headers).json() == []
        assert db.query(TaskHistory).count() == 0
        assert client.delete(f"/api/tasks/{task['id']}", headers=auth_headers).status_code == 404


class TestCompletion:
    def test_completed_and_completed_at_move_together(self, client, auth_headers, create_task, db):
        task = create_task()
        url = f"/api/tasks/{task['id']}"

        done = client.put(url, json={"completed": True}, headers=auth_headers).json()
        assert done["completed"] is True
        assert done["completedAt"] is not None
        row = db.get(Task, task["id"])
        assert row.completed is True and row.completed_at is not None

        undone = client.put(url, json={"completed": False}, headers=auth_headers).json()
        assert undone["completed"] is False
        assert undone["completedAt"] is None
        db.expire_all()
        row = db.get(Task, task["id"])
        assert row.completed is False and row.completed_at is None

    def test_end_to_end_history(self, client, auth_headers):
        created = client.post("/api/tasks", json=TASK, headers=auth_headers)
        assert created.status_code == 201
        task = created.json()
        assert task["completed"] is False

        done = client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)
        assert done.json()["completedAt"] is not None

        history = client.get("/api/tasks/history", headers=auth_headers)
        assert history.status_code == 200
        assert history.json() == [{"date": "2024-03-05", "minutesWorked": 60}]

    def test_history_follows_slot_dates(self, client, auth_headers, create_task, db):
        task = create_task()
        slots_url = f"/api/tasks/{task['id']}/scheduled-times"
        client.post(slots_url, json={"startTime": "2024-01-01T09:00:00Z", "duration": 30}, headers=auth_headers)
        client.post(slots_url, json={"startTime": "2024-01-02T14:00:00Z", "duration": 45}, headers=auth_headers)

        client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)

        rows = db.query(TaskHistory).order_by(TaskHistory.date).all()
        assert [(r.date.isoformat(), r.minutes_worked) for r in rows] == [("2024-01-01", 30), ("2024-01-02", 45)]

        client.put(f"/api/tasks/{task['id']}", json={"completed": False}, headers=auth_headers)

        assert db.query(TaskHistory).count() == 0
        assert client.get("/api/tasks/history", headers=auth_headers).json() == []

    def test_history_dates_slots_by_utc_start(self, client, auth_headers, create_task, db):
        task = create_task()
        client.post(
            f"/api/tasks/{task['id']}/scheduled-times",
            json={"startTime": "2024-01-01T23:30:00-05:00", "duration": 30},
            headers=auth_headers,
        )

        client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)

        rows = db.query(TaskHistory).all()
        assert [(r.date.isoformat(), r.minutes_worked) for r in rows] == [("2024-01-02", 30)]

    def test_history_sums_across_tasks(self, client, auth_headers, other_headers, create_task):
        for minutes in (20, 40):
            task = create_task(timeRequired=minutes)
            client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)
        bobs = create_task(headers=other_headers, timeRequired=15)
        client.put(f"/api/tasks/{bobs['id']}", json={"completed": True}, headers=other_headers)

        history = client.get("/api/tasks/history", headers=auth_headers).json()

        assert history == [{"date": "2024-03-05", "minutesWorked": 60}]
