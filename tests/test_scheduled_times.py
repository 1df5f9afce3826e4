from unittest import mock

from timebox.models.outlook import OutlookSyncRecord, SyncAction, SyncStatus
from timebox.models.task import TaskScheduledTime


def slots_url(task):
    return f"/api/tasks/{task['id']}/scheduled-times"


def add_slot(client, headers, task, start="2024-03-01T09:00:00Z", duration=30):
    response = client.post(slots_url(task), json={"startTime": start, "duration": duration}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def time_required(client, headers, task):
    tasks = client.get("/api/tasks", headers=headers).json()
    return next(t for t in tasks if t["id"] == task["id"])["timeRequired"]


class TestSlotTotals:
    def test_first_slot_keeps_estimate(self, client, auth_headers, create_task):
        task = create_task(timeRequired=90)

        slot = add_slot(client, auth_headers, task, duration=30)

        assert slot["taskId"] == task["id"]
        assert slot["startTime"] == "2024-03-01T09:00:00Z"
        assert slot["duration"] == 30
        assert slot["outlookEventId"] is None
        assert time_required(client, auth_headers, task) == 90

    def test_second_slot_sums_durations(self, client, auth_headers, create_task):
        task = create_task(timeRequired=90)
        add_slot(client, auth_headers, task, duration=30)

        add_slot(client, auth_headers, task, start="2024-03-02T09:00:00Z", duration=45)

        assert time_required(client, auth_headers, task) == 75

    def test_duration_truncated_to_whole_minutes(self, client, auth_headers, create_task):
        task = create_task(timeRequired=90)
        add_slot(client, auth_headers, task, duration=30)

        slot = add_slot(client, auth_headers, task, start="2024-03-02T09:00:00Z", duration="45.9")

        assert slot["duration"] == 45
        assert time_required(client, auth_headers, task) == 75

    def test_update_recomputes_total(self, client, auth_headers, create_task):
        task = create_task(timeRequired=90)
        slot = add_slot(client, auth_headers, task, duration=30)

        response = client.put(
            f"{slots_url(task)}/{slot['id']}",
            json={"startTime": "2024-03-01T13:30:00Z", "duration": 50},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["startTime"] == "2024-03-01T13:30:00Z"
        assert time_required(client, auth_headers, task) == 50

    def test_delete_recomputes_total(self, client, auth_headers, create_task):
        task = create_task(timeRequired=90)
        first = add_slot(client, auth_headers, task, duration=30)
        second = add_slot(client, auth_headers, task, start="2024-03-02T09:00:00Z", duration=45)

        client.delete(f"{slots_url(task)}/{first['id']}", headers=auth_headers)
        assert time_required(client, auth_headers, task) == 45

        response = client.delete(f"{slots_url(task)}/{second['id']}", headers=auth_headers)
        assert response.json() == {"success": True}
        assert time_required(client, auth_headers, task) == 0

    def test_list_in_start_order(self, client, auth_headers, create_task):
        task = create_task()
        later = add_slot(client, auth_headers, task, start="2024-03-02T09:00:00Z")
        earlier = add_slot(client, auth_headers, task, start="2024-03-01T09:00:00Z")

        response = client.get(slots_url(task), headers=auth_headers)

        assert [s["id"] for s in response.json()] == [earlier["id"], later["id"]]

    def test_task_response_embeds_slots(self, client, auth_headers, create_task):
        task = create_task()
        slot = add_slot(client, auth_headers, task)

        tasks = client.get("/api/tasks", headers=auth_headers).json()

        assert [s["id"] for s in tasks[0]["scheduledTimes"]] == [slot["id"]]


class TestSlotAccess:
    def test_other_users_slots_are_forbidden(self, client, auth_headers, other_headers, create_task):
        task = create_task()
        slot = add_slot(client, auth_headers, task)

        assert client.get(slots_url(task), headers=other_headers).status_code == 403
        assert client.post(
            slots_url(task), json={"startTime": "2024-03-01T09:00:00Z", "duration": 5}, headers=other_headers
        ).status_code == 403
        assert client.delete(f"{slots_url(task)}/{slot['id']}", headers=other_headers).status_code == 403

    def test_missing_slot(self, client, auth_headers, create_task):
        task = create_task()

        response = client.delete(f"{slots_url(task)}/9999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"detail": "Scheduled time not found"}

    def test_slot_of_another_task_is_not_found(self, client, auth_headers, create_task):
        task = create_task()
        other = create_task(title="Other")
        slot = add_slot(client, auth_headers, other)

        response = client.put(
            f"{slots_url(task)}/{slot['id']}",
            json={"startTime": "2024-03-01T09:00:00Z", "duration": 5},
            headers=auth_headers,
        )

        assert response.status_code == 404

    def test_missing_duration(self, client, auth_headers, create_task):
        task = create_task()

        response = client.post(slots_url(task), json={"startTime": "2024-03-01T09:00:00Z"}, headers=auth_headers)

        assert response.status_code == 400


class TestSlotSync:
    def test_no_integration_is_skipped(self, client, auth_headers, create_task, db):
        task = create_task()

        add_slot(client, auth_headers, task)

        record = db.query(OutlookSyncRecord).one()
        assert record.action == SyncAction.CREATE
        assert record.status == SyncStatus.SKIPPED

    @mock.patch("timebox.integrations.outlook.create_calendar_event", return_value="event-1")
    def test_created_event_id_is_stored(self, create_event, client, auth_headers, create_task, connect_outlook, db):
        connect_outlook()
        task = create_task(description="Quarterly numbers")

        slot = add_slot(client, auth_headers, task, start="2024-03-01T09:00:00Z", duration=30)

        access_token, calendar_id, event = create_event.call_args[0]
        assert (access_token, calendar_id) == ("access-token", "calendar-1")
        assert event["subject"] == "Write report"
        assert event["start"] == {"dateTime": "2024-03-01T09:00:00", "timeZone": "UTC"}
        assert event["end"] == {"dateTime": "2024-03-01T09:30:00", "timeZone": "UTC"}
        assert event["body"]["content"] == "Quarterly numbers"
        assert db.get(TaskScheduledTime, slot["id"]).outlook_event_id == "event-1"
        record = db.query(OutlookSyncRecord).one()
        assert (record.status, record.event_id) == (SyncStatus.SUCCEEDED, "event-1")

    @mock.patch("timebox.integrations.outlook.create_calendar_event", return_value=None)
    def test_failed_create_is_recorded(self, create_event, client, auth_headers, create_task, connect_outlook, db):
        connect_outlook()
        task = create_task()

        response = client.post(
            slots_url(task), json={"startTime": "2024-03-01T09:00:00Z", "duration": 30}, headers=auth_headers
        )

        assert response.status_code == 201
        record = db.query(OutlookSyncRecord).one()
        assert record.status == SyncStatus.FAILED
        assert record.error == "Failed to create event"

    @mock.patch("timebox.integrations.outlook.update_calendar_event", return_value=True)
    @mock.patch("timebox.integrations.outlook.create_calendar_event", return_value="event-1")
    def test_update_patches_existing_event(
        self, create_event, update_event, client, auth_headers, create_task, connect_outlook
    ):
        connect_outlook()
        task = create_task()
        slot = add_slot(client, auth_headers, task)

        client.put(
            f"{slots_url(task)}/{slot['id']}",
            json={"startTime": "2024-03-01T10:00:00Z", "duration": 60},
            headers=auth_headers,
        )

        assert create_event.call_count == 1
        _, calendar_id, event_id, event = update_event.call_args[0]
        assert (calendar_id, event_id) == ("calendar-1", "event-1")
        assert event["end"]["dateTime"] == "2024-03-01T11:00:00"

    @mock.patch("timebox.integrations.outlook.delete_calendar_event", return_value=True)
    @mock.patch("timebox.integrations.outlook.create_calendar_event", return_value="event-1")
    def test_delete_removes_event(self, create_event, delete_event, client, auth_headers, create_task, connect_outlook):
        connect_outlook()
        task = create_task()
        slot = add_slot(client, auth_headers, task)

        client.delete(f"{slots_url(task)}/{slot['id']}", headers=auth_headers)

        delete_event.assert_called_once_with("access-token", "calendar-1", "event-1")

    @mock.patch("timebox.integrations.outlook.delete_calendar_event")
    def test_delete_without_event_id_leaves_outlook_alone(self, delete_event, client, auth_headers, create_task, db):
        task = create_task()
        slot = add_slot(client, auth_headers, task)

        client.delete(f"{slots_url(task)}/{slot['id']}", headers=auth_headers)

        delete_event.assert_not_called()
        assert [r.action for r in db.query(OutlookSyncRecord).all()] == [SyncAction.CREATE]
