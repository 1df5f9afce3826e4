# Client-side task cache over the Task API

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

Task = Dict[str, Any]


class TaskStoreError(Exception):
    """A direct task call was refused by the API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TaskStore:
    """In-memory list of the signed-in user's tasks, kept in step with the API.

    ``session`` may be a ``requests.Session`` or anything with the same
    ``request`` method, such as FastAPI's ``TestClient``. Writes are last
    write wins; nothing reconciles concurrent edits from other clients.
    """

    def __init__(self, base_url: str, token: Optional[str], session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.tasks: List[Task] = []

    def _request(self, method: str, path: str, json: Any = None):
        headers = {"Authorization": f"Bearer {self.token}"}
        return self.session.request(method, f"{self.base_url}{path}", json=json, headers=headers)

    @staticmethod
    def _error_detail(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("detail") or body.get("error") or body)
        return str(body)

    def _find(self, task_id: int) -> Optional[Task]:
        return next((task for task in self.tasks if task["id"] == task_id), None)

    def _sync_outlook(self, task_id: int, action: str):
        """Best effort; the task change already happened."""
        try:
            response = self._request("POST", "/api/outlook/sync", json={"taskId": task_id, "action": action})
        except requests.RequestException as e:
            logger.error("Failed to sync task %s to Outlook: %s", task_id, e)
            return
        if response.status_code >= 400:
            logger.warning(
                "Outlook %s for task %s failed: %s %s",
                action,
                task_id,
                response.status_code,
                self._error_detail(response),
            )

    # ==================== LOADING ====================

    def refresh(self) -> List[Task]:
        """Reload every task; without a token the store stays empty"""
        if not self.token:
            self.tasks = []
            return self.tasks

        response = self._request("GET", "/api/tasks")
        if response.status_code != 200:
            raise TaskStoreError(
                f"Failed to load tasks: {self._error_detail(response)}", response.status_code
            )
        self.tasks = response.json()
        return self.tasks

    # ==================== WRITES ====================

    def add_task(self, task: Dict[str, Any]) -> Task:
        if not self.token:
            raise TaskStoreError("User must be logged in to create tasks")

        response = self._request("POST", "/api/tasks", json=task)
        if response.status_code != 201:
            raise TaskStoreError(
                f"Failed to create task: {self._error_detail(response)}", response.status_code
            )

        new_task = response.json()
        self.tasks.insert(0, new_task)
        return new_task

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Task:
        existing = self._find(task_id)
        was_scheduled = bool(existing and existing.get("scheduledTime"))

        response = self._request("PUT", f"/api/tasks/{task_id}", json=updates)
        if response.status_code != 200:
            raise TaskStoreError(
                f"Failed to update task: {self._error_detail(response)}", response.status_code
            )

        updated = response.json()
        self.tasks = [updated if task["id"] == task_id else task for task in self.tasks]
        if existing is None:
            self.tasks.insert(0, updated)

        if updated.get("scheduledTime"):
            self._sync_outlook(task_id, "update" if was_scheduled else "create")
        return updated

    def delete_task(self, task_id: int):
        existing = self._find(task_id)
        was_scheduled = bool(existing and existing.get("scheduledTime"))

        response = self._request("DELETE", f"/api/tasks/{task_id}")
        if response.status_code != 200:
            raise TaskStoreError(
                f"Failed to delete task: {self._error_detail(response)}", response.status_code
            )

        self.tasks = [task for task in self.tasks if task["id"] != task_id]
        if was_scheduled:
            self._sync_outlook(task_id, "delete")

    def schedule_task(self, task_id: int, scheduled_time: str) -> Task:
        return self.update_task(task_id, {"scheduledTime": scheduled_time})

    def unschedule_task(self, task_id: int) -> Task:
        return self.update_task(task_id, {"scheduledTime": None})

    def move_task_to_date(self, task_id: int, new_date: date) -> Task:
        return self.update_task(task_id, {"startDate": new_date.isoformat(), "scheduledTime": None})

    # ==================== READS ====================

    def tasks_for_date(self, day: date) -> List[Task]:
        day_str = day.isoformat()
        return [task for task in self.tasks if task["startDate"] == day_str]

    def rollover_tasks(self, today: date) -> List[Task]:
        """Incomplete tasks whose start date has already passed"""
        today_str = today.isoformat()
        return [
            task for task in self.tasks
            if not task["completed"] and task["startDate"] < today_str
        ]
