# =============================================================================
# core/resources/tasks.py - Tasks Resource
# =============================================================================
# The caller's planner tasks, newest first, each with its inspiration links
# and category. Case studies are the subset flagged `is_admin_case_study`.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from supabase import Client

from core.models.task import InspirationLink, InspirationLinkCreate, Task, TaskCreate, TaskUpdate
from core.resources.base import MutationResult, Resource
from lib.supabase_client import first_row

logger = logging.getLogger(__name__)

TABLE = "tasks"
TASK_SELECT = "*, inspiration_links(*), category:task_categories(*)"


def _payload(model: Any, **extra: Any) -> dict[str, Any]:
    data = model.model_dump(mode="json", exclude_unset=True)
    data.update(extra)
    return data


class TasksResource(Resource[list[Task]]):
    """
    Planner tasks owned by one user.

    Example:
        tasks = TasksResource(db, user.id)
        tasks.load()
        result = tasks.create(TaskCreate(title="...", niche="...", format="Kratka Forma"))
        if result.error:
            ...
    """

    name = "tasks"

    def empty(self) -> list[Task]:
        return []

    def fetch(self) -> list[Task]:
        response = (
            self._client.table(TABLE)
            .select(TASK_SELECT)
            .eq("user_id", self._user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Task.model_validate(row) for row in response.data or []]

    @property
    def case_studies(self) -> list[Task]:
        return [task for task in self.state.data if task.is_admin_case_study]

    def count(self) -> int:
        """Tasks counted against the tier cap (case studies excluded)."""
        return sum(1 for task in self.state.data if not task.is_admin_case_study)

    # -------------------------------------------------------------------------
    # Task CRUD
    # -------------------------------------------------------------------------

    def create(self, task: TaskCreate) -> MutationResult[Task]:
        """Insert a task owned by the caller and prepend it locally."""
        def action() -> Task:
            response = (
                self._client.table(TABLE)
                .insert(_payload(task, user_id=self._user_id))
                .execute()
            )
            created = Task.model_validate(first_row(response, "Task"))
            self._update(lambda tasks: [created, *tasks])
            logger.info(f"Created task {created.id} for user {self._user_id}")
            return created

        return self._mutate("create", action)

    def update(self, task_id: str, updates: TaskUpdate) -> MutationResult[Task]:
        def action() -> Task:
            response = (
                self._client.table(TABLE)
                .update(_payload(updates))
                .eq("id", task_id)
                .execute()
            )
            updated = Task.model_validate(first_row(response, "Task"))
            self._update(lambda tasks: [updated if t.id == task_id else t for t in tasks])
            return updated

        return self._mutate("update", action)

    def delete(self, task_id: str) -> MutationResult[str]:
        def action() -> str:
            self._client.table(TABLE).delete().eq("id", task_id).execute()
            self._update(lambda tasks: [t for t in tasks if t.id != task_id])
            return task_id

        return self._mutate("delete", action)

    # -------------------------------------------------------------------------
    # Inspiration links
    # -------------------------------------------------------------------------

    def add_inspiration_link(
        self,
        task_id: str,
        link: InspirationLinkCreate,
    ) -> MutationResult[InspirationLink]:
        def action() -> InspirationLink:
            response = (
                self._client.table("inspiration_links")
                .insert(_payload(link, task_id=task_id))
                .execute()
            )
            created = InspirationLink.model_validate(first_row(response, "Inspiration link"))

            def attach(tasks: list[Task]) -> list[Task]:
                return [
                    t.model_copy(update={"inspiration_links": [*t.inspiration_links, created]})
                    if t.id == task_id else t
                    for t in tasks
                ]

            self._update(attach)
            return created

        return self._mutate("add_inspiration_link", action)

    def remove_inspiration_link(self, link_id: str) -> MutationResult[str]:
        def action() -> str:
            self._client.table("inspiration_links").delete().eq("id", link_id).execute()

            def detach(tasks: list[Task]) -> list[Task]:
                return [
                    t.model_copy(update={
                        "inspiration_links": [l for l in t.inspiration_links if l.id != link_id]
                    })
                    for t in tasks
                ]

            self._update(detach)
            return link_id

        return self._mutate("remove_inspiration_link", action)
