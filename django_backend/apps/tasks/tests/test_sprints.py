from datetime import date

from django.urls import reverse
from django.test import TestCase
from rest_framework import status

from apps.common.exceptions import Forbidden, NotFound, ValidationFailed
from apps.tasks.models import Sprint, SprintStatus, TaskStatus
from apps.tasks.services import lifecycle
from apps.tasks.services import sprints as sprint_service
from apps.users.models import Team
from .helpers import TeamFixtureMixin
from .test_api import TeamTaskAPITestCase


class SprintServiceTest(TeamFixtureMixin, TestCase):

    def make_sprint(self, name="Sprint 1", start=date(2026, 3, 2), end=date(2026, 3, 13)):
        return sprint_service.create_sprint(self.team, self.admin, name, start, end)

    def test_only_admins_create(self):
        with self.assertRaises(Forbidden):
            sprint_service.create_sprint(
                self.team, self.member, "Sprint 1", date(2026, 3, 2), date(2026, 3, 13)
            )
        self.assertFalse(Sprint.objects.exists())

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            self.make_sprint(start=date(2026, 3, 13), end=date(2026, 3, 2))

    def test_counts_follow_task_status(self):
        sprint = self.make_sprint()
        first, second = self.make_task("First"), self.make_task("Second")
        sprint_service.add_task(self.team, sprint.pk, self.member, first.pk)
        sprint_service.add_task(self.team, sprint.pk, self.member, second.pk)
        lifecycle.set_status(self.team, first.pk, self.member, TaskStatus.DONE)

        listed = sprint_service.list_sprints(self.team, self.member).get(pk=sprint.pk)
        self.assertEqual(listed.task_count, 2)
        self.assertEqual(listed.completed_count, 1)

    def test_add_task_twice_keeps_one_link(self):
        sprint = self.make_sprint()
        task = self.make_task()
        sprint_service.add_task(self.team, sprint.pk, self.member, task.pk)
        sprint_service.add_task(self.team, sprint.pk, self.member, task.pk)
        self.assertEqual(sprint.tasks.count(), 1)

    def test_task_from_another_team_is_not_found(self):
        sprint = self.make_sprint()
        other = Team.objects.create(name="Cerulean")
        with self.assertRaises(NotFound):
            sprint_service.add_task(self.team, sprint.pk, self.member, self.make_task(team=other).pk)

    def test_update_needs_changes(self):
        sprint = self.make_sprint()
        with self.assertRaises(ValidationFailed):
            sprint_service.update_sprint(self.team, sprint.pk, self.admin)

    def test_update_status_and_goals(self):
        sprint = self.make_sprint()
        sprint_service.update_sprint(
            self.team, sprint.pk, self.admin, status=SprintStatus.ACTIVE, goals=["Ship badges"]
        )
        sprint.refresh_from_db()
        self.assertEqual(sprint.status, SprintStatus.ACTIVE)
        self.assertEqual(sprint.goals, ["Ship badges"])

    def test_sprint_of_another_team_is_not_found(self):
        other = Team.objects.create(name="Cerulean")
        sprint = Sprint.objects.create(
            team=other, name="Theirs", start_date=date(2026, 3, 2), end_date=date(2026, 3, 13)
        )
        with self.assertRaises(NotFound):
            sprint_service.get_sprint(self.team, sprint.pk)


class SprintAPITest(TeamTaskAPITestCase):

    def setUp(self):
        super().setUp()
        self.sprint = Sprint.objects.create(
            team=self.team,
            name="Sprint 1",
            start_date=date(2026, 3, 2),
            end_date=date(2026, 3, 13),
            created_by=self.admin,
        )

    def sprints_url(self):
        return reverse("team-sprints-list", kwargs={"team_pk": self.team.pk})

    def sprint_url(self, name="detail"):
        return reverse(f"team-sprints-{name}", kwargs={"team_pk": self.team.pk, "pk": self.sprint.pk})

    def test_admin_creates_sprint(self):
        self.authenticate(self.admin)
        response = self.client.post(
            self.sprints_url(),
            {"name": "Sprint 2", "start_date": "2026-03-16", "end_date": "2026-03-27",
             "goals": ["Close the beta"]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], SprintStatus.PLANNING)
        self.assertEqual(response.data["goals"], ["Close the beta"])
        self.assertEqual(response.data["task_count"], 0)

    def test_member_cannot_create(self):
        response = self.client.post(
            self.sprints_url(),
            {"name": "Sprint 2", "start_date": "2026-03-16", "end_date": "2026-03-27"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"], "Team admin access required")

    def test_create_rejects_inverted_dates(self):
        self.authenticate(self.admin)
        response = self.client.post(
            self.sprints_url(),
            {"name": "Sprint 2", "start_date": "2026-03-27", "end_date": "2026-03-16"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_reports_counts(self):
        task = self.make_task()
        self.sprint.tasks.add(task)

        response = self.client.get(self.sprints_url())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["task_count"], 1)
        self.assertEqual(response.data[0]["completed_count"], 0)

    def test_add_list_and_remove_tasks(self):
        task = self.make_task()

        response = self.client.post(self.sprint_url("tasks"), {"task_id": task.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual([t["id"] for t in response.data["tasks"]], [task.pk])

        url = reverse(
            "team-sprints-task-detail",
            kwargs={"team_pk": self.team.pk, "pk": self.sprint.pk, "task_pk": task.pk},
        )
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.get(self.sprint_url())
        self.assertEqual(response.data["tasks"], [])

    def test_member_cannot_update(self):
        response = self.client.patch(self.sprint_url(), {"status": "active"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_updates_status(self):
        self.authenticate(self.admin)
        response = self.client.patch(self.sprint_url(), {"status": "active"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], SprintStatus.ACTIVE)

    def test_non_member_is_forbidden(self):
        self.authenticate(self.outsider)
        response = self.client.get(self.sprints_url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_sprint_is_not_found(self):
        url = reverse("team-sprints-detail", kwargs={"team_pk": self.team.pk, "pk": 999999})
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
