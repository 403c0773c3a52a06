from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase, APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.tasks.models import ActivityAction, ActivityEntry, Comment, Task, TaskDependency, TaskPriority, TaskStatus
from apps.users.models import Team
from .helpers import TeamFixtureMixin


class TeamTaskAPITestCase(TeamFixtureMixin, APITestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.authenticate(self.member)

    def authenticate(self, user):
        """Helper method to authenticate a user"""
        refresh = RefreshToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")

    def tasks_url(self):
        return reverse("team-tasks-list", kwargs={"team_pk": self.team.pk})

    def task_url(self, task, name="detail"):
        return reverse(f"team-tasks-{name}", kwargs={"team_pk": self.team.pk, "pk": task.pk})


class TaskCrudAPITest(TeamTaskAPITestCase):
    """Test cases for task endpoints"""

    def test_requires_authentication(self):
        self.client.credentials()
        response = self.client.get(self.tasks_url())
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["code"], "not_authenticated")

    def test_non_member_is_forbidden(self):
        self.authenticate(self.outsider)
        response = self.client.get(self.tasks_url())

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data, {"error": "Not a member of this team", "code": "forbidden"})

    def test_unknown_team_is_not_found(self):
        url = reverse("team-tasks-list", kwargs={"team_pk": 999999})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")

    def test_create_task(self):
        response = self.client.post(
            self.tasks_url(),
            {"title": "Train Pikachu", "priority": "P1", "assigned_to": self.admin.pk, "category": "training"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], TaskStatus.TODO)
        self.assertEqual(response.data["priority"], "P1")
        self.assertEqual(response.data["assigned_to"]["id"], self.admin.pk)
        self.assertEqual(response.data["created_by"]["id"], self.member.pk)
        self.assertTrue(
            ActivityEntry.objects.filter(action=ActivityAction.TASK_CREATED, task_id=response.data["id"]).exists()
        )

    def test_create_defaults_to_p2(self):
        response = self.client.post(self.tasks_url(), {"title": "Default"}, format="json")
        self.assertEqual(response.data["priority"], TaskPriority.P2)

    def test_create_requires_title(self):
        response = self.client.post(self.tasks_url(), {"title": "   "}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_create_rejects_unknown_priority(self):
        response = self.client.post(self.tasks_url(), {"title": "X", "priority": "P7"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("priority", response.data["fields"])

    def test_assignee_must_be_member(self):
        response = self.client.post(
            self.tasks_url(), {"title": "X", "assigned_to": self.outsider.pk}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_orders_open_tasks_first_and_filters_mine(self):
        done = self.make_task("Done", priority=TaskPriority.P0)
        self.client.post(self.task_url(done, "complete"))
        mine = Task.objects.create(
            team=self.team, title="Mine", priority=TaskPriority.P3, assigned_to=self.member, created_by=self.admin
        )
        urgent = self.make_task("Urgent", priority=TaskPriority.P0)

        response = self.client.get(self.tasks_url())
        self.assertEqual([t["id"] for t in response.data], [urgent.pk, mine.pk, done.pk])

        response = self.client.get(self.tasks_url(), {"filter": "mine"})
        self.assertEqual([t["id"] for t in response.data], [mine.pk])

        response = self.client.get(self.tasks_url(), {"status": "done"})
        self.assertEqual([t["id"] for t in response.data], [done.pk])

    def test_edit_task_records_changed_fields(self):
        task = self.make_task()
        response = self.client.patch(
            self.task_url(task), {"title": "Renamed", "priority": "P0", "notes": ""}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["title"], "Renamed")
        entry = ActivityEntry.objects.get(action=ActivityAction.TASK_EDITED)
        self.assertEqual(entry.details, {"fields": ["title", "priority"]})

    def test_edit_ignores_status(self):
        task = self.make_task()
        self.client.patch(self.task_url(task), {"status": "done"}, format="json")
        task.refresh_from_db()
        self.assertEqual(task.status, TaskStatus.TODO)

    def test_delete_requires_creator_or_admin(self):
        task = self.make_task(created_by=self.admin)
        response = self.client.delete(self.task_url(task))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"], "Only task creator or admin can delete")
        self.assertTrue(Task.objects.filter(pk=task.pk).exists())

    def test_admin_can_delete_any_task(self):
        task = self.make_task(title="Old news")
        self.authenticate(self.admin)

        response = self.client.delete(self.task_url(task))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        entry = ActivityEntry.objects.get(action=ActivityAction.TASK_DELETED)
        self.assertEqual(entry.task_title, "Old news")
        self.assertEqual(entry.details, {"task_id": task.pk})

    def test_assign(self):
        task = self.make_task()
        response = self.client.patch(self.task_url(task, "assign"), {"assigned_to": self.admin.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["assigned_to"]["id"], self.admin.pk)
        self.assertTrue(ActivityEntry.objects.filter(action=ActivityAction.TASK_ASSIGNED).exists())

        response = self.client.patch(self.task_url(task, "assign"), {"assigned_to": None}, format="json")
        self.assertIsNone(response.data["assigned_to"])

    def test_assign_requires_creator_or_admin(self):
        task = self.make_task(created_by=self.admin)
        response = self.client.patch(self.task_url(task, "assign"), {"assigned_to": self.member.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_comments(self):
        task = self.make_task()
        response = self.client.post(self.task_url(task, "comments"), {"body": "Gotta catch em"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["author"]["id"], self.member.pk)

        response = self.client.get(self.task_url(task, "comments"))
        self.assertEqual([c["body"] for c in response.data], ["Gotta catch em"])
        self.assertEqual(Comment.objects.get().team, self.team)
        self.assertTrue(ActivityEntry.objects.filter(action=ActivityAction.COMMENT_ADDED).exists())

    def test_empty_comment_is_rejected(self):
        task = self.make_task()
        response = self.client.post(self.task_url(task, "comments"), {"body": ""}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TaskStatusAPITest(TeamTaskAPITestCase):

    def test_complete_p1_end_to_end(self):
        create = self.client.post(self.tasks_url(), {"title": "Gym badge", "priority": "P1"}, format="json")
        task = Task.objects.get(pk=create.data["id"])

        response = self.client.post(self.task_url(task, "complete"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["xp_earned"], 30)
        self.assertEqual(response.data["new_xp"], 30)
        self.assertTrue(response.data["task"]["completed"])
        self.member_membership.refresh_from_db()
        self.assertEqual(self.member_membership.xp, 30)
        self.assertEqual(ActivityEntry.objects.filter(action=ActivityAction.TASK_COMPLETED).count(), 1)
        self.assertFalse(ActivityEntry.objects.filter(action=ActivityAction.LEVEL_UP).exists())

    def test_level_up_is_reported(self):
        self.member_membership.xp = 130
        self.member_membership.save()
        task = self.make_task(priority=TaskPriority.P1)

        response = self.client.post(self.task_url(task, "complete"))

        self.assertTrue(response.data["leveled_up"])
        self.assertEqual(response.data["new_level"], 3)
        self.assertEqual(response.data["new_rank"], "Bug Catcher")
        self.assertEqual(ActivityEntry.objects.filter(action=ActivityAction.LEVEL_UP).count(), 1)

    def test_double_complete_is_conflict(self):
        task = self.make_task(priority=TaskPriority.P0)
        self.client.post(self.task_url(task, "complete"))
        response = self.client.post(self.task_url(task, "complete"))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data, {"error": "Task already completed", "code": "conflict"})
        self.member_membership.refresh_from_db()
        self.assertEqual(self.member_membership.xp, 50)

    def test_set_status_blocked_then_in_progress(self):
        task = self.make_task()
        url = self.task_url(task, "set-status")

        response = self.client.patch(url, {"status": "blocked", "blocker_note": "Need HM01"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["task"]["blocker_note"], "Need HM01")
        self.assertIsNotNone(response.data["task"]["blocker_since"])

        response = self.client.patch(url, {"status": "in_progress"}, format="json")
        self.assertEqual(response.data["previous_status"], "blocked")
        self.assertIsNone(response.data["task"]["blocker_note"])
        self.assertIsNone(response.data["task"]["blocker_since"])

    def test_set_status_done_awards_xp(self):
        task = self.make_task(priority=TaskPriority.P3)
        response = self.client.patch(self.task_url(task, "set-status"), {"status": "done"}, format="json")
        self.assertEqual(response.data["xp_earned"], 10)

    def test_invalid_status(self):
        task = self.make_task()
        response = self.client.patch(self.task_url(task, "set-status"), {"status": "archived"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "validation_error")

    def test_uncomplete_keeps_xp(self):
        task = self.make_task(priority=TaskPriority.P1)
        self.client.post(self.task_url(task, "complete"))
        response = self.client.post(self.task_url(task, "uncomplete"))

        self.assertEqual(response.data["status"], TaskStatus.TODO)
        self.assertFalse(response.data["task"]["completed"])
        self.assertIsNone(response.data["task"]["completed_by"])
        self.member_membership.refresh_from_db()
        self.assertEqual(self.member_membership.xp, 30)

    def test_task_in_other_team_is_not_found(self):
        other = Team.objects.create(name="Cerulean")
        task = self.make_task(team=other)
        response = self.client.post(self.task_url(task, "complete"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_non_numeric_task_id_is_not_found(self):
        base = self.tasks_url()
        for method, suffix, body in [
            ("get", "abc/", None),
            ("patch", "abc/status/", {"status": "done"}),
            ("post", "abc/dependencies/", {"depends_on_id": 1}),
        ]:
            with self.subTest(suffix=suffix):
                response = getattr(self.client, method)(base + suffix, body, format="json")
                self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DependencyAPITest(TeamTaskAPITestCase):

    def setUp(self):
        super().setUp()
        self.a = self.make_task("A")
        self.b = self.make_task("B")
        self.c = self.make_task("C")

    def link(self, task, depends_on):
        return self.client.post(
            self.task_url(task, "dependencies"), {"depends_on_id": depends_on.pk}, format="json"
        )

    def test_add_and_list(self):
        response = self.link(self.a, self.b)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["depends_on_id"], self.b.pk)

        response = self.client.get(self.task_url(self.a, "dependencies"))
        self.assertEqual([d["id"] for d in response.data["blocked_by"]], [self.b.pk])
        self.assertEqual(response.data["blocking"], [])

        response = self.client.get(self.task_url(self.b, "dependencies"))
        self.assertEqual([d["id"] for d in response.data["blocking"]], [self.a.pk])

    def test_cycle_is_rejected(self):
        self.link(self.a, self.b)
        self.link(self.b, self.c)
        response = self.link(self.c, self.a)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "cycle_detected")

    def test_self_reference_is_rejected(self):
        response = self.link(self.a, self.a)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "self_reference")

    def test_duplicate_is_conflict(self):
        self.link(self.a, self.b)
        response = self.link(self.a, self.b)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "duplicate")

    def test_cross_team_is_not_found(self):
        other = Team.objects.create(name="Cerulean")
        response = self.link(self.a, self.make_task(team=other))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_is_idempotent(self):
        edge_id = self.link(self.a, self.b).data["id"]
        url = reverse(
            "team-tasks-dependency-detail",
            kwargs={"team_pk": self.team.pk, "pk": self.a.pk, "dependency_pk": edge_id},
        )

        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(TaskDependency.objects.exists())
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)


class ActivityAPITest(TeamTaskAPITestCase):

    def test_lists_newest_first(self):
        self.client.post(self.tasks_url(), {"title": "First"}, format="json")
        self.client.post(self.tasks_url(), {"title": "Second"}, format="json")

        url = reverse("team-activity-list", kwargs={"team_pk": self.team.pk})
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e["task_title"] for e in response.data], ["Second", "First"])
        self.assertEqual(response.data[0]["user"]["id"], self.member.pk)

        response = self.client.get(url, {"limit": 1})
        self.assertEqual(len(response.data), 1)

    def test_bad_limit(self):
        url = reverse("team-activity-list", kwargs={"team_pk": self.team.pk})
        response = self.client.get(url, {"limit": "lots"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_member_is_forbidden(self):
        self.authenticate(self.outsider)
        url = reverse("team-activity-list", kwargs={"team_pk": self.team.pk})
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)


class RewardsConfigAPITest(TeamTaskAPITestCase):

    def test_config(self):
        response = self.client.get(reverse("rewards-config"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["xp_values"], {"P0": 50, "P1": 30, "P2": 20, "P3": 10})
        self.assertEqual(response.data["ranks"][0], {"level": 1, "xp": 0, "name": "Rookie Trainer"})
        self.assertEqual(response.data["ranks"][-1]["level"], 100)
