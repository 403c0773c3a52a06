from django.contrib.auth import get_user_model

from apps.common.events.base import EventPublisherFactory
from apps.tasks.models import Task, TaskPriority
from apps.users.models import Team, TeamRole

User = get_user_model()


class TeamFixtureMixin:
    """A team with an admin, a member and an outsider."""

    def setUp(self):
        super().setUp()
        EventPublisherFactory.reset_publisher()

        self.admin = User.objects.create_user(
            username="ash", email="ash@example.com", password="testpass123", display_name="Ash"
        )
        self.member = User.objects.create_user(
            username="misty", email="misty@example.com", password="testpass123"
        )
        self.outsider = User.objects.create_user(
            username="gary", email="gary@example.com", password="testpass123"
        )

        self.team = Team.objects.create(name="Pallet", created_by=self.admin)
        self.admin_membership = self.team.add_member(self.admin, role=TeamRole.ADMIN)
        self.member_membership = self.team.add_member(self.member)

    def make_task(self, title="Catch them all", priority=TaskPriority.P2, team=None, created_by=None):
        return Task.objects.create(
            team=team or self.team,
            title=title,
            priority=priority,
            created_by=created_by or self.member,
        )
