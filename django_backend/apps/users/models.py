import secrets

from django.contrib.auth.models import AbstractUser
from django.db import models

from apps.tasks.rewards import rank_for_xp, next_rank


class User(AbstractUser):
    display_name = models.CharField(max_length=150, blank=True, default="")

    def __str__(self):
        return self.username

    @property
    def name(self):
        return self.display_name or self.username


def generate_team_code():
    """Six hex characters, shared with people who may join the team."""
    return secrets.token_hex(3).upper()


class TeamRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class Team(models.Model):
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    code = models.CharField(max_length=12, unique=True, default=generate_team_code)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name="teams_created",
        null=True,
        blank=True
    )
    members = models.ManyToManyField(
        User,
        through="TeamMembership",
        related_name="teams",
        blank=True
    )
    # {"webhooks": {"url": ..., "enabled": bool, "events": [...]}}
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    def membership_for(self, user):
        """Return the user's membership row, or None"""
        if user is None or not user.is_authenticated:
            return None
        return self.memberships.filter(user_id=user.id).first()

    def is_member(self, user):
        """Check if user is a member of the team"""
        if user is None or not user.is_authenticated:
            return False
        return self.memberships.filter(user_id=user.id).exists()

    def is_admin(self, user):
        """Check if user holds the admin role in this team"""
        if user is None or not user.is_authenticated:
            return False
        return self.memberships.filter(user_id=user.id, role=TeamRole.ADMIN).exists()

    def can_manage(self, user):
        """Check if user can manage the team (admin or staff)"""
        return user.is_staff or self.is_admin(user)

    def add_member(self, user, role=TeamRole.MEMBER):
        """Add a user to the team with a fresh reward state"""
        membership, _ = TeamMembership.objects.get_or_create(
            team=self, user=user, defaults={"role": role}
        )
        return membership

    @property
    def member_count(self):
        return self.memberships.count()

    @property
    def webhook_settings(self):
        return (self.settings or {}).get("webhooks") or {}


class TeamMembership(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="memberships")
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=16, choices=TeamRole.choices, default=TeamRole.MEMBER)

    # Reward state. Written only by task completion.
    xp = models.PositiveIntegerField(default=0)
    today_xp = models.PositiveIntegerField(default=0)
    streak = models.PositiveIntegerField(default=0)
    tasks_completed = models.PositiveIntegerField(default=0)
    last_completed_date = models.DateField(null=True, blank=True)

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "team"], name="uq_team_member")
        ]
        ordering = ["-xp", "joined_at"]

    def __str__(self):
        return f"{self.user_id} in {self.team_id}"

    @property
    def rank(self):
        return rank_for_xp(self.xp)

    @property
    def next_rank(self):
        return next_rank(self.xp)
