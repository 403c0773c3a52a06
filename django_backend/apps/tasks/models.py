from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class TaskStatus(models.TextChoices):
    TODO = "todo", "To Do"
    IN_PROGRESS = "in_progress", "In Progress"
    BLOCKED = "blocked", "Blocked"
    IN_REVIEW = "in_review", "In Review"
    DONE = "done", "Done"


class SprintStatus(models.TextChoices):
    PLANNING = "planning", "Planning"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"


class TaskPriority(models.TextChoices):
    P0 = "P0", "Critical"
    P1 = "P1", "High"
    P2 = "P2", "Medium"
    P3 = "P3", "Low"


class ActivityAction(models.TextChoices):
    TASK_CREATED = "task_created", "Task Created"
    TASK_COMPLETED = "task_completed", "Task Completed"
    TASK_DELETED = "task_deleted", "Task Deleted"
    TASK_ASSIGNED = "task_assigned", "Task Assigned"
    TASK_EDITED = "task_edited", "Task Edited"
    STATUS_CHANGED = "status_changed", "Status Changed"
    LEVEL_UP = "level_up", "Level Up"
    COMMENT_ADDED = "comment_added", "Comment Added"
    TEAM_JOINED = "team_joined", "Team Joined"


class Task(models.Model):
    team = models.ForeignKey(
        "users.Team",
        on_delete=models.CASCADE,
        related_name="tasks"
    )
    title = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    priority = models.CharField(
        max_length=2,
        choices=TaskPriority.choices,
        default=TaskPriority.P2
    )
    status = models.CharField(
        max_length=16,
        choices=TaskStatus.choices,
        default=TaskStatus.TODO
    )
    # Legacy flag, always equal to status == done.
    completed = models.BooleanField(default=False)
    status_updated_at = models.DateTimeField(default=timezone.now)

    # Set only while status == blocked.
    blocker_note = models.TextField(null=True, blank=True)
    blocker_since = models.DateTimeField(null=True, blank=True)

    # Set only while status == done.
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="completed_tasks"
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="tasks_assigned"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="tasks_created"
    )
    due_date = models.DateField(null=True, blank=True)

    depends_on = models.ManyToManyField(
        "self",
        through="TaskDependency",
        through_fields=("task", "depends_on"),
        symmetrical=False,
        related_name="blocking",
        blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["completed", "priority", "-created_at"]
        indexes = [
            models.Index(fields=["team", "status"], name="task_team_status_idx"),
            models.Index(fields=["priority"], name="task_priority_idx"),
            models.Index(fields=["due_date"], name="task_due_date_idx"),
            models.Index(fields=["created_at"], name="task_created_at_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(completed=True, status=TaskStatus.DONE)
                    | (Q(completed=False) & ~Q(status=TaskStatus.DONE))
                ),
                name="task_completed_matches_status",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class TaskDependency(models.Model):
    """``task`` depends on (is blocked by) ``depends_on``."""
    team = models.ForeignKey(
        "users.Team",
        on_delete=models.CASCADE,
        related_name="task_dependencies"
    )
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="dependency_links")
    depends_on = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="dependent_links")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="task_dependencies_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["task", "depends_on"], name="uq_task_dependency"),
            models.CheckConstraint(condition=~Q(task=F("depends_on")), name="no_self_dependency"),
        ]
        indexes = [models.Index(fields=["team"], name="task_dependency_team_idx")]

    def __str__(self) -> str:
        return f"{self.task_id} -> {self.depends_on_id}"


class Sprint(models.Model):
    team = models.ForeignKey("users.Team", on_delete=models.CASCADE, related_name="sprints")
    name = models.CharField(max_length=150)
    start_date = models.DateField()
    end_date = models.DateField()
    # Free-form list of goal strings.
    goals = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=16,
        choices=SprintStatus.choices,
        default=SprintStatus.PLANNING
    )
    tasks = models.ManyToManyField(Task, related_name="sprints", blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="sprints_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="sprint_ends_after_start",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Comment(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="comments")
    team = models.ForeignKey("users.Team", on_delete=models.CASCADE, related_name="task_comments")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="task_comments"
    )
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Comment #{self.pk} on {self.task_id}"


class ActivityEntry(models.Model):
    """Append-only team journal entry."""
    team = models.ForeignKey("users.Team", on_delete=models.CASCADE, related_name="activity")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="activity_entries"
    )
    action = models.CharField(max_length=32, choices=ActivityAction.choices)
    task = models.ForeignKey(
        Task,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="activity"
    )
    task_title = models.CharField(max_length=200, blank=True, default="")
    xp_earned = models.PositiveIntegerField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["team", "-created_at"], name="activity_team_created_idx")]
        verbose_name_plural = "activity entries"

    def __str__(self) -> str:
        return f"{self.action} in {self.team_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Activity entries are append-only")
        super().save(*args, **kwargs)
