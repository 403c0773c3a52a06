from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.tasks.models import ActivityEntry, Comment, Sprint, SprintStatus, Task, TaskPriority
from apps.tasks.services.sprints import sprint_tasks

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ["id", "username", "name"]


class TaskSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    completed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Task
        fields = [
            "id",
            "team",
            "title",
            "category",
            "notes",
            "priority",
            "status",
            "completed",
            "status_updated_at",
            "blocker_note",
            "blocker_since",
            "completed_by",
            "completed_at",
            "assigned_to",
            "created_by",
            "due_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TaskCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    priority = serializers.ChoiceField(choices=TaskPriority.choices, default=TaskPriority.P2)
    assigned_to = serializers.IntegerField(required=False, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TaskEditSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)
    priority = serializers.ChoiceField(choices=TaskPriority.choices, required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class StatusChangeSerializer(serializers.Serializer):
    # Checked against TaskStatus by the lifecycle service.
    status = serializers.CharField()
    blocker_note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AssignSerializer(serializers.Serializer):
    assigned_to = serializers.IntegerField(allow_null=True)


class DependencyCreateSerializer(serializers.Serializer):
    depends_on_id = serializers.IntegerField(min_value=1)


class CommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "task", "author", "body", "created_at"]
        read_only_fields = ["id", "task", "author", "created_at"]


class ActivityEntrySerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    task_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ActivityEntry
        fields = [
            "id",
            "team",
            "user",
            "action",
            "task_id",
            "task_title",
            "xp_earned",
            "details",
            "created_at",
        ]
        read_only_fields = fields



class SprintSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    task_count = serializers.IntegerField(read_only=True, default=0)
    completed_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Sprint
        fields = [
            "id",
            "team",
            "name",
            "start_date",
            "end_date",
            "goals",
            "status",
            "created_by",
            "task_count",
            "completed_count",
            "created_at",
        ]
        read_only_fields = fields


class SprintTaskSerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)

    class Meta:
        model = Task
        fields = ["id", "title", "priority", "status", "due_date", "assigned_to"]
        read_only_fields = fields


class SprintDetailSerializer(SprintSerializer):
    tasks = serializers.SerializerMethodField()

    class Meta(SprintSerializer.Meta):
        fields = [f for f in SprintSerializer.Meta.fields if f not in ("task_count", "completed_count")]
        fields.append("tasks")
        read_only_fields = fields

    def get_tasks(self, sprint):
        return SprintTaskSerializer(sprint_tasks(sprint), many=True).data


class SprintCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    goals = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "Sprint cannot end before it starts"})
        return attrs


class SprintUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    status = serializers.ChoiceField(choices=SprintStatus.choices, required=False)
    goals = serializers.ListField(child=serializers.CharField(), required=False)


class SprintTaskAddSerializer(serializers.Serializer):
    task_id = serializers.IntegerField(min_value=1)
