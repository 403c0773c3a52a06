from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.exceptions import ValidationFailed
from apps.tasks.rewards import FALLBACK_PRIORITY, RANKS, XP_VALUES
from apps.tasks.services import activity, lifecycle
from apps.tasks.services import dependencies as dependency_service
from apps.tasks.services import sprints as sprint_service
from apps.tasks.services import tasks as task_service
from apps.tasks.services.access import require_membership, require_task
from apps.users.models import Team
from .permissions import IsTeamMember
from .serializers import (
    ActivityEntrySerializer,
    AssignSerializer,
    CommentSerializer,
    DependencyCreateSerializer,
    SprintCreateSerializer,
    SprintDetailSerializer,
    SprintSerializer,
    SprintTaskAddSerializer,
    SprintUpdateSerializer,
    StatusChangeSerializer,
    TaskCreateSerializer,
    TaskEditSerializer,
    TaskSerializer,
)


class TeamScopedMixin:
    """Resolves the ``team_pk`` URL kwarg once per request."""

    def get_team(self):
        if not hasattr(self, "_team"):
            self._team = get_object_or_404(Team, pk=self.kwargs["team_pk"])
        return self._team


class TaskViewSet(TeamScopedMixin, viewsets.GenericViewSet):
    serializer_class = TaskSerializer
    lookup_value_regex = r"\d+"
    permission_classes = [permissions.IsAuthenticated, IsTeamMember]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["status", "priority", "category"]

    def get_queryset(self):
        mine = self.request.query_params.get("filter") == "mine"
        return task_service.list_tasks(self.get_team(), self.request.user, mine=mine)

    def _task_payload(self, task, **extra):
        return {"task": TaskSerializer(task).data, **extra}

    def list(self, request, team_pk=None):
        qs = self.filter_queryset(self.get_queryset())
        return Response(TaskSerializer(qs, many=True).data)

    def retrieve(self, request, team_pk=None, pk=None):
        task = require_task(self.get_team(), pk)
        return Response(TaskSerializer(task).data)

    def create(self, request, team_pk=None):
        ser = TaskCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        task = task_service.create_task(self.get_team(), request.user, **ser.validated_data)
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, team_pk=None, pk=None):
        ser = TaskEditSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        task = task_service.edit_task(self.get_team(), pk, request.user, **ser.validated_data)
        return Response(TaskSerializer(task).data)

    def destroy(self, request, team_pk=None, pk=None):
        task_service.delete_task(self.get_team(), pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, team_pk=None, pk=None):
        ser = StatusChangeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = lifecycle.set_status(
            self.get_team(),
            pk,
            request.user,
            ser.validated_data["status"],
            blocker_note=ser.validated_data.get("blocker_note"),
        )
        return Response(self._task_payload(result.task, **result.as_dict()))

    @action(detail=True, methods=["post"])
    def complete(self, request, team_pk=None, pk=None):
        result = lifecycle.complete_task(self.get_team(), pk, request.user)
        return Response(self._task_payload(result.task, **result.as_dict()))

    @action(detail=True, methods=["post"])
    def uncomplete(self, request, team_pk=None, pk=None):
        result = lifecycle.uncomplete_task(self.get_team(), pk, request.user)
        return Response(self._task_payload(result.task, **result.as_dict()))

    @action(detail=True, methods=["patch"])
    def assign(self, request, team_pk=None, pk=None):
        ser = AssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        task = task_service.assign_task(
            self.get_team(), pk, request.user, ser.validated_data["assigned_to"]
        )
        return Response(TaskSerializer(task).data)

    @action(detail=True, methods=["get"])
    def dependencies(self, request, team_pk=None, pk=None):
        return Response(dependency_service.get_dependencies(self.get_team(), pk))

    @dependencies.mapping.post
    def add_dependency(self, request, team_pk=None, pk=None):
        ser = DependencyCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        edge = dependency_service.add_dependency(
            self.get_team(), pk, ser.validated_data["depends_on_id"], created_by=request.user
        )
        return Response(
            {"id": edge.pk, "task_id": edge.task_id, "depends_on_id": edge.depends_on_id},
            status=status.HTTP_201_CREATED,
        )

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"dependencies/(?P<dependency_pk>\d+)",
        url_name="dependency-detail",
    )
    def remove_dependency(self, request, team_pk=None, pk=None, dependency_pk=None):
        dependency_service.remove_dependency(self.get_team(), dependency_pk, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def comments(self, request, team_pk=None, pk=None):
        qs = task_service.list_comments(self.get_team(), pk, request.user)
        return Response(CommentSerializer(qs, many=True).data)

    @comments.mapping.post
    def add_comment(self, request, team_pk=None, pk=None):
        comment = task_service.add_comment(
            self.get_team(), pk, request.user, request.data.get("body")
        )
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class SprintViewSet(TeamScopedMixin, viewsets.GenericViewSet):
    serializer_class = SprintSerializer
    lookup_value_regex = r"\d+"
    permission_classes = [permissions.IsAuthenticated, IsTeamMember]

    def get_queryset(self):
        return sprint_service.list_sprints(self.get_team(), self.request.user)

    def list(self, request, team_pk=None):
        return Response(SprintSerializer(self.get_queryset(), many=True).data)

    def create(self, request, team_pk=None):
        ser = SprintCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        sprint = sprint_service.create_sprint(self.get_team(), request.user, **ser.validated_data)
        return Response(SprintSerializer(sprint).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, team_pk=None, pk=None):
        sprint = sprint_service.get_sprint(self.get_team(), pk)
        return Response(SprintDetailSerializer(sprint).data)

    def partial_update(self, request, team_pk=None, pk=None):
        ser = SprintUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        sprint = sprint_service.update_sprint(
            self.get_team(), pk, request.user, **ser.validated_data
        )
        return Response(SprintDetailSerializer(sprint).data)

    @action(detail=True, methods=["post"])
    def tasks(self, request, team_pk=None, pk=None):
        ser = SprintTaskAddSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        sprint = sprint_service.add_task(
            self.get_team(), pk, request.user, ser.validated_data["task_id"]
        )
        return Response(SprintDetailSerializer(sprint).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"tasks/(?P<task_pk>\d+)",
        url_name="task-detail",
    )
    def remove_task(self, request, team_pk=None, pk=None, task_pk=None):
        sprint_service.remove_task(self.get_team(), pk, request.user, task_pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ActivityViewSet(TeamScopedMixin, viewsets.GenericViewSet):
    serializer_class = ActivityEntrySerializer
    permission_classes = [permissions.IsAuthenticated, IsTeamMember]

    def list(self, request, team_pk=None):
        limit = request.query_params.get("limit")
        if limit is not None:
            try:
                limit = int(limit)
            except ValueError:
                raise ValidationFailed("limit must be an integer")
        team = self.get_team()
        require_membership(team, request.user)
        entries = activity.list_activity(team, limit)
        return Response(ActivityEntrySerializer(entries, many=True).data)


class RewardsConfigView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({
            "xp_values": dict(XP_VALUES),
            "fallback_priority": FALLBACK_PRIORITY,
            "ranks": [
                {"level": rank.level, "xp": rank.xp, "name": rank.name}
                for rank in RANKS
            ],
        })
