import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, Sum
from rest_framework import generics, permissions, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from apps.tasks.models import ActivityAction
from apps.tasks.services import activity
from apps.users.models import Team, TeamRole
from .permissions import IsSelfOrAdmin
from .serializers import (
    UserSerializer, UserUpdateSerializer, RegisterSerializer,
    TeamSerializer, TeamCreateSerializer, MemberActionSerializer,
    RoleChangeSerializer, LeaderboardEntrySerializer, WebhookSettingsSerializer,
    JoinTeamSerializer,
)
from ..producer import (
    publish_user_registered,
    publish_team_created,
    publish_team_deleted,
    publish_team_webhooks_updated,
    publish_team_member_added,
    publish_team_member_removed,
    publish_team_member_role_changed,
    publish_team_member_left,
    publish_team_member_joined,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class RegisterAPIView(generics.CreateAPIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = RegisterSerializer

    def perform_create(self, serializer):
        user = serializer.save()
        publish_user_registered(user.id, user.username, user.email)


class UserViewSet(viewsets.ModelViewSet):
    queryset = User.objects.all().order_by("id")
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "put", "patch", "head", "options"]

    def get_serializer_class(self):
        if self.action in ["update", "partial_update"]:
            return UserUpdateSerializer
        return UserSerializer

    def get_permissions(self):
        if self.action in ["update", "partial_update"]:
            return [permissions.IsAuthenticated(), IsSelfOrAdmin()]
        return super().get_permissions()

    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(UserSerializer(request.user).data)


def _other_admins(team, user):
    return team.memberships.filter(role=TeamRole.ADMIN).exclude(user_id=user.id).exists()


class TeamViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        if user.is_staff:
            return Team.objects.all().order_by("-created_at")
        return Team.objects.filter(memberships__user=user).distinct().order_by("-created_at")

    def get_serializer_class(self):
        if self.action == 'create':
            return TeamCreateSerializer
        return TeamSerializer

    def _require_manager(self, team, message):
        if not team.can_manage(self.request.user):
            raise Forbidden(message)

    def perform_create(self, serializer):
        with transaction.atomic():
            team = serializer.save(created_by=self.request.user)
            # The creator administers the team
            team.add_member(self.request.user, role=TeamRole.ADMIN)
        logger.info(f"Team {team.id} created by user {self.request.user.id}")
        publish_team_created(self.request.user.id, team.id, team.name)

    def perform_update(self, serializer):
        self._require_manager(serializer.instance, "Only team admin can update the team")
        serializer.save()

    def perform_destroy(self, instance):
        self._require_manager(instance, "Only team admin can delete the team")
        team_id, name = instance.id, instance.name
        instance.delete()
        publish_team_deleted(self.request.user.id, team_id, name)

    @action(detail=True, methods=["get"])
    def members(self, request, pk=None):
        """Team leaderboard: members by xp, highest first"""
        team = self.get_object()
        memberships = team.memberships.select_related("user").order_by("-xp", "joined_at", "id")
        data = LeaderboardEntrySerializer(memberships, many=True).data
        for position, entry in enumerate(data, start=1):
            entry["position"] = position
        return Response(data)

    @action(detail=True, methods=["post"])
    def add_member(self, request, pk=None):
        """Add a member to the team"""
        team = self.get_object()
        self._require_manager(team, "Only team admin can add members")

        serializer = MemberActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.get(id=serializer.validated_data["user_id"])
        role = serializer.validated_data.get("role", TeamRole.MEMBER)

        if team.is_member(user):
            raise Conflict("User is already a member of this team")

        membership = team.add_member(user, role=role)
        publish_team_member_added(request.user.id, team.id, user.id, membership.role)
        return Response(LeaderboardEntrySerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def remove_member(self, request, pk=None):
        """Remove a member from the team"""
        team = self.get_object()
        self._require_manager(team, "Only team admin can remove members")

        serializer = MemberActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.get(id=serializer.validated_data["user_id"])

        with transaction.atomic():
            membership = team.memberships.select_for_update().filter(user_id=user.id).first()
            if membership is None:
                raise NotFound("User is not a member of this team")
            if membership.role == TeamRole.ADMIN and not _other_admins(team, user):
                raise ValidationFailed("Cannot remove the last admin of the team")
            membership.delete()

        publish_team_member_removed(request.user.id, team.id, user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"])
    def join(self, request):
        """Join a team by the code its members share"""
        serializer = JoinTeamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        code = serializer.validated_data["code"].strip().upper()
        user = request.user

        with transaction.atomic():
            team = Team.objects.select_for_update().filter(code=code).first()
            if team is None:
                raise NotFound("Invalid team code")
            if team.is_member(user):
                raise Conflict("Already a member of this team")
            team.add_member(user)
            activity.record(team, user, ActivityAction.TEAM_JOINED, details={"team_name": team.name})

        logger.info(f"User {user.id} joined team {team.id} by code")
        publish_team_member_joined(user.id, team.id)
        serializer = TeamSerializer(team, context=self.get_serializer_context())
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        """Leave the team; an admin may leave only while another admin remains"""
        team = self.get_object()
        user = request.user

        with transaction.atomic():
            membership = team.memberships.select_for_update().filter(user_id=user.id).first()
            if membership is None:
                raise ValidationFailed("You are not a member of this team")
            if membership.role == TeamRole.ADMIN and not _other_admins(team, user):
                raise ValidationFailed(
                    "The last admin cannot leave the team. Promote another member or delete the team instead."
                )
            membership.delete()

        publish_team_member_left(user.id, team.id)
        return Response({"message": f"You have left team {team.name}"})

    @action(detail=True, methods=["patch"])
    def role(self, request, pk=None):
        """Change a member's role"""
        team = self.get_object()
        self._require_manager(team, "Only team admin can change roles")

        serializer = RoleChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_id = serializer.validated_data["user_id"]
        new_role = serializer.validated_data["role"]

        with transaction.atomic():
            memberships = list(team.memberships.select_for_update().order_by("id"))
            membership = next((m for m in memberships if m.user_id == user_id), None)
            if membership is None:
                raise NotFound("User is not a member of this team")

            old_role = membership.role
            admins = [m for m in memberships if m.role == TeamRole.ADMIN]
            if old_role == TeamRole.ADMIN and new_role != TeamRole.ADMIN and len(admins) == 1:
                raise ValidationFailed("Cannot demote the last admin of the team")

            if old_role != new_role:
                membership.role = new_role
                membership.save(update_fields=["role"])

        if old_role != new_role:
            publish_team_member_role_changed(request.user.id, team.id, user_id, old_role, new_role)
        return Response(LeaderboardEntrySerializer(membership).data)

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        """Totals for the team dashboard"""
        team = self.get_object()
        tasks = team.tasks.aggregate(
            total=Count("id"),
            completed=Count("id", filter=Q(completed=True)),
        )
        total_xp = team.memberships.aggregate(total=Sum("xp"))["total"] or 0
        top = team.memberships.select_related("user").order_by("-xp", "joined_at", "id").first()

        return Response({
            "member_count": team.member_count,
            "total_tasks": tasks["total"],
            "completed_tasks": tasks["completed"],
            "total_xp": total_xp,
            "top_member": LeaderboardEntrySerializer(top).data if top else None,
        })

    @action(detail=True, methods=["get", "patch"])
    def webhooks(self, request, pk=None):
        """Read or update the team's outbound webhook settings"""
        team = self.get_object()
        self._require_manager(team, "Only team admin can manage webhooks")

        current = dict(team.webhook_settings)
        if request.method == "GET":
            return Response(current)

        serializer = WebhookSettingsSerializer(
            data=request.data, context={"current_url": current.get("url")}
        )
        serializer.is_valid(raise_exception=True)
        current.update(serializer.validated_data)

        team.settings = {**(team.settings or {}), "webhooks": current}
        team.save(update_fields=["settings"])
        publish_team_webhooks_updated(request.user.id, team.id, bool(current.get("enabled")))
        return Response(current)
