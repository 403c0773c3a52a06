from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.tasks.services.notifications import NOTIFIED_EVENTS
from apps.users.models import Team, TeamMembership, TeamRole

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "display_name", "name"]


class UserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["email", "first_name", "last_name", "display_name"]


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = ["id", "username", "email", "display_name", "password"]
        read_only_fields = ["id"]

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class TeamSerializer(serializers.ModelSerializer):
    created_by = UserSerializer(read_only=True)
    member_count = serializers.ReadOnlyField()
    is_admin = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = [
            "id",
            "name",
            "description",
            "code",
            "created_by",
            "member_count",
            "created_at",
            "is_admin",
            "role",
        ]
        read_only_fields = ["code", "created_by", "created_at"]

    def _membership(self, obj):
        request = self.context.get("request")
        if request and request.user.is_authenticated:
            return obj.membership_for(request.user)
        return None

    def get_is_admin(self, obj):
        membership = self._membership(obj)
        return bool(membership and membership.role == TeamRole.ADMIN)

    def get_role(self, obj):
        membership = self._membership(obj)
        return membership.role if membership else None


class TeamCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Team
        fields = ["id", "name", "description"]
        read_only_fields = ["id"]


class JoinTeamSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=12)


class MemberActionSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    role = serializers.ChoiceField(choices=TeamRole.choices, required=False)

    def validate_user_id(self, value):
        if not User.objects.filter(id=value).exists():
            raise serializers.ValidationError("User not found.")
        return value


class RoleChangeSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    role = serializers.ChoiceField(choices=TeamRole.choices)


class LeaderboardEntrySerializer(serializers.ModelSerializer):
    """A membership row with its derived rank, ordered by xp."""
    user = UserSerializer(read_only=True)
    level = serializers.SerializerMethodField()
    rank = serializers.SerializerMethodField()
    next_rank_xp = serializers.SerializerMethodField()

    class Meta:
        model = TeamMembership
        fields = [
            "user",
            "role",
            "xp",
            "today_xp",
            "streak",
            "tasks_completed",
            "last_completed_date",
            "level",
            "rank",
            "next_rank_xp",
            "joined_at",
        ]

    def get_level(self, obj):
        return obj.rank.level

    def get_rank(self, obj):
        return obj.rank.name

    def get_next_rank_xp(self, obj):
        upcoming = obj.next_rank
        return upcoming.xp if upcoming else None


class WebhookSettingsSerializer(serializers.Serializer):
    url = serializers.URLField(required=False, allow_blank=True)
    enabled = serializers.BooleanField(required=False)
    events = serializers.ListField(
        child=serializers.ChoiceField(choices=NOTIFIED_EVENTS),
        required=False,
    )

    def validate(self, attrs):
        if attrs.get("enabled") and not (attrs.get("url") or self.context.get("current_url")):
            raise serializers.ValidationError({"url": "A URL is required to enable webhooks."})
        return attrs
