from rest_framework.permissions import BasePermission


class IsTeamMember(BasePermission):
    """Request is scoped to ``team_pk`` and the caller belongs to that team."""

    message = "Not a member of this team"

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        team = view.get_team()
        return team.is_member(user)
