from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import ActivityViewSet, RewardsConfigView, SprintViewSet, TaskViewSet

router = SimpleRouter()
router.register(r"teams/(?P<team_pk>\d+)/tasks", TaskViewSet, basename="team-tasks")
router.register(r"teams/(?P<team_pk>\d+)/activity", ActivityViewSet, basename="team-activity")
router.register(r"teams/(?P<team_pk>\d+)/sprints", SprintViewSet, basename="team-sprints")

urlpatterns = [
    path("", include(router.urls)),
    path("rewards/config/", RewardsConfigView.as_view(), name="rewards-config"),
]
