"""
Per-team dependency graph.

An edge ``task -> depends_on`` means ``task`` is blocked by ``depends_on``.
Edges are advisory: nothing here gates status transitions.
"""
import logging
from collections import defaultdict

from django.db import IntegrityError, transaction
from django.db.models import Q

from apps.common.exceptions import CycleDetected, DuplicateDependency, NotFound, SelfReference
from apps.tasks.models import Task, TaskDependency
from apps.tasks.services.access import parse_id

logger = logging.getLogger(__name__)


def load_graph(team):
    """Adjacency list of the team's edges, keyed by the dependent task id."""
    graph = defaultdict(set)
    for task_id, depends_on_id in TaskDependency.objects.filter(team=team).values_list(
        "task_id", "depends_on_id"
    ):
        graph[task_id].add(depends_on_id)
    return graph


def reachable_from(graph, start):
    """Every task id reachable from ``start`` by following one or more edges."""
    seen = set()
    stack = [start]
    while stack:
        node = stack.pop()
        for neighbour in graph.get(node, ()):
            if neighbour not in seen:
                seen.add(neighbour)
                stack.append(neighbour)
    return seen


def would_create_cycle(graph, task_id, depends_on_id) -> bool:
    return task_id == depends_on_id or task_id in reachable_from(graph, depends_on_id)


def add_dependency(team, task_id, depends_on_id, created_by=None) -> TaskDependency:
    task_id, depends_on_id = parse_id(task_id), parse_id(depends_on_id)
    if task_id == depends_on_id:
        raise SelfReference("A task cannot depend on itself")

    found = set(
        Task.objects.filter(team=team, pk__in=[task_id, depends_on_id]).values_list("pk", flat=True)
    )
    if found != {task_id, depends_on_id}:
        raise NotFound("One or both tasks not found in this team")

    with transaction.atomic():
        if TaskDependency.objects.filter(task_id=task_id, depends_on_id=depends_on_id).exists():
            raise DuplicateDependency("This dependency already exists")

        if would_create_cycle(load_graph(team), task_id, depends_on_id):
            raise CycleDetected("This dependency would create a circular chain")

        try:
            with transaction.atomic():
                edge = TaskDependency.objects.create(
                    team=team,
                    task_id=task_id,
                    depends_on_id=depends_on_id,
                    created_by=created_by,
                )
        except IntegrityError:
            raise DuplicateDependency("This dependency already exists")

    logger.info(f"Task {task_id} now depends on task {depends_on_id} in team {team.pk}")
    return edge


def remove_dependency(team, edge_id, task_id) -> int:
    """Delete the edge if it belongs to ``team`` and touches ``task_id``. Missing edges are fine."""
    edge_id, task_id = parse_id(edge_id, "Dependency"), parse_id(task_id)
    deleted, _ = (
        TaskDependency.objects.filter(team=team, pk=edge_id)
        .filter(Q(task_id=task_id) | Q(depends_on_id=task_id))
        .delete()
    )
    return deleted


def _entry(edge, other):
    return {
        "dependency_id": edge.pk,
        "id": other.pk,
        "title": other.title,
        "status": other.status,
        "priority": other.priority,
    }


def get_dependencies(team, task_id):
    task_id = parse_id(task_id)
    if not Task.objects.filter(team=team, pk=task_id).exists():
        raise NotFound("Task not found")

    blocked_by = (
        TaskDependency.objects.filter(team=team, task_id=task_id)
        .select_related("depends_on")
        .order_by("depends_on__priority", "depends_on__created_at", "depends_on_id")
    )
    blocking = (
        TaskDependency.objects.filter(team=team, depends_on_id=task_id)
        .select_related("task")
        .order_by("task__priority", "task__created_at", "task_id")
    )
    return {
        "blocked_by": [_entry(edge, edge.depends_on) for edge in blocked_by],
        "blocking": [_entry(edge, edge.task) for edge in blocking],
    }
