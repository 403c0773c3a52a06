from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone
from apps.common.exceptions import TaskTrackerError
from apps.tasks.models import TaskPriority, TaskStatus
from apps.tasks.services import dependencies, lifecycle, sprints
from apps.tasks.services import tasks as task_service
from apps.users.models import Team, TeamRole
import random
from datetime import timedelta

User = get_user_model()

FIRST_NAMES = [
    'Alice', 'Bob', 'Charlie', 'Diana', 'Eve', 'Frank', 'Grace', 'Henry',
    'Ivy', 'Jack', 'Kate', 'Liam', 'Mia', 'Noah', 'Olivia', 'Peter',
]

LAST_NAMES = [
    'Smith', 'Johnson', 'Williams', 'Brown', 'Jones', 'Garcia', 'Miller',
    'Davis', 'Wilson', 'Anderson', 'Thomas', 'Moore',
]

TEAM_NAMES = ['Engineering', 'Product', 'Design', 'Support', 'DevOps', 'QA']

TASK_TITLES = [
    'Write release notes', 'Fix login redirect', 'Review onboarding copy',
    'Update dependencies', 'Triage support inbox', 'Draft sprint goals',
    'Profile slow dashboard query', 'Add retry to webhook sender',
    'Clean up feature flags', 'Design empty states', 'Audit access logs',
    'Prepare demo environment', 'Migrate cron jobs', 'Document API errors',
]

CATEGORIES = ['backend', 'frontend', 'ops', 'docs', 'design', '']


class Command(BaseCommand):
    help = 'Seed the database with sample teams, tasks, dependencies and completions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=12,
            help='Number of users to create'
        )
        parser.add_argument(
            '--tasks',
            type=int,
            default=40,
            help='Number of tasks to create per team'
        )
        parser.add_argument(
            '--teams',
            type=int,
            default=2,
            help='Number of teams to create'
        )

    def handle(self, *args, **options):
        self.stdout.write('Starting database seeding...')

        users = self.create_users(options['users'])
        teams = self.create_teams(users, options['teams'])
        task_count = 0
        edge_count = 0
        for team in teams:
            tasks = self.create_tasks(team, options['tasks'])
            task_count += len(tasks)
            edge_count += self.create_dependencies(team, tasks)
            self.advance_tasks(team, tasks)
            self.create_sprint(team, tasks)

        self.stdout.write(
            self.style.SUCCESS(
                f'\nSeed data created successfully!\n'
                f'Users: {len(users)}\n'
                f'Teams: {len(teams)}\n'
                f'Tasks: {task_count}\n'
                f'Dependencies: {edge_count}\n\n'
                f'Admin user: admin / admin123\n'
                f'Regular users: [username] / password123\n'
            )
        )

    def create_users(self, num_users):
        self.stdout.write('Creating users...')
        users = []

        admin, created = User.objects.get_or_create(
            username='admin',
            defaults={
                'email': 'admin@example.com',
                'display_name': 'Admin',
                'is_staff': True,
                'is_superuser': True
            }
        )
        if created:
            admin.set_password('admin123')
            admin.save()
        users.append(admin)

        for i in range(num_users):
            first_name = random.choice(FIRST_NAMES)
            last_name = random.choice(LAST_NAMES)
            username = f"{first_name.lower()}{last_name.lower()}{i}"

            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    'email': f"{username}@example.com",
                    'first_name': first_name,
                    'last_name': last_name,
                    'display_name': f"{first_name} {last_name}"
                }
            )
            if created:
                user.set_password('password123')
                user.save()
            users.append(user)

        return users

    def create_teams(self, users, num_teams):
        self.stdout.write('Creating teams...')
        teams = []

        for name in random.sample(TEAM_NAMES, min(num_teams, len(TEAM_NAMES))):
            creator = random.choice(users)
            team = Team.objects.create(
                name=name,
                description=f"The {name} team",
                created_by=creator
            )
            team.add_member(creator, role=TeamRole.ADMIN)
            for user in random.sample(users, min(len(users), random.randint(3, 8))):
                team.add_member(user)
            teams.append(team)

        return teams

    def create_tasks(self, team, num_tasks):
        members = [m.user for m in team.memberships.select_related('user')]
        tasks = []

        for _ in range(num_tasks):
            creator = random.choice(members)
            assignee = random.choice(members + [None])
            due = timezone.localdate() + timedelta(days=random.randint(-5, 20))
            task = task_service.create_task(
                team,
                creator,
                title=random.choice(TASK_TITLES),
                priority=random.choice(TaskPriority.values),
                assigned_to=assignee.pk if assignee else None,
                category=random.choice(CATEGORIES),
                due_date=due if random.random() < 0.5 else None,
            )
            tasks.append(task)

        return tasks

    def create_dependencies(self, team, tasks):
        created = 0
        for _ in range(len(tasks) // 3):
            task, blocker = random.sample(tasks, 2)
            try:
                dependencies.add_dependency(team, task.pk, blocker.pk, created_by=task.created_by)
            except TaskTrackerError:
                # Cycles and duplicates are expected with random edges.
                continue
            created += 1
        return created

    def create_sprint(self, team, tasks):
        admin = team.memberships.filter(role=TeamRole.ADMIN).select_related('user').first().user
        start = timezone.localdate()
        sprint = sprints.create_sprint(
            team, admin, f'{team.name} sprint 1', start, start + timedelta(days=13),
            goals=['Clear the blocked tasks'],
        )
        for task in tasks[: len(tasks) // 2]:
            sprints.add_task(team, sprint.pk, admin, task.pk)
        return sprint

    def advance_tasks(self, team, tasks):
        members = [m.user for m in team.memberships.select_related('user')]
        for task in random.sample(tasks, len(tasks) // 2):
            status = random.choice(TaskStatus.values)
            note = 'Waiting on review' if status == TaskStatus.BLOCKED else None
            lifecycle.set_status(team, task.pk, random.choice(members), status, blocker_note=note)
