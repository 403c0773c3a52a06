from django.db import migrations, models

from apps.users.models import generate_team_code


def fill_codes(apps, schema_editor):
    Team = apps.get_model('users', 'Team')
    used = set()
    for team in Team.objects.all():
        code = generate_team_code()
        while code in used:
            code = generate_team_code()
        used.add(code)
        team.code = code
        team.save(update_fields=['code'])


class Migration(migrations.Migration):

    dependencies = [
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='team',
            name='code',
            field=models.CharField(max_length=12, null=True),
        ),
        migrations.RunPython(fill_codes, migrations.RunPython.noop),
        migrations.AlterField(
            model_name='team',
            name='code',
            field=models.CharField(default=generate_team_code, max_length=12, unique=True),
        ),
    ]
