# Generated manually

import staging.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='PublicationChecklist',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('enabled', models.BooleanField(default=True)),
                ('items', models.JSONField(default=staging.models.default_checklist_items)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'publication_checklist',
            },
        ),
        migrations.CreateModel(
            name='ScheduledEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('hook', models.CharField(max_length=100)),
                ('argument', models.PositiveBigIntegerField(help_text='Revision id the callback receives')),
                ('run_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'scheduled_events',
                'ordering': ['run_at', 'id'],
                'indexes': [
                    models.Index(fields=['hook', 'run_at'], name='scheduled_e_hook_2c61f0_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('hook', 'argument'), name='uniq_scheduled_event_hook_arg'),
                ],
            },
        ),
    ]
