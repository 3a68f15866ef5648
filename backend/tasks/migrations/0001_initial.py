# Generated manually
import uuid
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('staff', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('task_no', models.CharField(blank=True, help_text='Display number (e.g. T002, or T002-2024-01-03 for generated instances)', max_length=64, unique=True)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('allocation_mode', models.CharField(choices=[('individual', 'Individual'), ('team', 'Team')], default='individual', max_length=20)),
                ('assigned_staff_ids', models.JSONField(blank=True, default=list)),
                ('assigned_team_ids', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('backlog', 'Backlog'), ('todo', 'To Do'), ('in_progress', 'In Progress'), ('completed', 'Completed')], default='todo', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=20)),
                ('due_date', models.DateTimeField(blank=True, null=True)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('is_repeated', models.BooleanField(default=False)),
                ('repeat_config', models.JSONField(blank=True, help_text='frequency, interval, end_date, custom_days, has_specific_time, start_time, end_time', null=True)),
                ('support_files', models.JSONField(blank=True, default=list)),
                ('generation_date', models.DateField(blank=True, help_text='Calendar day a repeated task instance was generated for', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent_task', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='instances', to='tasks.task')),
            ],
            options={
                'db_table': 'tasks',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_repeated'], name='tasks_is_repeated_idx'),
                    models.Index(fields=['parent_task', 'created_at'], name='tasks_parent_created_idx'),
                    models.Index(fields=['status'], name='tasks_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('parent_task', 'generation_date'), name='unique_task_instance_per_day'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaskAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='task_assignments', to='staff.staff')),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='tasks.task')),
            ],
            options={
                'db_table': 'task_assignments',
                'unique_together': {('task', 'staff')},
            },
        ),
    ]
