import uuid
from django.db import models
from backend.staff.models import Staff


class Task(models.Model):
    """
    Tasks assigned to staff.

    Repeating tasks (``is_repeated=True``) act as templates: the daily
    generator creates one concrete instance per eligible day and links it
    back through ``parent_task``.
    """
    STATUS_CHOICES = [
        ('backlog', 'Backlog'),
        ('todo', 'To Do'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    ALLOCATION_MODE_CHOICES = [
        ('individual', 'Individual'),
        ('team', 'Team'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    task_no = models.CharField(max_length=64, unique=True, blank=True, help_text="Display number (e.g. T002, or T002-2024-01-03 for generated instances)")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    allocation_mode = models.CharField(max_length=20, choices=ALLOCATION_MODE_CHOICES, default='individual')
    assigned_staff_ids = models.JSONField(default=list, blank=True)
    assigned_team_ids = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='todo')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='medium')
    due_date = models.DateTimeField(null=True, blank=True)
    start_date = models.DateField(null=True, blank=True)
    is_repeated = models.BooleanField(default=False)
    repeat_config = models.JSONField(null=True, blank=True, help_text="frequency, interval, end_date, custom_days, has_specific_time, start_time, end_time")
    support_files = models.JSONField(default=list, blank=True)
    parent_task = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='instances')
    generation_date = models.DateField(null=True, blank=True, help_text="Calendar day a repeated task instance was generated for")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.task_no} - {self.title}" if self.task_no else self.title

    def save(self, *args, **kwargs):
        if not self.task_no:
            from .utils import generate_task_no
            self.task_no = generate_task_no()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_repeated'], name='tasks_is_repeated_idx'),
            models.Index(fields=['parent_task', 'created_at'], name='tasks_parent_created_idx'),
            models.Index(fields=['status'], name='tasks_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['parent_task', 'generation_date'], name='unique_task_instance_per_day'),
        ]


class TaskAssignment(models.Model):
    """Binds a task to one assigned staff member"""
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='assignments')
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='task_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.task.task_no} -> {self.staff.name}"

    class Meta:
        db_table = 'task_assignments'
        unique_together = ['task', 'staff']
