from django.contrib import admin
from .models import Task, TaskAssignment


class TaskAssignmentInline(admin.TabularInline):
    model = TaskAssignment
    extra = 0
    autocomplete_fields = ['staff']
    readonly_fields = ['assigned_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['task_no', 'title', 'status', 'priority', 'due_date', 'is_repeated', 'parent_task', 'created_at']
    list_filter = ['is_repeated', 'status', 'priority', 'allocation_mode', 'created_at']
    search_fields = ['task_no', 'title', 'description']
    ordering = ['-created_at']
    raw_id_fields = ['parent_task']
    readonly_fields = ['generation_date', 'created_at', 'updated_at']
    inlines = [TaskAssignmentInline]


@admin.register(TaskAssignment)
class TaskAssignmentAdmin(admin.ModelAdmin):
    list_display = ['task', 'staff', 'assigned_at']
    search_fields = ['task__task_no', 'task__title', 'staff__name']
    ordering = ['-assigned_at']
    readonly_fields = ['assigned_at']
