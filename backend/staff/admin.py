from django.contrib import admin
from .models import Staff


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'employee_id', 'role', 'department', 'branch', 'is_active']
    list_filter = ['is_active', 'department', 'branch']
    search_fields = ['name', 'email', 'employee_id']
    ordering = ['name']
