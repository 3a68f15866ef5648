from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'staff_profile', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_superuser']
    search_fields = ['username', 'email', 'staff_profile__name']
    ordering = ['username']
    raw_id_fields = ['staff_profile']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Task Manager', {'fields': ('role', 'staff_profile', 'phone')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Task Manager', {'fields': ('role', 'staff_profile')}),
    )
