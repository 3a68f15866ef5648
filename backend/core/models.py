from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Login account for the task backend (admins and staff portal users)"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('staff', 'Staff'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='staff')
    staff_profile = models.OneToOneField('staff.Staff', on_delete=models.SET_NULL, null=True, blank=True, related_name='user')
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin_role(self):
        return self.role == 'admin' or self.is_superuser

    class Meta:
        db_table = 'users'
