"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.staff.models import Staff
from backend.tasks.models import Task, TaskAssignment
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False, role='staff'):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
            role=role
        )

    @staticmethod
    def create_staff(name=None, email=None, department='Site Operations'):
        """Create a test staff member (pass email='' for one without an address)"""
        if not name:
            name = f'Staff_{TestDataFactory.random_string(6)}'
        if email is None:
            email = f'{name.lower()}@test.com'
        return Staff.objects.create(
            name=name,
            email=email,
            employee_id=f'EMP_{TestDataFactory.random_string(6).upper()}',
            role='Engineer',
            department=department
        )

    @staticmethod
    def create_repeated_task(task_no=None, title=None, repeat_config=None, staff=None, priority='high', **extra):
        """Create a repeating task template assigned to the given staff"""
        staff = staff or []
        if repeat_config is None:
            repeat_config = {'frequency': 'daily', 'interval': 1, 'has_specific_time': False}
        task = Task.objects.create(
            task_no=task_no or '',
            title=title or f'Site inspection {TestDataFactory.random_string(4)}',
            description='Walk the site and record progress',
            assigned_staff_ids=[str(s.id) for s in staff],
            priority=priority,
            is_repeated=True,
            repeat_config=repeat_config,
            **extra
        )
        for member in staff:
            TaskAssignment.objects.create(task=task, staff=member)
        return task

    @staticmethod
    def create_task(title=None, staff=None, **extra):
        """Create a plain (non-repeating) task"""
        staff = staff or []
        task = Task.objects.create(
            title=title or f'Task {TestDataFactory.random_string(4)}',
            assigned_staff_ids=[str(s.id) for s in staff],
            **extra
        )
        for member in staff:
            TaskAssignment.objects.create(task=task, staff=member)
        return task


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
