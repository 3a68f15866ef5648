"""
Test suite for Staff module
"""
from django.test import TestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class StaffAPITests(TestCase):
    """Test staff endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_active_staff(self):
        TestDataFactory.create_staff(name='Active')
        inactive = TestDataFactory.create_staff(name='Gone')
        inactive.is_active = False
        inactive.save()

        response = self.client.get('/api/v1/staff/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['name'] for s in response.data], ['Active'])

    def test_filter_by_department(self):
        TestDataFactory.create_staff(name='Surveyor', department='Survey')
        TestDataFactory.create_staff(name='Accountant', department='Accounts')
        response = self.client.get('/api/v1/staff/?department=Survey')
        self.assertEqual([s['name'] for s in response.data], ['Surveyor'])

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/staff/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
