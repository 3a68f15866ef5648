from rest_framework import serializers
from .models import Staff


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ['id', 'name', 'email', 'employee_id', 'role', 'department', 'branch', 'phone', 'is_active', 'created_at', 'updated_at']


class StaffSummarySerializer(serializers.ModelSerializer):
    """Compact staff payload embedded in task assignments"""
    class Meta:
        model = Staff
        fields = ['id', 'name', 'email']
