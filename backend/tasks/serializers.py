import uuid
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers
from backend.staff.models import Staff
from backend.staff.serializers import StaffSummarySerializer
from .models import Task, TaskAssignment
from .utils import adjust_weekend_date

TIME_REGEX = r'^([01]\d|2[0-3]):[0-5]\d$'


class RepeatConfigSerializer(serializers.Serializer):
    """
    Validates the JSON stored in Task.repeat_config.

    The config is always replaced as a whole, so frequency and interval are
    required even inside a partial (PATCH) task update.
    """
    FREQUENCY_CHOICES = ['daily', 'weekly', 'monthly', 'custom']
    REQUIRED_KEYS = ('frequency', 'interval')

    frequency = serializers.ChoiceField(choices=FREQUENCY_CHOICES)
    interval = serializers.IntegerField(min_value=1, max_value=365)
    end_date = serializers.DateField(required=False, allow_null=True)
    custom_days = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6),
        required=False,
    )
    has_specific_time = serializers.BooleanField(default=False)
    start_time = serializers.RegexField(TIME_REGEX, required=False, allow_null=True, allow_blank=True)
    end_time = serializers.RegexField(TIME_REGEX, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        # Nested fields are skipped when the parent update is partial
        missing = {name: self.fields[name].error_messages['required'] for name in self.REQUIRED_KEYS if name not in attrs}
        if missing:
            raise serializers.ValidationError(missing)

        if attrs['frequency'] in ('weekly', 'custom') and not attrs.get('custom_days'):
            raise serializers.ValidationError({'custom_days': 'Select at least one day for weekly or custom repeats.'})
        if attrs['frequency'] == 'monthly' and attrs['interval'] > 31:
            raise serializers.ValidationError({'interval': 'Monthly repeats use interval as the day of month (1-31).'})

        # Stored as JSON
        if attrs.get('end_date'):
            attrs['end_date'] = attrs['end_date'].isoformat()
        if 'custom_days' in attrs:
            attrs['custom_days'] = sorted(set(attrs['custom_days']))
        return dict(attrs)


class TaskAssignmentSerializer(serializers.ModelSerializer):
    staff = StaffSummarySerializer(read_only=True)

    class Meta:
        model = TaskAssignment
        fields = ['id', 'staff_id', 'staff', 'assigned_at']


class TaskSerializer(serializers.ModelSerializer):
    repeat_config = RepeatConfigSerializer(required=False, allow_null=True)
    assigned_staff_ids = serializers.ListField(child=serializers.CharField(), required=False)
    assigned_team_ids = serializers.ListField(child=serializers.CharField(), required=False)
    support_files = serializers.ListField(child=serializers.CharField(), required=False)
    assigned_staff = TaskAssignmentSerializer(source='assignments', many=True, read_only=True)
    parent_task_no = serializers.CharField(source='parent_task.task_no', read_only=True, default=None)

    class Meta:
        model = Task
        fields = [
            'id', 'task_no', 'title', 'description', 'allocation_mode',
            'assigned_staff_ids', 'assigned_team_ids', 'assigned_staff',
            'status', 'priority', 'due_date', 'start_date',
            'is_repeated', 'repeat_config', 'support_files',
            'parent_task', 'parent_task_no', 'generation_date',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'task_no', 'parent_task', 'generation_date', 'created_at', 'updated_at']

    def validate_assigned_staff_ids(self, value):
        try:
            staff_ids = list(dict.fromkeys(str(uuid.UUID(str(v))) for v in value))
        except ValueError:
            raise serializers.ValidationError('Invalid staff id.')

        try:
            found = {str(pk) for pk in Staff.objects.filter(id__in=staff_ids).values_list('id', flat=True)}
        except DjangoValidationError:
            raise serializers.ValidationError('Invalid staff id.')
        missing = [staff_id for staff_id in staff_ids if staff_id not in found]
        if missing:
            raise serializers.ValidationError(f"Unknown staff: {', '.join(missing)}")
        return staff_ids

    def validate(self, attrs):
        is_repeated = attrs.get('is_repeated', getattr(self.instance, 'is_repeated', False))
        if 'repeat_config' in attrs:
            repeat_config = attrs['repeat_config']
        else:
            repeat_config = getattr(self.instance, 'repeat_config', None)

        if is_repeated and not repeat_config:
            raise serializers.ValidationError({'repeat_config': 'Repeat configuration is required for repeated tasks.'})
        if not is_repeated and 'is_repeated' in attrs:
            attrs['repeat_config'] = None

        # Deadlines never land on a weekend
        if attrs.get('due_date'):
            attrs['due_date'] = adjust_weekend_date(attrs['due_date'])
        if attrs.get('start_date'):
            attrs['start_date'] = adjust_weekend_date(attrs['start_date'])
        return attrs

    def _sync_assignments(self, task, staff_ids):
        staff_ids = set(str(s) for s in staff_ids)
        existing = {str(a.staff_id): a for a in task.assignments.all()}
        for staff_id, assignment in existing.items():
            if staff_id not in staff_ids:
                assignment.delete()
        TaskAssignment.objects.bulk_create([
            TaskAssignment(task=task, staff_id=staff_id)
            for staff_id in staff_ids if staff_id not in existing
        ])

    def create(self, validated_data):
        with transaction.atomic():
            task = Task.objects.create(**validated_data)
            self._sync_assignments(task, task.assigned_staff_ids)
        return task

    def update(self, instance, validated_data):
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if 'assigned_staff_ids' in validated_data:
                self._sync_assignments(instance, instance.assigned_staff_ids)
        return instance
