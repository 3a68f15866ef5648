"""
Recurring task generation.

Repeating tasks are templates. Once a day the generator decides, per template,
whether today is an occurrence, creates the concrete instance
(``{task_no}-{YYYY-MM-DD}``), copies the template's staff assignments and
emails the assignees. Failures are isolated per template, per assignment and
per email; only a failed template fetch aborts the run.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from enum import Enum
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from backend.staff.models import Staff
from .emails import send_repeated_task_email
from .models import Task, TaskAssignment
from .utils import adjust_weekend_date_to_string, parse_date_value

logger = logging.getLogger(__name__)

EPOCH = date(1970, 1, 1)
DEFAULT_START_TIME = '09:00'


class TemplateFetchError(Exception):
    """Repeated task templates could not be loaded"""


class Outcome(Enum):
    CREATED = 'created'
    SKIPPED_ELIGIBILITY = 'skipped_eligibility'
    SKIPPED_DUPLICATE = 'skipped_duplicate'
    FAILED = 'failed'


def _as_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_date(value):
    parsed = parse_date_value(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


@dataclass(frozen=True)
class RepeatConfig:
    """Parsed ``Task.repeat_config``. Malformed numbers are treated as absent."""
    frequency: Optional[str] = None
    interval: Optional[int] = None
    end_date: Optional[date] = None
    custom_days: frozenset = frozenset()
    has_specific_time: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        if not data or not isinstance(data, dict):
            return None

        custom_days = set()
        for day in data.get('custom_days') or []:
            day = _as_int(day)
            if day is not None and 0 <= day <= 6:
                custom_days.add(day)

        return cls(
            frequency=data.get('frequency'),
            interval=_as_int(data.get('interval')),
            end_date=_as_date(data.get('end_date')),
            custom_days=frozenset(custom_days),
            has_specific_time=bool(data.get('has_specific_time')),
            start_time=data.get('start_time') or None,
            end_time=data.get('end_time') or None,
        )


def weekday_index(day):
    """0 = Sunday ... 6 = Saturday"""
    return day.isoweekday() % 7


def days_since_epoch(day):
    return (day - EPOCH).days


def should_create_task_today(repeat_config, today, day_of_week, day_of_month):
    """
    Decide whether a template produces an instance on ``today``.

    - daily: every ``interval`` days counted from the Unix epoch
    - weekly / custom: today's weekday is one of ``custom_days``
    - monthly: today's day of month equals ``interval``
    - anything after ``end_date`` or with an unknown frequency: never
    """
    config = repeat_config if isinstance(repeat_config, RepeatConfig) else RepeatConfig.from_dict(repeat_config)
    if config is None:
        return False

    if config.end_date and today > config.end_date:
        return False

    if config.frequency == 'daily':
        if not config.interval or config.interval < 1:
            return False
        return days_since_epoch(today) % config.interval == 0

    if config.frequency in ('weekly', 'custom'):
        return day_of_week in config.custom_days

    if config.frequency == 'monthly':
        return day_of_month == config.interval

    return False


@dataclass
class TemplateResult:
    """What happened to one template during a run"""
    original_task: str
    outcome: Outcome
    new_task: Optional[str] = None
    assigned_to: List[str] = field(default_factory=list)
    notified: List[str] = field(default_factory=list)
    reason: str = ''

    @property
    def created(self):
        return self.outcome is Outcome.CREATED

    def to_dict(self):
        """
        Response entry for a created instance.

        ``assignedTo`` names every staff member assigned to the template, not
        only those who were emailed; see ``notified`` for the latter.
        """
        return {
            'originalTask': self.original_task,
            'newTask': self.new_task,
            'assignedTo': self.assigned_to,
        }


@dataclass
class GenerationReport:
    today: date
    results: List[TemplateResult] = field(default_factory=list)

    @property
    def created(self):
        return sum(1 for result in self.results if result.created)

    @property
    def skipped(self):
        return len(self.results) - self.created

    @property
    def message(self):
        if not self.results:
            return 'No repeated tasks to process'
        return f"Processed repeated tasks: {self.created} created, {self.skipped} skipped"

    def to_dict(self):
        return {
            'success': True,
            'message': self.message,
            'created': self.created,
            'skipped': self.skipped,
            'results': [result.to_dict() for result in self.results if result.created],
        }


class RecurringTaskGenerator:
    """
    Creates today's instances of every repeating task.

    ``today`` is fixed when the generator is built (UTC calendar date unless
    given explicitly) so a run never straddles midnight.
    """

    def __init__(self, today=None, send_notifications=True):
        self.today = today or timezone.now().astimezone(dt_timezone.utc).date()
        self.send_notifications = send_notifications

    @property
    def day_start(self):
        return datetime.combine(self.today, time.min, tzinfo=dt_timezone.utc)

    def fetch_templates(self):
        try:
            return list(
                Task.objects.filter(is_repeated=True)
                .prefetch_related('assignments__staff')
                .order_by('task_no')
            )
        except DatabaseError as e:
            logger.error(f"Error fetching repeated tasks: {str(e)}", exc_info=True)
            raise TemplateFetchError(str(e)) from e

    def run(self):
        templates = self.fetch_templates()
        report = GenerationReport(today=self.today)

        if not templates:
            logger.info("No repeated tasks found")
            return report

        day_of_week = weekday_index(self.today)
        day_of_month = self.today.day
        logger.info(f"Processing {len(templates)} repeated tasks for {self.today.isoformat()} (day {day_of_week}, {day_of_month})")

        for template in templates:
            report.results.append(self.process_template(template, day_of_week, day_of_month))

        logger.info(f"Repeated tasks processing complete: {report.created} created, {report.skipped} skipped")
        return report

    def process_template(self, template, day_of_week, day_of_month):
        try:
            if not should_create_task_today(template.repeat_config, self.today, day_of_week, day_of_month):
                logger.debug(f"Skipping {template.task_no} - not scheduled for today")
                return TemplateResult(template.task_no, Outcome.SKIPPED_ELIGIBILITY)

            if self.already_generated(template):
                logger.info(f"Skipping {template.task_no} - already created today")
                return TemplateResult(template.task_no, Outcome.SKIPPED_DUPLICATE)

            return self.generate(template)
        except Exception as e:
            logger.error(f"Error processing task {template.task_no}: {str(e)}", exc_info=True)
            return TemplateResult(template.task_no, Outcome.FAILED, reason=str(e))

    def already_generated(self, template):
        # Advisory only; the (parent_task, generation_date) constraint catches concurrent runs.
        # Bounded to the run's day so backfilling a past date ignores later instances.
        created_that_day = Q(created_at__gte=self.day_start, created_at__lt=self.day_start + timedelta(days=1))
        return Task.objects.filter(
            created_that_day | Q(generation_date=self.today),
            parent_task=template,
        ).exists()

    def instance_dates(self, template):
        """Weekend-adjusted (due_date, start_date) strings for today's instance"""
        today_str = self.today.isoformat()
        config = RepeatConfig.from_dict(template.repeat_config)
        if config and config.has_specific_time:
            due = f"{today_str}T{config.start_time or DEFAULT_START_TIME}:00.000Z"
        else:
            due = today_str
        return adjust_weekend_date_to_string(due), adjust_weekend_date_to_string(today_str)

    def generate(self, template):
        new_task_no = f"{template.task_no}-{self.today.isoformat()}"
        due_str, start_str = self.instance_dates(template)

        due_date = parse_date_value(due_str)
        if due_date is None:
            raise ValueError(f"Invalid due date '{due_str}' for {new_task_no}")
        if not isinstance(due_date, datetime):
            due_date = datetime.combine(due_date, time.min, tzinfo=dt_timezone.utc)

        try:
            with transaction.atomic():
                instance = Task.objects.create(
                    task_no=new_task_no,
                    title=template.title,
                    description=template.description,
                    allocation_mode=template.allocation_mode,
                    assigned_staff_ids=template.assigned_staff_ids or [],
                    assigned_team_ids=template.assigned_team_ids or [],
                    status='todo',
                    priority=template.priority,
                    due_date=due_date,
                    start_date=_as_date(start_str),
                    is_repeated=False,
                    repeat_config=None,
                    support_files=template.support_files or [],
                    parent_task=template,
                    generation_date=self.today,
                )
        except IntegrityError as e:
            if Task.objects.filter(parent_task=template, generation_date=self.today).exists():
                logger.warning(f"Skipping {template.task_no} - instance {new_task_no} was created concurrently")
                return TemplateResult(template.task_no, Outcome.SKIPPED_DUPLICATE)
            logger.error(f"Failed to create task {new_task_no}: {str(e)}")
            return TemplateResult(template.task_no, Outcome.FAILED, reason=str(e))

        self.copy_assignments(instance, template.assigned_staff_ids or [])

        assigned_to = [a.staff.name for a in template.assignments.all() if a.staff and a.staff.name]
        notified = self.notify_assignees(template, new_task_no, due_str) if self.send_notifications else []

        logger.info(f"Created repeated task: {new_task_no}")
        return TemplateResult(
            template.task_no,
            Outcome.CREATED,
            new_task=new_task_no,
            assigned_to=assigned_to,
            notified=notified,
        )

    def copy_assignments(self, instance, staff_ids):
        """One assignment row per staff id; a bad id doesn't affect the others"""
        created = 0
        for staff_id in staff_ids:
            try:
                staff = Staff.objects.get(pk=staff_id)
                with transaction.atomic():
                    TaskAssignment.objects.create(task=instance, staff=staff)
                created += 1
            except (Staff.DoesNotExist, ValidationError, IntegrityError) as e:
                logger.error(f"Failed to create assignment for {instance.task_no} (staff {staff_id}): {str(e)}")
        return created

    def notify_assignees(self, template, new_task_no, due_str):
        notified = []
        for assignment in template.assignments.all():
            staff = assignment.staff
            if not staff or not staff.email:
                continue
            try:
                send_repeated_task_email(
                    staff.email,
                    staff.name,
                    template.title,
                    new_task_no,
                    template.priority,
                    due_str or None,
                )
                notified.append(staff.name)
            except Exception as e:
                logger.error(f"Failed to send repeated task email for {staff.name}: {str(e)}")
        return notified
