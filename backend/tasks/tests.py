"""
Test suite for Tasks module
Tests: weekend adjustment, repeat eligibility, recurring task generation,
cron authorization and endpoint, task API, management command
"""
import uuid
from datetime import date, datetime, timedelta, timezone as dt_timezone
from io import StringIO
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.tasks.cron_auth import verify_cron_auth
from backend.tasks.emails import format_due_date
from backend.tasks.models import Task, TaskAssignment
from backend.tasks.recurring import (
    Outcome, RecurringTaskGenerator, RepeatConfig, TemplateFetchError,
    should_create_task_today, weekday_index,
)
from backend.tasks.utils import adjust_weekend_date, adjust_weekend_date_to_string

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)
WEDNESDAY = date(2024, 1, 3)
FRIDAY = date(2024, 1, 5)
SATURDAY = date(2024, 1, 6)
SUNDAY = date(2024, 1, 7)
NEXT_MONDAY = date(2024, 1, 8)

CRON_URL = '/api/v1/cron/create-repeated-tasks/'


def eligible(config, day):
    return should_create_task_today(config, day, weekday_index(day), day.day)


class WeekendAdjustmentTests(SimpleTestCase):
    """Test weekend date adjustment helpers"""

    def test_saturday_moves_to_friday(self):
        self.assertEqual(adjust_weekend_date(SATURDAY), FRIDAY)

    def test_sunday_moves_to_monday(self):
        self.assertEqual(adjust_weekend_date(SUNDAY), NEXT_MONDAY)

    def test_weekdays_unchanged(self):
        for offset in range(5):
            day = MONDAY + timedelta(days=offset)
            self.assertEqual(adjust_weekend_date(day), day)

    def test_datetime_keeps_time(self):
        adjusted = adjust_weekend_date(datetime(2024, 1, 7, 9, 30, tzinfo=dt_timezone.utc))
        self.assertEqual(adjusted, datetime(2024, 1, 8, 9, 30, tzinfo=dt_timezone.utc))

    def test_empty_values_pass_through(self):
        self.assertIsNone(adjust_weekend_date(None))
        self.assertEqual(adjust_weekend_date(''), '')
        self.assertIsNone(adjust_weekend_date_to_string(None))

    def test_unparseable_value_returned_as_is(self):
        self.assertEqual(adjust_weekend_date('not-a-date'), 'not-a-date')
        self.assertEqual(adjust_weekend_date_to_string('2024-02-30'), '2024-02-30')

    def test_string_with_time_preserves_time_part(self):
        self.assertEqual(
            adjust_weekend_date_to_string('2024-01-06T09:00:00.000Z'),
            '2024-01-05T09:00:00.000Z'
        )
        self.assertEqual(
            adjust_weekend_date_to_string('2024-01-07T17:45:00+05:30'),
            '2024-01-08T17:45:00+05:30'
        )

    def test_date_string_renders_date_only(self):
        self.assertEqual(adjust_weekend_date_to_string('2024-01-07'), '2024-01-08')
        self.assertEqual(adjust_weekend_date_to_string('2024-01-03'), '2024-01-03')

    def test_datetime_object_renders_date_only(self):
        self.assertEqual(adjust_weekend_date_to_string(datetime(2024, 1, 6, 14, 0)), '2024-01-05')

    def test_offset_datetime_judged_in_utc(self):
        # Friday evening in New York is already Saturday in UTC
        adjusted = adjust_weekend_date('2024-01-05T23:00:00-05:00')
        self.assertEqual(adjusted, datetime(2024, 1, 5, 4, 0, tzinfo=dt_timezone.utc))
        # Saturday evening in New York is Sunday in UTC
        self.assertEqual(
            adjust_weekend_date('2024-01-06T20:00:00-05:00'),
            datetime(2024, 1, 8, 1, 0, tzinfo=dt_timezone.utc)
        )


class RepeatEligibilityTests(SimpleTestCase):
    """Test should_create_task_today for each frequency"""

    def test_daily_interval_one_is_every_day(self):
        config = {'frequency': 'daily', 'interval': 1}
        for offset in range(40):
            self.assertTrue(eligible(config, MONDAY + timedelta(days=offset)))

    def test_daily_interval_is_anchored_to_epoch(self):
        for interval in (2, 3, 7):
            config = {'frequency': 'daily', 'interval': interval}
            for offset in range(30):
                day = MONDAY + timedelta(days=offset)
                expected = (day - date(1970, 1, 1)).days % interval == 0
                self.assertEqual(eligible(config, day), expected, f"interval={interval} day={day}")

    def test_weekly_matches_custom_days(self):
        config = {'frequency': 'weekly', 'interval': 1, 'custom_days': [1, 3, 5]}
        self.assertTrue(eligible(config, MONDAY))
        self.assertFalse(eligible(config, TUESDAY))
        self.assertTrue(eligible(config, WEDNESDAY))
        self.assertTrue(eligible(config, FRIDAY))
        self.assertFalse(eligible(config, SATURDAY))
        self.assertFalse(eligible(config, SUNDAY))

    def test_weekly_sunday_is_zero(self):
        config = {'frequency': 'weekly', 'interval': 1, 'custom_days': [0]}
        self.assertTrue(eligible(config, SUNDAY))
        self.assertFalse(eligible(config, SATURDAY))

    def test_custom_uses_weekday_rule(self):
        config = {'frequency': 'custom', 'interval': 4, 'custom_days': [6]}
        self.assertTrue(eligible(config, SATURDAY))
        self.assertFalse(eligible(config, FRIDAY))

    def test_weekly_without_days_never_matches(self):
        config = {'frequency': 'weekly', 'interval': 1}
        self.assertFalse(eligible(config, MONDAY))

    def test_monthly_matches_day_of_month(self):
        config = {'frequency': 'monthly', 'interval': 15}
        self.assertTrue(eligible(config, date(2024, 3, 15)))
        self.assertFalse(eligible(config, date(2024, 3, 14)))

    def test_monthly_31_never_matches_in_30_day_month(self):
        config = {'frequency': 'monthly', 'interval': 31}
        self.assertFalse(eligible(config, date(2024, 4, 30)))
        self.assertTrue(eligible(config, date(2024, 5, 31)))

    def test_end_date_excludes_later_days(self):
        config = {'frequency': 'daily', 'interval': 1, 'end_date': '2024-01-03'}
        self.assertTrue(eligible(config, WEDNESDAY))
        self.assertFalse(eligible(config, date(2024, 1, 4)))
        self.assertFalse(eligible({**config, 'frequency': 'weekly', 'custom_days': [5]}, FRIDAY))

    def test_unknown_frequency_or_missing_config(self):
        self.assertFalse(eligible({'frequency': 'yearly', 'interval': 1}, MONDAY))
        self.assertFalse(eligible(None, MONDAY))
        self.assertFalse(eligible({}, MONDAY))

    def test_daily_with_bad_interval(self):
        self.assertFalse(eligible({'frequency': 'daily', 'interval': 0}, MONDAY))
        self.assertFalse(eligible({'frequency': 'daily'}, MONDAY))
        self.assertFalse(eligible({'frequency': 'daily', 'interval': 'often'}, MONDAY))

    def test_repeat_config_parsing(self):
        config = RepeatConfig.from_dict({
            'frequency': 'weekly', 'interval': '2', 'custom_days': [1, '3', 9],
            'end_date': '2024-06-30T00:00:00Z', 'has_specific_time': True, 'start_time': '08:15',
        })
        self.assertEqual(config.interval, 2)
        self.assertEqual(config.custom_days, frozenset({1, 3}))
        self.assertEqual(config.end_date, date(2024, 6, 30))
        self.assertTrue(config.has_specific_time)
        self.assertEqual(config.start_time, '08:15')


class RecurringTaskGeneratorTests(TestCase):
    """Test the recurring task generator against the database"""

    def setUp(self):
        self.alice = TestDataFactory.create_staff(name='Alice', email='alice@test.com')
        self.bob = TestDataFactory.create_staff(name='Bob', email='bob@test.com')
        self.weekly = {'frequency': 'weekly', 'interval': 1, 'custom_days': [1, 3, 5], 'has_specific_time': False}

    def test_no_templates(self):
        report = RecurringTaskGenerator(today=WEDNESDAY).run()
        self.assertEqual(report.created, 0)
        self.assertEqual(report.skipped, 0)
        self.assertEqual(report.to_dict()['message'], 'No repeated tasks to process')

    def test_not_scheduled_today_is_skipped(self):
        TestDataFactory.create_repeated_task(task_no='T010', repeat_config=self.weekly, staff=[self.alice])
        report = RecurringTaskGenerator(today=TUESDAY).run()
        self.assertEqual(report.created, 0)
        self.assertEqual(report.skipped, 1)
        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_ELIGIBILITY)
        self.assertFalse(Task.objects.filter(is_repeated=False).exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_scheduled_day_creates_instance(self):
        template = TestDataFactory.create_repeated_task(
            task_no='T010', title='Check scaffolding', repeat_config=self.weekly,
            staff=[self.alice, self.bob], assigned_team_ids=['team-1'], support_files=['https://files/checklist.pdf'],
        )
        report = RecurringTaskGenerator(today=WEDNESDAY).run()

        self.assertEqual(report.created, 1)
        self.assertEqual(report.skipped, 0)
        instance = Task.objects.get(task_no='T010-2024-01-03')
        self.assertEqual(instance.parent_task, template)
        self.assertEqual(instance.generation_date, WEDNESDAY)
        self.assertEqual(instance.title, 'Check scaffolding')
        self.assertEqual(instance.status, 'todo')
        self.assertEqual(instance.priority, 'high')
        self.assertFalse(instance.is_repeated)
        self.assertIsNone(instance.repeat_config)
        self.assertEqual(instance.assigned_team_ids, ['team-1'])
        self.assertEqual(instance.support_files, ['https://files/checklist.pdf'])
        self.assertEqual(instance.due_date, datetime(2024, 1, 3, tzinfo=dt_timezone.utc))
        self.assertEqual(instance.start_date, WEDNESDAY)
        self.assertEqual(
            set(instance.assignments.values_list('staff_id', flat=True)),
            {self.alice.id, self.bob.id}
        )

        result = report.to_dict()['results'][0]
        self.assertEqual(result['originalTask'], 'T010')
        self.assertEqual(result['newTask'], 'T010-2024-01-03')
        self.assertEqual(sorted(result['assignedTo']), ['Alice', 'Bob'])

    def test_second_run_same_day_is_duplicate(self):
        template = TestDataFactory.create_repeated_task(task_no='T011', staff=[self.alice])
        RecurringTaskGenerator(today=WEDNESDAY).run()
        report = RecurringTaskGenerator(today=WEDNESDAY).run()

        self.assertEqual(report.created, 0)
        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_DUPLICATE)
        self.assertEqual(template.instances.count(), 1)

    def test_unique_constraint_catches_concurrent_duplicate(self):
        template = TestDataFactory.create_repeated_task(task_no='T012')
        RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()
        # A concurrent run passed the advisory check before the first insert committed
        with mock.patch.object(RecurringTaskGenerator, 'already_generated', return_value=False):
            report = RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()

        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_DUPLICATE)
        self.assertEqual(template.instances.filter(generation_date=WEDNESDAY).count(), 1)

    def test_backfill_earlier_day_after_later_run(self):
        template = TestDataFactory.create_repeated_task(task_no='T013')
        RecurringTaskGenerator(today=date(2024, 1, 4), send_notifications=False).run()
        report = RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()

        self.assertEqual(report.results[0].outcome, Outcome.CREATED)
        self.assertEqual(
            sorted(template.instances.values_list('task_no', flat=True)),
            ['T013-2024-01-03', 'T013-2024-01-04']
        )

    def test_backfill_rerun_is_duplicate(self):
        template = TestDataFactory.create_repeated_task(task_no='T014')
        RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()
        report = RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()

        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_DUPLICATE)
        self.assertEqual(template.instances.count(), 1)

    def test_instance_created_earlier_today_is_duplicate(self):
        template = TestDataFactory.create_repeated_task(task_no='T015')
        today = timezone.now().astimezone(dt_timezone.utc).date()
        # Made by hand today, without a generation date
        Task.objects.create(task_no='T015-manual', title=template.title, parent_task=template)
        report = RecurringTaskGenerator(today=today, send_notifications=False).run()

        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_DUPLICATE)
        self.assertEqual(template.instances.count(), 1)

    def test_specific_time_due_date(self):
        TestDataFactory.create_repeated_task(
            task_no='T013',
            repeat_config={'frequency': 'daily', 'interval': 1, 'has_specific_time': True, 'start_time': '14:30'},
        )
        RecurringTaskGenerator(today=WEDNESDAY).run()
        instance = Task.objects.get(task_no='T013-2024-01-03')
        self.assertEqual(instance.due_date, datetime(2024, 1, 3, 14, 30, tzinfo=dt_timezone.utc))

    def test_specific_time_defaults_to_nine(self):
        TestDataFactory.create_repeated_task(
            task_no='T014',
            repeat_config={'frequency': 'daily', 'interval': 1, 'has_specific_time': True},
        )
        RecurringTaskGenerator(today=WEDNESDAY).run()
        instance = Task.objects.get(task_no='T014-2024-01-03')
        self.assertEqual(instance.due_date, datetime(2024, 1, 3, 9, 0, tzinfo=dt_timezone.utc))

    def test_weekend_run_moves_dates_to_weekdays(self):
        TestDataFactory.create_repeated_task(
            task_no='T015',
            repeat_config={'frequency': 'weekly', 'interval': 1, 'custom_days': [6, 0], 'has_specific_time': False},
        )
        TestDataFactory.create_repeated_task(
            task_no='T016',
            repeat_config={'frequency': 'weekly', 'interval': 1, 'custom_days': [0], 'has_specific_time': True, 'start_time': '10:30'},
        )
        RecurringTaskGenerator(today=SATURDAY).run()
        saturday_instance = Task.objects.get(task_no='T015-2024-01-06')
        self.assertEqual(saturday_instance.due_date, datetime(2024, 1, 5, tzinfo=dt_timezone.utc))
        self.assertEqual(saturday_instance.start_date, FRIDAY)

        RecurringTaskGenerator(today=SUNDAY).run()
        sunday_instance = Task.objects.get(task_no='T016-2024-01-07')
        self.assertEqual(sunday_instance.due_date, datetime(2024, 1, 8, 10, 30, tzinfo=dt_timezone.utc))
        self.assertEqual(sunday_instance.start_date, NEXT_MONDAY)

    def test_end_date_passed_is_skipped(self):
        TestDataFactory.create_repeated_task(
            task_no='T017',
            repeat_config={'frequency': 'daily', 'interval': 1, 'end_date': '2024-01-02'},
        )
        report = RecurringTaskGenerator(today=WEDNESDAY).run()
        self.assertEqual(report.results[0].outcome, Outcome.SKIPPED_ELIGIBILITY)

    def test_bad_assignment_does_not_block_others(self):
        template = TestDataFactory.create_repeated_task(task_no='T018', staff=[self.alice])
        template.assigned_staff_ids = ['not-a-uuid', str(uuid.uuid4()), str(self.alice.id)]
        template.save()

        with self.assertLogs('backend.tasks.recurring', level='ERROR') as logs:
            report = RecurringTaskGenerator(today=WEDNESDAY).run()

        self.assertEqual(report.created, 1)
        instance = Task.objects.get(task_no='T018-2024-01-03')
        self.assertEqual(list(instance.assignments.values_list('staff_id', flat=True)), [self.alice.id])
        self.assertEqual(len([line for line in logs.output if 'Failed to create assignment' in line]), 2)

    def test_invalid_template_fails_without_stopping_batch(self):
        TestDataFactory.create_repeated_task(
            task_no='T019',
            repeat_config={'frequency': 'daily', 'interval': 1, 'has_specific_time': True, 'start_time': '9am'},
        )
        TestDataFactory.create_repeated_task(task_no='T020')

        report = RecurringTaskGenerator(today=WEDNESDAY).run()

        outcomes = {result.original_task: result.outcome for result in report.results}
        self.assertEqual(outcomes['T019'], Outcome.FAILED)
        self.assertEqual(outcomes['T020'], Outcome.CREATED)
        self.assertEqual(report.created, 1)
        self.assertEqual(report.skipped, 1)
        self.assertFalse(Task.objects.filter(task_no='T019-2024-01-03').exists())

    def test_notifications_sent_to_assignees_with_email(self):
        no_email = TestDataFactory.create_staff(name='Charlie', email='')
        TestDataFactory.create_repeated_task(
            task_no='T021', title='Safety briefing', staff=[self.alice, self.bob, no_email], priority='urgent',
        )
        report = RecurringTaskGenerator(today=WEDNESDAY).run()

        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(sorted(m.to[0] for m in mail.outbox), ['alice@test.com', 'bob@test.com'])
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'Repeated Task Assigned: Safety briefing (T021-2024-01-03)')
        self.assertIn('T021-2024-01-03', message.body)
        self.assertIn('URGENT', message.body)
        self.assertIn('Wednesday, January 3rd 2024', message.body)
        html = message.alternatives[0][0]
        self.assertIn('#dc2626', html)
        self.assertEqual(sorted(report.results[0].notified), ['Alice', 'Bob'])
        self.assertEqual(sorted(report.results[0].assigned_to), ['Alice', 'Bob', 'Charlie'])
        self.assertEqual(sorted(report.to_dict()['results'][0]['assignedTo']), ['Alice', 'Bob', 'Charlie'])

    def test_email_failure_does_not_block_other_recipients(self):
        TestDataFactory.create_repeated_task(task_no='T022', staff=[self.alice, self.bob])

        def flaky_send(email, *args, **kwargs):
            if email == 'alice@test.com':
                raise SMTPException('mailbox unavailable')
            return 1

        with mock.patch('backend.tasks.recurring.send_repeated_task_email', side_effect=flaky_send) as send:
            report = RecurringTaskGenerator(today=WEDNESDAY).run()

        self.assertEqual(send.call_count, 2)
        self.assertEqual(report.results[0].outcome, Outcome.CREATED)
        self.assertEqual(report.results[0].notified, ['Bob'])

    def test_notifications_can_be_disabled(self):
        TestDataFactory.create_repeated_task(task_no='T023', staff=[self.alice])
        report = RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()
        self.assertEqual(report.created, 1)
        self.assertEqual(len(mail.outbox), 0)

    def test_template_fetch_failure_is_fatal(self):
        with mock.patch.object(Task.objects, 'filter', side_effect=DatabaseError('connection lost')):
            with self.assertRaises(TemplateFetchError):
                RecurringTaskGenerator(today=WEDNESDAY).run()


class CronAuthTests(SimpleTestCase):
    """Test verify_cron_auth"""

    def setUp(self):
        self.factory = RequestFactory()

    def test_bearer_token(self):
        request = self.factory.get(CRON_URL, HTTP_AUTHORIZATION='Bearer s3cret')
        self.assertTrue(verify_cron_auth(request, 's3cret', 'X-Vercel-Signature'))

    def test_wrong_bearer_token(self):
        request = self.factory.get(CRON_URL, HTTP_AUTHORIZATION='Bearer nope')
        self.assertFalse(verify_cron_auth(request, 's3cret', 'X-Vercel-Signature'))

    def test_query_secret(self):
        request = self.factory.get(CRON_URL, {'secret': 's3cret'})
        self.assertTrue(verify_cron_auth(request, 's3cret', 'X-Vercel-Signature'))

    def test_trusted_header(self):
        request = self.factory.get(CRON_URL, HTTP_X_VERCEL_SIGNATURE='abc123')
        self.assertTrue(verify_cron_auth(request, 's3cret', 'X-Vercel-Signature'))

    def test_no_credentials(self):
        request = self.factory.get(CRON_URL)
        self.assertFalse(verify_cron_auth(request, 's3cret', 'X-Vercel-Signature'))

    def test_unset_secret_rejects_everything(self):
        request = self.factory.get(
            CRON_URL, {'secret': ''}, HTTP_AUTHORIZATION='Bearer ', HTTP_X_VERCEL_SIGNATURE='abc123'
        )
        self.assertFalse(verify_cron_auth(request, '', 'X-Vercel-Signature'))
        self.assertFalse(verify_cron_auth(request, None, 'X-Vercel-Signature'))


@override_settings(CRON_SECRET='s3cret', CRON_TRUSTED_HEADER='X-Vercel-Signature')
class CronEndpointTests(TestCase):
    """Test the create-repeated-tasks cron endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.staff = TestDataFactory.create_staff(name='Dana', email='dana@test.com')

    def test_unauthorized(self):
        response = self.client.get(CRON_URL)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'error': 'Unauthorized'})

    def test_unauthorized_does_not_process(self):
        TestDataFactory.create_repeated_task(task_no='T030', staff=[self.staff])
        self.client.get(CRON_URL, HTTP_AUTHORIZATION='Bearer wrong')
        self.assertFalse(Task.objects.filter(parent_task__isnull=False).exists())

    def test_no_templates(self):
        response = self.client.get(CRON_URL, HTTP_AUTHORIZATION='Bearer s3cret')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['message'], 'No repeated tasks to process')
        self.assertEqual(response.data['created'], 0)
        self.assertEqual(response.data['skipped'], 0)

    def test_query_secret_creates_tasks(self):
        TestDataFactory.create_repeated_task(task_no='T031', staff=[self.staff])
        TestDataFactory.create_repeated_task(task_no='T032', repeat_config={'frequency': 'yearly', 'interval': 1})

        response = self.client.get(f'{CRON_URL}?secret=s3cret')

        today = timezone.now().date().isoformat()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['skipped'], 1)
        self.assertEqual(response.data['message'], 'Processed repeated tasks: 1 created, 1 skipped')
        self.assertEqual(response.data['results'], [
            {'originalTask': 'T031', 'newTask': f'T031-{today}', 'assignedTo': ['Dana']}
        ])
        self.assertEqual(len(mail.outbox), 1)

    def test_trusted_header_second_call_skips(self):
        TestDataFactory.create_repeated_task(task_no='T033')
        first = self.client.get(CRON_URL, HTTP_X_VERCEL_SIGNATURE='sig')
        second = self.client.get(CRON_URL, HTTP_X_VERCEL_SIGNATURE='sig')
        self.assertEqual(first.data['created'], 1)
        self.assertEqual(second.data['created'], 0)
        self.assertEqual(second.data['skipped'], 1)

    def test_bearer_is_not_treated_as_jwt(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get(CRON_URL)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(CRON_SECRET='')
    def test_unset_secret(self):
        response = self.client.get(CRON_URL, HTTP_AUTHORIZATION='Bearer ', HTTP_X_VERCEL_SIGNATURE='sig')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_fetch_failure_returns_500(self):
        with mock.patch.object(Task.objects, 'filter', side_effect=DatabaseError('connection lost')):
            response = self.client.get(CRON_URL, HTTP_AUTHORIZATION='Bearer s3cret')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'Failed to process repeated tasks'})


class EmailFormattingTests(SimpleTestCase):
    """Test due date formatting used in notifications"""

    def test_due_date_with_time(self):
        self.assertEqual(format_due_date('2024-01-03T09:00:00.000Z'), 'Wednesday, January 3rd 2024 at 9:00 AM')

    def test_due_date_without_time(self):
        self.assertEqual(format_due_date('2024-01-22'), 'Monday, January 22nd 2024')

    def test_missing_due_date(self):
        self.assertIsNone(format_due_date(None))


class TaskAPITests(TestCase):
    """Test Task API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.staff = TestDataFactory.create_staff(name='Eve')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/tasks/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_task_adjusts_weekend_dates(self):
        data = {
            'title': 'Submit drawings',
            'priority': 'medium',
            'due_date': '2024-01-06T15:00:00Z',
            'start_date': '2024-01-07',
            'assigned_staff_ids': [str(self.staff.id)],
        }
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['due_date'], '2024-01-05T15:00:00Z')
        self.assertEqual(response.data['start_date'], '2024-01-08')
        self.assertEqual(response.data['task_no'], 'T001')
        self.assertEqual(response.data['assigned_staff'][0]['staff']['name'], 'Eve')
        self.assertTrue(TaskAssignment.objects.filter(task_id=response.data['id'], staff=self.staff).exists())

    def test_create_repeated_task(self):
        data = {
            'title': 'Weekly progress report',
            'priority': 'high',
            'is_repeated': True,
            'repeat_config': {'frequency': 'weekly', 'interval': 1, 'custom_days': [5, 1, 1], 'has_specific_time': True, 'start_time': '08:00'},
        }
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        task = Task.objects.get(pk=response.data['id'])
        self.assertTrue(task.is_repeated)
        self.assertEqual(task.repeat_config['custom_days'], [1, 5])
        self.assertEqual(task.repeat_config['start_time'], '08:00')

    def test_repeated_task_requires_config(self):
        response = self.client.post('/api/v1/tasks/', {'title': 'Daily log', 'is_repeated': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('repeat_config', response.data)

    def test_weekly_repeat_requires_days(self):
        data = {
            'title': 'Daily log',
            'is_repeated': True,
            'repeat_config': {'frequency': 'weekly', 'interval': 1},
        }
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_repeat_config_values(self):
        data = {
            'title': 'Daily log',
            'is_repeated': True,
            'repeat_config': {'frequency': 'hourly', 'interval': 0, 'start_time': '25:00'},
        }
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        errors = response.data['repeat_config']
        self.assertIn('frequency', errors)
        self.assertIn('interval', errors)
        self.assertIn('start_time', errors)

    def test_patch_partial_repeat_config_rejected(self):
        task = TestDataFactory.create_repeated_task(task_no='T030')
        response = self.client.patch(
            f'/api/v1/tasks/{task.id}/', {'repeat_config': {'frequency': 'monthly'}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('interval', response.data['repeat_config'])
        task.refresh_from_db()
        self.assertEqual(task.repeat_config['frequency'], 'daily')

    def test_patch_replaces_repeat_config(self):
        task = TestDataFactory.create_repeated_task(task_no='T031')
        response = self.client.patch(
            f'/api/v1/tasks/{task.id}/', {'repeat_config': {'frequency': 'monthly', 'interval': 15}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.repeat_config['frequency'], 'monthly')
        self.assertEqual(task.repeat_config['interval'], 15)

    def test_unknown_staff_rejected(self):
        data = {'title': 'Submit drawings', 'assigned_staff_ids': [str(uuid.uuid4())]}
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('assigned_staff_ids', response.data)

    def test_update_reassigns_staff(self):
        other = TestDataFactory.create_staff(name='Frank')
        task = TestDataFactory.create_task(staff=[self.staff])
        response = self.client.patch(
            f'/api/v1/tasks/{task.id}/', {'assigned_staff_ids': [str(other.id)]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(task.assignments.values_list('staff_id', flat=True)), [other.id])

    def test_list_filters_repeated(self):
        TestDataFactory.create_repeated_task()
        TestDataFactory.create_task()
        response = self.client.get('/api/v1/tasks/?is_repeated=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertTrue(response.data[0]['is_repeated'])

    def test_instances_of_template(self):
        template = TestDataFactory.create_repeated_task(task_no='T040', staff=[self.staff])
        RecurringTaskGenerator(today=WEDNESDAY, send_notifications=False).run()
        response = self.client.get(f'/api/v1/tasks/{template.id}/instances/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['task_no'], 'T040-2024-01-03')
        self.assertEqual(response.data[0]['parent_task_no'], 'T040')

    def test_delete_task_requires_admin(self):
        task = TestDataFactory.create_task()
        response = self.client.delete(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Task.objects.filter(pk=task.pk).exists())

    def test_admin_deletes_task(self):
        admin_user = TestDataFactory.create_user(role='admin')
        self.client.authenticate_user(admin_user)
        task = TestDataFactory.create_task()
        response = self.client.delete(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Task.objects.filter(pk=task.pk).exists())

    def test_task_numbers_are_sequential(self):
        first = TestDataFactory.create_task()
        second = TestDataFactory.create_task()
        self.assertEqual(first.task_no, 'T001')
        self.assertEqual(second.task_no, 'T002')


class CreateRepeatedTasksCommandTests(TestCase):
    """Test the create_repeated_tasks management command"""

    def test_command_creates_for_given_date(self):
        staff = TestDataFactory.create_staff(name='Gina')
        TestDataFactory.create_repeated_task(task_no='T050', staff=[staff])
        out = StringIO()
        call_command('create_repeated_tasks', '--date', '2024-01-03', '--no-email', stdout=out)

        self.assertTrue(Task.objects.filter(task_no='T050-2024-01-03').exists())
        self.assertIn('T050 -> T050-2024-01-03', out.getvalue())
        self.assertIn('1 created, 0 skipped', out.getvalue())
        self.assertEqual(len(mail.outbox), 0)

    def test_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command('create_repeated_tasks', '--date', '03/01/2024', stdout=StringIO())
