"""
Django management command to create today's instances of repeated tasks.
Runs the same generator as the cron endpoint, for hosts that schedule commands.
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date
from backend.tasks.recurring import RecurringTaskGenerator, TemplateFetchError, Outcome


class Command(BaseCommand):
    help = 'Create task instances for repeated tasks scheduled today'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Generate for this date (YYYY-MM-DD) instead of today (UTC)',
        )
        parser.add_argument(
            '--no-email',
            action='store_true',
            help='Create tasks without emailing assignees',
        )

    def handle(self, *args, **options):
        run_date = None
        if options.get('date'):
            try:
                run_date = parse_date(options['date'])
            except ValueError:
                run_date = None
            if run_date is None:
                raise CommandError(f"Invalid date: {options['date']} (expected YYYY-MM-DD)")

        generator = RecurringTaskGenerator(today=run_date, send_notifications=not options.get('no_email', False))

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS(f"REPEATED TASKS FOR {generator.today.isoformat()}"))
        self.stdout.write("=" * 80)

        try:
            report = generator.run()
        except TemplateFetchError as e:
            raise CommandError(f"Failed to fetch repeated tasks: {e}")

        for result in report.results:
            if result.outcome is Outcome.CREATED:
                assignees = ', '.join(result.assigned_to) or 'nobody'
                self.stdout.write(self.style.SUCCESS(f"  ✓ {result.original_task} -> {result.new_task} (assigned to {assignees})"))
            elif result.outcome is Outcome.FAILED:
                self.stdout.write(self.style.ERROR(f"  ✗ {result.original_task}: {result.reason}"))
            else:
                self.stdout.write(f"  - {result.original_task}: {result.outcome.value}")

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS(report.message))
