"""
Email notifications for tasks.

Messages are rendered from templates under ``tasks/emails/`` and sent through
Django's configured email backend.
"""
import logging
from datetime import datetime
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import dateformat
from .utils import parse_date_value

logger = logging.getLogger(__name__)

SENDER_NAME = 'ProUltima Task Manager'

PRIORITY_COLORS = {
    'low': '#3b82f6',
    'medium': '#f59e0b',
    'high': '#ef4444',
    'urgent': '#dc2626',
}
DEFAULT_PRIORITY_COLOR = '#6b7280'


def format_due_date(due_date):
    """Human readable due date, e.g. 'Wednesday, January 3rd 2024 at 9:00 AM'"""
    if not due_date:
        return None
    parsed = parse_date_value(due_date)
    if parsed is None:
        return str(due_date)
    if isinstance(parsed, datetime):
        return dateformat.format(parsed, r'l, F jS Y \a\t g:i A')
    return dateformat.format(parsed, 'l, F jS Y')


def get_sender():
    return f"{SENDER_NAME} <{settings.DEFAULT_FROM_EMAIL}>"


def send_repeated_task_email(recipient_email, recipient_name, task_title, task_no, priority, due_date=None):
    """
    Notify a staff member that a repeated task instance was created for them.

    Raises whatever the email backend raises; callers decide whether a failed
    send matters.
    """
    priority_key = str(priority or '').lower()
    context = {
        'recipient_name': recipient_name,
        'task_title': task_title,
        'task_no': task_no,
        'priority_label': priority_key.upper(),
        'priority_color': PRIORITY_COLORS.get(priority_key, DEFAULT_PRIORITY_COLOR),
        'due_date_display': format_due_date(due_date),
        'tasks_url': f"{settings.APP_URL.rstrip('/')}/staff/tasks",
        'sender_name': SENDER_NAME,
    }

    message = EmailMultiAlternatives(
        subject=f"Repeated Task Assigned: {task_title} ({task_no})",
        body=render_to_string('tasks/emails/repeated_task.txt', context),
        from_email=get_sender(),
        to=[recipient_email],
    )
    message.attach_alternative(render_to_string('tasks/emails/repeated_task.html', context), 'text/html')
    sent = message.send(fail_silently=False)
    logger.info(f"Repeated task email sent to {recipient_email} ({task_no})")
    return sent
