"""
Authorization for scheduler-triggered endpoints.

A caller is accepted when any of the following holds:

1. The scheduler's signature header is present (platform cron jobs add it).
2. ``Authorization: Bearer <CRON_SECRET>``.
3. ``?secret=<CRON_SECRET>`` for external schedulers that can't set headers.

With no secret configured every caller is rejected.
"""
import hmac
import logging

logger = logging.getLogger(__name__)


def _matches(candidate, secret):
    if candidate is None:
        return False
    return hmac.compare_digest(str(candidate).encode(), secret.encode())


def verify_cron_auth(request, secret, trusted_header=None):
    """Return True when ``request`` may trigger a cron job"""
    if not secret:
        logger.error("CRON_SECRET is not configured; rejecting cron request")
        return False

    if trusted_header and request.headers.get(trusted_header):
        return True

    if _matches(request.headers.get('Authorization'), f"Bearer {secret}"):
        return True

    if _matches(request.GET.get('secret'), secret):
        return True

    return False
