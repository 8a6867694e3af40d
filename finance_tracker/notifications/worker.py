"""
Contact notifier worker.

Usage:
    finance-tracker-notifier

Watches the contactMessages collection and emails the site owner for
every message created while it runs. Needs EMAIL_USER and EMAIL_PASS,
and a shared document store (Google Sheets) to see messages written by
the app.
"""

import asyncio
import sys

import structlog

from finance_tracker.audit import configure_logging
from finance_tracker.config import ConfigurationError, get_settings
from finance_tracker.notifications.contact import ContactTrigger
from finance_tracker.orchestrator import create_app_components


logger = structlog.get_logger(__name__)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.app.log_level)

    try:
        settings.email.require_credentials()
    except ConfigurationError as e:
        logger.error("notifier_not_configured", error=str(e))
        sys.exit(1)

    components = create_app_components()
    if components.local_mode:
        logger.warning(
            "notifier_local_mode",
            detail="In-memory store: only messages written by this process are seen",
        )

    trigger = ContactTrigger(components.contact_notifier)
    try:
        asyncio.run(trigger.run(components.store))
    except ConfigurationError as e:
        logger.error("notifier_not_configured", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("notifier_interrupted")


if __name__ == "__main__":
    main()
