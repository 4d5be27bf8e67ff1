"""
Logfire observability configuration for Buzzberry.

Creator store queries run inside Logfire spans so slow filter/page
round-trips show up in traces:

    from buzzberry.core.observability import setup_logfire
    setup_logfire()

Environment Variables:
    LOGFIRE_TOKEN: Write token; spans are only exported when it is set
    LOGFIRE_PROJECT_NAME: Project name in Logfire dashboard
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

_logfire_configured = False


def setup_logfire(
    project_name: Optional[str] = None,
    environment: Optional[str] = None,
    service_name: str = "buzzberry"
) -> bool:
    """
    Configure Logfire for observability.

    Args:
        project_name: Logfire project name (or LOGFIRE_PROJECT_NAME env var)
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if spans will be exported, False if running locally (no token)
    """
    global _logfire_configured

    if _logfire_configured:
        logger.debug("Logfire already configured")
        return bool(os.environ.get("LOGFIRE_TOKEN"))

    token = os.environ.get("LOGFIRE_TOKEN")
    project = project_name or os.environ.get("LOGFIRE_PROJECT_NAME", "buzzberry")
    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    logfire.configure(
        token=token or None,
        service_name=service_name,
        environment=env,
        send_to_logfire="if-token-present",
        console=False,
    )
    logfire.instrument_pydantic()
    _logfire_configured = True

    if not token:
        logger.info("LOGFIRE_TOKEN not set, spans stay local")
        return False

    logger.info(f"Logfire configured: project={project}, environment={env}")
    return True


def query_span(name: str, **attributes):
    """Span wrapping a single creator store round-trip."""
    return logfire.span(name, **attributes)
