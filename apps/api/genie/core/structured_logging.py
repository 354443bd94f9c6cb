"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any
from uuid import UUID

from genie.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def mask_email(email: str | None) -> str | None:
    """Mask the local part of an email address for logs."""
    if not email or "@" not in email:
        return None
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    org_id: UUID | str | None = None,
    project_id: UUID | str | None = None,
    task_id: UUID | str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict for ``extra=``."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if org_id:
        context["org_id"] = str(org_id)
    if project_id:
        context["project_id"] = str(project_id)
    if task_id:
        context["task_id"] = str(task_id)
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
