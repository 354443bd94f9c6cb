"""Outbound notification email via the Resend API.

Delivery is fire-and-forget: routers queue `dispatch_*` coroutines as
background tasks after the commit. Failures are logged, never raised
back into the request that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
import random
from urllib.parse import urlencode

import httpx

from genie.core.config import settings
from genie.core.structured_logging import mask_email

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 20.0
RESEND_MAX_ATTEMPTS = 3
RESEND_MAX_BACKOFF_SECONDS = 4.0
RESEND_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class EmailDeliveryError(Exception):
    """Resend rejected the message or could not be reached."""


def build_invite_url(secret: str, email: str) -> str:
    """Activation link for an organization invite."""
    query = urlencode({"secret": secret, "email": email})
    return f"{settings.FRONTEND_URL.rstrip('/')}/organizations/invite?{query}"


def build_signup_url(secret: str, email: str) -> str:
    """Registration link for a sign-up candidate."""
    query = urlencode({"secret": secret, "email": email})
    return f"{settings.FRONTEND_URL.rstrip('/')}/signup?{query}"


def _resend_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS)


def _retry_delay(attempt: int, response: httpx.Response | None = None) -> float:
    """Seconds to wait before the next attempt; Resend's Retry-After wins."""
    retry_after = response.headers.get("retry-after", "") if response is not None else ""
    if retry_after.isdigit():
        return min(float(retry_after), RESEND_MAX_BACKOFF_SECONDS)
    delay = min(RESEND_MAX_BACKOFF_SECONDS, 0.5 * 2 ** (attempt - 1))
    return delay + random.uniform(0, delay / 2)


async def _post_to_resend(payload: dict, headers: dict, to_email: str) -> httpx.Response:
    """POST to Resend, retrying rate limits, 5xx and transport errors."""
    attempt = 0
    async with _resend_client() as client:
        while True:
            attempt += 1
            final = attempt >= RESEND_MAX_ATTEMPTS
            try:
                response = await client.post(RESEND_SEND_URL, json=payload, headers=headers)
            except httpx.RequestError as exc:
                if final:
                    raise
                logger.warning(
                    "Resend unreachable (attempt %d); retrying message to %s",
                    attempt,
                    mask_email(to_email),
                    exc_info=exc,
                )
                await asyncio.sleep(_retry_delay(attempt))
                continue

            if final or response.status_code not in RESEND_RETRY_STATUSES:
                return response
            logger.warning(
                "Resend returned %s (attempt %d); retrying message to %s",
                response.status_code,
                attempt,
                mask_email(to_email),
            )
            await asyncio.sleep(_retry_delay(attempt, response))


async def send_email(to_email: str, subject: str, text: str) -> str | None:
    """
    Send a plain-text email through Resend.

    Returns the Resend message id, or None when delivery is disabled
    (no RESEND_API_KEY).

    Raises:
        EmailDeliveryError: Non-2xx response from Resend
        httpx.RequestError: Transport failure after retries
    """
    if not settings.RESEND_API_KEY:
        logger.info("Email delivery disabled; skipping message to %s", mask_email(to_email))
        return None

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "text": text,
    }
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}

    response = await _post_to_resend(payload, headers, to_email)

    if response.status_code >= 400:
        raise EmailDeliveryError(f"Resend returned {response.status_code}: {response.text[:200]}")
    return response.json().get("id")


async def dispatch_invite_email(to_email: str, org_name: str, inviter_name: str, secret: str) -> None:
    """Background task: tell an existing user they were invited."""
    invite_url = build_invite_url(secret, to_email)
    text = f"""You're invited to join {org_name}

{inviter_name} invited you to join {org_name}.

Accept or decline your invitation here:
{invite_url}

If you didn't expect this invitation, you can safely ignore this email.
"""
    try:
        await send_email(to_email, f"Invitation to join {org_name}", text)
    except Exception:
        logger.exception("Failed to send invite email to %s", mask_email(to_email))


async def dispatch_signup_email(to_email: str, secret: str) -> None:
    """Background task: send the registration link to a sign-up candidate."""
    signup_url = build_signup_url(secret, to_email)
    text = f"""Finish creating your account

Complete your registration here:
{signup_url}

If you didn't request an account, you can safely ignore this email.
"""
    try:
        await send_email(to_email, "Complete your registration", text)
    except Exception:
        logger.exception("Failed to send sign-up email to %s", mask_email(to_email))
