"""Newsletter subscription through the Beehiiv API.

The provider does not say plainly whether an address was already on the
list: with ``reactivate_existing`` it answers 2xx for old subscribers too.
``classify_subscription_response`` holds the heuristics used to tell the
cases apart (error text matching, and the age of the returned
subscription) so they can change without touching the request flow.

Usage:
    async with NewsletterClient.from_settings(get_settings()) as newsletter:
        result = await newsletter.subscribe("reader@example.com")
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from flowhub.config import Settings
from flowhub.logging import get_logger

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DUPLICATE_PHRASES = (
    "already subscribed",
    "duplicate",
    "already exists",
    "email already",
    "subscription exists",
)


class SubscriptionOutcome(str, Enum):
    SUBSCRIBED = "subscribed"
    ALREADY_SUBSCRIBED = "already_subscribed"
    INVALID_EMAIL = "invalid_email"
    UNDELIVERABLE = "undeliverable"
    AUTH_FAILED = "auth_failed"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


OUTCOME_MESSAGES = {
    SubscriptionOutcome.SUBSCRIBED: "Successfully subscribed to newsletter!",
    SubscriptionOutcome.ALREADY_SUBSCRIBED: (
        "This email is already subscribed to our newsletter! Check your inbox for previous emails."
    ),
    SubscriptionOutcome.INVALID_EMAIL: "Invalid email address",
    SubscriptionOutcome.UNDELIVERABLE: (
        "This email address appears to be invalid or unreachable. "
        "Please check the email address and try again."
    ),
    SubscriptionOutcome.AUTH_FAILED: "Newsletter service authentication failed",
    SubscriptionOutcome.UNAVAILABLE: "Newsletter service is temporarily unavailable",
    SubscriptionOutcome.FAILED: "Failed to subscribe. Please try again later.",
}


@dataclass
class SubscriptionResult:
    outcome: SubscriptionOutcome
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.outcome is SubscriptionOutcome.SUBSCRIBED


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def _subscription_record(payload: dict[str, Any]) -> dict[str, Any] | None:
    subscription = payload.get("subscription")
    if isinstance(subscription, dict) and isinstance(subscription.get("data"), dict):
        return subscription["data"]
    if isinstance(payload.get("data"), dict):
        return payload["data"]
    return None


def _lower(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def classify_subscription_response(
    status_code: int,
    body: str,
    now: float,
    duplicate_after_seconds: int = 60,
) -> SubscriptionOutcome:
    """Decide what a provider response means for the subscriber.

    Args:
        status_code: HTTP status returned by the provider.
        body: Raw response body.
        now: Current time as a Unix timestamp.
        duplicate_after_seconds: A subscription created longer ago than this
            is taken to be a returning subscriber.
    """
    if status_code == 409:
        return SubscriptionOutcome.ALREADY_SUBSCRIBED
    if status_code == 400:
        text = body.lower()
        if any(phrase in text for phrase in DUPLICATE_PHRASES):
            return SubscriptionOutcome.ALREADY_SUBSCRIBED
        return SubscriptionOutcome.INVALID_EMAIL
    if status_code == 401:
        return SubscriptionOutcome.AUTH_FAILED
    if not 200 <= status_code < 300:
        return SubscriptionOutcome.FAILED

    try:
        payload = json.loads(body) if body else {}
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        return SubscriptionOutcome.SUBSCRIBED

    record = _subscription_record(payload)
    if record is not None:
        status = record.get("status")
        created = record.get("created")
        if (
            isinstance(created, (int, float))
            and now - created > duplicate_after_seconds
            and status != "invalid"
        ):
            return SubscriptionOutcome.ALREADY_SUBSCRIBED
        if status == "invalid":
            return SubscriptionOutcome.UNDELIVERABLE

    if (
        "already" in _lower(payload.get("message"))
        or "reactivated" in _lower(payload.get("message"))
        or "existing" in _lower(payload.get("status"))
        or payload.get("subscription_status") in ("existing", "reactivated")
        or payload.get("reactivated") is True
    ):
        return SubscriptionOutcome.ALREADY_SUBSCRIBED
    return SubscriptionOutcome.SUBSCRIBED


def _result(outcome: SubscriptionOutcome, payload: dict[str, Any] | None = None) -> SubscriptionResult:
    return SubscriptionResult(outcome=outcome, message=OUTCOME_MESSAGES[outcome], payload=payload or {})


class NewsletterClient:
    """Async client for a publication's subscription endpoint.

    Args:
        api_url: Provider API base URL.
        api_key: Bearer token; an empty key makes every call UNAVAILABLE.
        publication_id: Publication to subscribe readers to.
        timeout: Request timeout in seconds.
        duplicate_after_seconds: See ``classify_subscription_response``.
        http_client: Optional preconfigured ``httpx.AsyncClient``; the
            caller keeps ownership of it.
        clock: Returns the current Unix time.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        publication_id: str,
        timeout: float = 10.0,
        duplicate_after_seconds: int = 60,
        utm_source: str = "n8n-json",
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.publication_id = publication_id
        self.duplicate_after_seconds = duplicate_after_seconds
        self.utm_source = utm_source
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> NewsletterClient:
        return cls(
            api_url=settings.beehiiv_api_url,
            api_key=settings.beehiiv_api_key,
            publication_id=settings.beehiiv_publication_id,
            timeout=settings.newsletter_timeout,
            duplicate_after_seconds=settings.newsletter_duplicate_after_seconds,
            utm_source=settings.newsletter_utm_source,
            **kwargs,
        )

    async def __aenter__(self) -> NewsletterClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.publication_id)

    async def subscribe(self, email: str) -> SubscriptionResult:
        """Subscribe ``email``; never raises for provider or network errors."""
        if not self.configured:
            logger.error("newsletter_not_configured")
            return _result(SubscriptionOutcome.UNAVAILABLE)

        try:
            response = await self._client.post(
                f"{self.api_url}/publications/{self.publication_id}/subscriptions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "email": email,
                    "reactivate_existing": True,
                    "send_welcome_email": True,
                    "utm_source": self.utm_source,
                    "utm_medium": "website",
                    "utm_campaign": "newsletter-signup",
                },
            )
        except httpx.HTTPError as e:
            logger.error("newsletter_request_failed", error=str(e), error_type=type(e).__name__)
            return _result(SubscriptionOutcome.FAILED)

        outcome = classify_subscription_response(
            response.status_code,
            response.text,
            now=self._clock(),
            duplicate_after_seconds=self.duplicate_after_seconds,
        )
        if response.is_error:
            logger.warning(
                "newsletter_provider_error",
                status_code=response.status_code,
                outcome=outcome.value,
                body=response.text[:500],
            )
            return _result(outcome)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        logger.info("newsletter_subscription", outcome=outcome.value)
        return _result(outcome, payload if isinstance(payload, dict) else {})
