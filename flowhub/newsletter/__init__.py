"""Newsletter subscription proxy."""

from flowhub.newsletter.client import (
    NewsletterClient,
    SubscriptionOutcome,
    SubscriptionResult,
    classify_subscription_response,
    is_valid_email,
)

__all__ = [
    "NewsletterClient",
    "SubscriptionOutcome",
    "SubscriptionResult",
    "classify_subscription_response",
    "is_valid_email",
]
