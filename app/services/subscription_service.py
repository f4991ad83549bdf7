"""Subscription service — premium status read path.

Read-only. Rows are written exclusively by the webhook reconciler.
"""

from app.models.payment import Subscription


def get_active_subscription(user_id):
    """Return the most recently created active Subscription, or None."""
    return (
        Subscription.query
        .filter_by(user_id=user_id, is_active=True)
        .order_by(Subscription.created_at.desc())
        .first()
    )


def get_subscription_status(user_id):
    """Build the subscription-status payload for a user.

    No active row is not an error: the user is simply on the free tier.
    Store errors propagate to the caller.
    """
    sub = get_active_subscription(user_id)
    is_premium = sub is not None and sub.status == "premium"

    return {
        "isPremium": is_premium,
        "subscription": sub.to_dict() if sub is not None else None,
        "status": "premium" if is_premium else "free",
    }
