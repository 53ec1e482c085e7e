"""
Accounts Service

Users, premium subscriptions and the payment ledger. Payments are recorded
only; no gateway is called from here.
"""
import logging
import re
from datetime import timedelta
from typing import Any, Optional

from marketyard.config import get_settings
from marketyard.database import utcnow
from marketyard.exceptions import NotFoundError, ValidationError
from marketyard.schemas import User, Subscription, Payment
from marketyard.services.storage import EntityKind, EntityStore, generate_id

logger = logging.getLogger(__name__)

# Indian mobile number, digits only
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")

USER_FIELDS = {
    "name", "email", "phone_number", "user_type", "password_hash",
    "is_premium", "subscription_expires_at", "is_active", "is_verified",
}


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def validate_phone(phone: str) -> str:
    normalized = normalize_phone(phone)
    if not PHONE_PATTERN.match(normalized):
        raise ValidationError(f"Invalid phone number format: {phone!r}", field="phone_number")
    return normalized


def _require(store: EntityStore, kind: EntityKind, entity_id: str):
    entity = store.get_by_id(kind, entity_id)
    if entity is None:
        raise NotFoundError(kind.spec.label, entity_id)
    return entity


# ============== Users ==============

def create_user(
    store: EntityStore,
    phone_number: str,
    name: str,
    user_type: str,
    email: Optional[str] = None,
    password_hash: Optional[str] = None,
    is_verified: bool = False
) -> User:
    phone = validate_phone(phone_number)
    with store.transaction():
        if store.get_user_by_phone(phone):
            raise ValidationError(f"Phone number {phone} is already registered", field="phone_number")

        now = utcnow()
        user = store.save({
            "id": generate_id("user"),
            "phone_number": phone,
            "name": name,
            "user_type": user_type,
            "email": (email or "").strip() or None,
            "password_hash": password_hash,
            "is_verified": is_verified,
            "created_at": now,
            "updated_at": now,
        }, EntityKind.USERS)
    logger.info(f"Registered {user.user_type} {user.id}")
    return user


def get_user_by_phone(store: EntityStore, phone_number: str) -> Optional[User]:
    return store.get_user_by_phone(normalize_phone(phone_number))


def update_user(store: EntityStore, user_id: str, **changes) -> User:
    unknown = set(changes) - USER_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update user field(s): {', '.join(sorted(unknown))}", field=min(unknown))

    with store.transaction():
        user = _require(store, EntityKind.USERS, user_id)
        if changes.get("phone_number"):
            phone = validate_phone(changes["phone_number"])
            conflict = store.get_user_by_phone(phone)
            if conflict and conflict.id != user_id:
                raise ValidationError(f"Phone number {phone} is already in use", field="phone_number")
            changes["phone_number"] = phone
        elif "phone_number" in changes:
            del changes["phone_number"]

        changes["updated_at"] = utcnow()
        user = store.save(user.model_copy(update=changes))
    return user


# ============== Subscriptions ==============

def create_subscription(
    store: EntityStore,
    user_id: str,
    amount: Optional[float] = None,
    duration_days: int = 30,
    auto_renew: bool = True
) -> Subscription:
    """Start a premium subscription, cancelling the user's current one."""
    if duration_days <= 0:
        raise ValidationError("Subscription duration must be positive", field="duration_days")

    with store.transaction():
        user = _require(store, EntityKind.USERS, user_id)
        now = utcnow()

        current = store.get_active_subscription(user_id)
        if current:
            store.save(current.model_copy(update={
                "status": "cancelled",
                "cancelled_at": now,
                "updated_at": now,
            }))
            logger.info(f"Cancelled subscription {current.id} in favour of a new one")

        subscription = store.save(Subscription(
            id=generate_id("subscription"),
            user_id=user_id,
            status="active",
            amount=amount if amount is not None else get_settings().premium_subscription_price,
            started_at=now,
            expires_at=now + timedelta(days=duration_days),
            auto_renew=auto_renew,
            created_at=now,
            updated_at=now,
        ))
        store.save(user.model_copy(update={
            "is_premium": True,
            "subscription_expires_at": subscription.expires_at,
            "updated_at": now,
        }))
    logger.info(f"User {user_id} subscribed until {subscription.expires_at.isoformat()}")
    return subscription


def get_subscription_status(store: EntityStore, user_id: str) -> Optional[Subscription]:
    return store.get_active_subscription(user_id)


def cancel_subscription(store: EntityStore, subscription_id: str) -> Subscription:
    with store.transaction():
        subscription = _require(store, EntityKind.SUBSCRIPTIONS, subscription_id)
        now = utcnow()
        was_active = subscription.status == "active"
        subscription = store.save(subscription.model_copy(update={
            "status": "cancelled",
            "cancelled_at": now,
            "expires_at": now,
            "auto_renew": False,
            "updated_at": now,
        }))
        if was_active:
            user = store.get_by_id(EntityKind.USERS, subscription.user_id)
            if user is not None:
                store.save(user.model_copy(update={
                    "is_premium": False,
                    "subscription_expires_at": now,
                    "updated_at": now,
                }))
    return subscription


def get_subscription_history(store: EntityStore, user_id: str) -> list[Subscription]:
    """Every subscription of the user, latest start first."""
    return sorted(store.get_subscriptions_by_user(user_id), key=lambda s: s.started_at, reverse=True)


# ============== Payments ==============

def create_payment(
    store: EntityStore,
    user_id: str,
    payment_type: str,
    amount: float,
    status: str = "pending",
    currency: Optional[str] = None,
    shop_owner_id: Optional[str] = None,
    method: Optional[str] = None,
    description: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    razorpay_payment_id: Optional[str] = None,
    razorpay_order_id: Optional[str] = None
) -> Payment:
    with store.transaction():
        _require(store, EntityKind.USERS, user_id)
        now = utcnow()
        payment = store.save({
            "id": generate_id("payment"),
            "user_id": user_id,
            "type": payment_type,
            "amount": amount,
            "currency": currency or get_settings().default_currency,
            "status": status,
            "shop_owner_id": shop_owner_id,
            "method": method,
            "description": description,
            "metadata": metadata,
            "razorpay_payment_id": razorpay_payment_id,
            "razorpay_order_id": razorpay_order_id,
            "created_at": now,
            "updated_at": now,
        }, EntityKind.PAYMENTS)
    logger.info(f"Recorded {payment.type} payment {payment.id} of {payment.amount} {payment.currency}")
    return payment


def update_payment_status(store: EntityStore, payment_id: str, status: str) -> Payment:
    with store.transaction():
        payment = _require(store, EntityKind.PAYMENTS, payment_id)
        payment = store.save(payment.model_copy(update={"status": status, "updated_at": utcnow()}))
    return payment


def get_payment_history(store: EntityStore, user_id: str, payment_type: Optional[str] = None) -> list[Payment]:
    """User's payments, newest first, optionally of one type."""
    return sorted(
        store.get_payments_by_user(user_id, payment_type),
        key=lambda p: p.created_at,
        reverse=True
    )
