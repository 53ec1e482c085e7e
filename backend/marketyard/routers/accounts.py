from fastapi import APIRouter, Depends, status

from marketyard.exceptions import NotFoundError
from marketyard.routers.deps import get_store
from marketyard.schemas import (
    User, UserCreate, UserUpdate, Subscription, SubscriptionCreate,
    Payment, PaymentCreate, PaymentStatusUpdate,
)
from marketyard.services import accounts
from marketyard.services.storage import EntityKind, EntityStore

router = APIRouter(tags=["accounts"])


# ============== Users ==============

@router.post("/users", response_model=User, status_code=status.HTTP_201_CREATED)
def register_user(body: UserCreate, store: EntityStore = Depends(get_store)):
    return accounts.create_user(store, **body.model_dump())


@router.get("/users/by-phone/{phone_number}", response_model=User)
def get_user_by_phone(phone_number: str, store: EntityStore = Depends(get_store)):
    user = accounts.get_user_by_phone(store, phone_number)
    if user is None:
        raise NotFoundError("User", phone_number)
    return user


@router.get("/users/{user_id}", response_model=User)
def get_user(user_id: str, store: EntityStore = Depends(get_store)):
    user = store.get_by_id(EntityKind.USERS, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.patch("/users/{user_id}", response_model=User)
def update_user(user_id: str, body: UserUpdate, store: EntityStore = Depends(get_store)):
    return accounts.update_user(store, user_id, **body.model_dump(exclude_unset=True))


# ============== Subscriptions ==============

@router.post("/subscriptions", response_model=Subscription, status_code=status.HTTP_201_CREATED)
def subscribe(body: SubscriptionCreate, store: EntityStore = Depends(get_store)):
    return accounts.create_subscription(store, **body.model_dump())


@router.get("/users/{user_id}/subscription", response_model=Subscription | None)
def subscription_status(user_id: str, store: EntityStore = Depends(get_store)):
    """The user's active subscription, or null."""
    return accounts.get_subscription_status(store, user_id)


@router.get("/users/{user_id}/subscriptions", response_model=list[Subscription])
def subscription_history(user_id: str, store: EntityStore = Depends(get_store)):
    return accounts.get_subscription_history(store, user_id)


@router.post("/subscriptions/{subscription_id}/cancel", response_model=Subscription)
def cancel_subscription(subscription_id: str, store: EntityStore = Depends(get_store)):
    return accounts.cancel_subscription(store, subscription_id)


# ============== Payments ==============

@router.post("/payments", response_model=Payment, status_code=status.HTTP_201_CREATED)
def record_payment(body: PaymentCreate, store: EntityStore = Depends(get_store)):
    data = body.model_dump()
    payment_type = data.pop("type")
    return accounts.create_payment(store, payment_type=payment_type, **data)


@router.patch("/payments/{payment_id}", response_model=Payment)
def change_payment_status(payment_id: str, body: PaymentStatusUpdate, store: EntityStore = Depends(get_store)):
    return accounts.update_payment_status(store, payment_id, body.status)


@router.get("/users/{user_id}/payments", response_model=list[Payment])
def payment_history(user_id: str, type: str | None = None, store: EntityStore = Depends(get_store)):
    return accounts.get_payment_history(store, user_id, payment_type=type)
