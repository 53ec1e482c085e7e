"""
Price updates submitted by shop owners and staff.

A price update is the only way a listing's current price changes. Each
update also carries the small incentive paid to the shop for reporting it.
"""
import logging
from typing import Optional

from marketyard.config import get_settings
from marketyard.database import utcnow
from marketyard.exceptions import NotFoundError, ValidationError
from marketyard.schemas import PriceUpdate, PriceActor, CurrentPrice, Earnings
from marketyard.services.storage import EntityKind, EntityStore, generate_id

logger = logging.getLogger(__name__)

# Allowed incentive payment transitions
PAYMENT_TRANSITIONS = {
    "pending": {"processing", "paid", "failed"},
    "processing": {"paid", "failed"},
    "failed": {"pending"},
    "paid": set(),
}


def create_price_update(
    store: EntityStore,
    shop_product_id: str,
    price: float,
    actor: PriceActor,
    payment_status: Optional[str] = None,
    payment_amount: Optional[float] = None
) -> PriceUpdate:
    """Record a new price and make it the listing's current price.

    The update insert and the listing rewrite happen under the store lock
    in one transaction, so concurrent updates to a listing cannot leave an
    older price behind a newer timestamp.
    """
    if price is None or price <= 0:
        raise ValidationError(f"Price must be greater than 0, got {price}", field="price")

    with store.transaction():
        listing = store.get_by_id(EntityKind.SHOP_PRODUCTS, shop_product_id)
        if listing is None:
            raise NotFoundError("ShopProduct", shop_product_id)

        now = utcnow()
        update = store.save(PriceUpdate(
            id=generate_id("price_update"),
            shop_product_id=shop_product_id,
            price=price,
            updated_by_type=actor.role,
            updated_by_id=actor.id,
            payment_status=payment_status or "pending",
            payment_amount=(
                payment_amount if payment_amount is not None else get_settings().price_update_incentive
            ),
            created_at=now,
        ))
        store.save(listing.model_copy(update={
            "current_price": update.price,
            "last_price_update_at": update.created_at,
            "updated_at": now,
        }))

    logger.info(f"Price update {update.id}: {shop_product_id} -> {price} by {actor.role} {actor.id}")
    return update


def get_price_updates_by_shop(store: EntityStore, shop_id: str) -> list[PriceUpdate]:
    """All updates for a shop's listings, newest first."""
    updates = store.get_price_updates_by_shop(shop_id)
    return sorted(updates, key=lambda u: u.created_at, reverse=True)


def get_current_prices_for_shop(store: EntityStore, shop_id: str) -> list[CurrentPrice]:
    return [
        CurrentPrice(
            shop_product_id=sp.id,
            product_id=sp.product_id,
            current_price=sp.current_price,
            last_updated_at=sp.last_price_update_at,
            is_available=sp.is_available,
        )
        for sp in store.get_shop_products_by_shop(shop_id)
    ]


def get_price_history(store: EntityStore, shop_product_id: str) -> list[PriceUpdate]:
    """Updates for one listing, newest first. Works for removed listings too."""
    updates = store.get_price_updates_by_shop_product(shop_product_id)
    return sorted(updates, key=lambda u: u.created_at, reverse=True)


def update_payment_status(store: EntityStore, price_update_id: str, status: str) -> PriceUpdate:
    """Move an update's incentive payment to a new status."""
    with store.transaction():
        update = store.get_by_id(EntityKind.PRICE_UPDATES, price_update_id)
        if update is None:
            raise NotFoundError("PriceUpdate", price_update_id)
        if status == update.payment_status:
            return update
        if status not in PAYMENT_TRANSITIONS.get(update.payment_status, set()):
            raise ValidationError(
                f"Cannot move payment of {price_update_id} from {update.payment_status} to {status}",
                field="payment_status"
            )
        update = store.save(update.model_copy(update={"payment_status": status}))

    logger.info(f"Price update {price_update_id} payment is now {status}")
    return update


def calculate_earnings(store: EntityStore, shop_id: str) -> Earnings:
    """Incentive totals for a shop: everything, still pending, already paid."""
    earnings = Earnings()
    for update in store.get_price_updates_by_shop(shop_id):
        amount = update.payment_amount or 0
        earnings.total += amount
        if update.payment_status == "pending":
            earnings.pending += amount
        elif update.payment_status == "paid":
            earnings.paid += amount
    return earnings
