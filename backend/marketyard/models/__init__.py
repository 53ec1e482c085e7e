from marketyard.models.user import User
from marketyard.models.shop import Shop
from marketyard.models.product import Product
from marketyard.models.shop_product import ShopProduct
from marketyard.models.price_update import PriceUpdate
from marketyard.models.subscription import Subscription
from marketyard.models.payment import Payment
from marketyard.models.favorite import Favorite
from marketyard.models.notification import Notification

__all__ = [
    "User",
    "Shop",
    "Product",
    "ShopProduct",
    "PriceUpdate",
    "Subscription",
    "Payment",
    "Favorite",
    "Notification",
]
