from marketyard.schemas.user import User, UserCreate, UserUpdate
from marketyard.schemas.shop import Shop, ShopCreate, ShopUpdate, ShopRating, GoodwillAdjustment
from marketyard.schemas.product import Product, ProductCreate, ProductUpdate
from marketyard.schemas.shop_product import (
    ShopProduct, ShopProductListing, CurrentPrice, ShopProductCreate, ShopProductUpdate,
)
from marketyard.schemas.price import (
    PriceUpdate, PriceActor, GlobalPriceEntry, PriceComparison, ComparisonCell,
    PriceHistoryEntry, PriceStats, Earnings, PriceUpdateCreate, PaymentStatusChange,
)
from marketyard.schemas.subscription import Subscription, SubscriptionCreate
from marketyard.schemas.payment import Payment, PaymentCreate, PaymentStatusUpdate
from marketyard.schemas.favorite import Favorite, FavoriteProduct, FavoriteShop, FavoriteToggle
from marketyard.schemas.notification import Notification, NotificationCreate
from marketyard.schemas.insights import (
    PopularShop, TrendingProduct, BestDeal, PurchaseRecord, PurchaseHistory,
    UserPurchasingPattern, MonthlySpending, Recommendation,
)
from marketyard.schemas.migration import (
    ExportDocument, ExportMetadata, BackendMigrationDocument, MigrationSummary,
)

__all__ = [
    "User", "UserCreate", "UserUpdate",
    "Shop", "ShopCreate", "ShopUpdate", "ShopRating", "GoodwillAdjustment",
    "Product", "ProductCreate", "ProductUpdate",
    "ShopProduct", "ShopProductListing", "CurrentPrice", "ShopProductCreate", "ShopProductUpdate",
    "PriceUpdate", "PriceActor", "GlobalPriceEntry", "PriceComparison", "ComparisonCell",
    "PriceHistoryEntry", "PriceStats", "Earnings", "PriceUpdateCreate", "PaymentStatusChange",
    "Subscription", "SubscriptionCreate",
    "Payment", "PaymentCreate", "PaymentStatusUpdate",
    "Favorite", "FavoriteProduct", "FavoriteShop", "FavoriteToggle",
    "Notification", "NotificationCreate",
    "PopularShop", "TrendingProduct", "BestDeal", "PurchaseRecord", "PurchaseHistory",
    "UserPurchasingPattern", "MonthlySpending", "Recommendation",
    "ExportDocument", "ExportMetadata", "BackendMigrationDocument", "MigrationSummary",
]
