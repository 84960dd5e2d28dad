"""Import de tous les modèles de table pour les enregistrer dans SQLModel.metadata."""
from primeur.audit.models import AuditLog  # noqa: F401
from primeur.categories.models import Category, SubCategory  # noqa: F401
from primeur.invoices.models import Invoice  # noqa: F401
from primeur.notifications.models import Notification  # noqa: F401
from primeur.orders.models import Order, OrderItem  # noqa: F401
from primeur.pricing.models import ClientPricing, PriceHistory, VolumePricing  # noqa: F401
from primeur.products.models import Product  # noqa: F401
from primeur.promotions.models import Promotion  # noqa: F401
from primeur.quotes.models import Quote, QuoteItem  # noqa: F401
from primeur.returns.models import CreditNote, Return, ReturnItem  # noqa: F401
from primeur.shops.models import Shop  # noqa: F401
from primeur.suppliers.models import (  # noqa: F401
    Supplier,
    SupplierEvaluation,
    SupplierOrder,
    SupplierOrderItem,
    SupplierProduct,
)
from primeur.users.models import User  # noqa: F401
