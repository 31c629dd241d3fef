from .tenancy import User, Tenant, Cube
from .rentals import Rental, Payment, PaymentReminder
from .inventory import Product, ProductVariant, InventoryLog
from .sales import Sale, SaleItem, SalePayment

__all__ = [
    'User', 'Tenant', 'Cube',
    'Rental', 'Payment', 'PaymentReminder',
    'Product', 'ProductVariant', 'InventoryLog',
    'Sale', 'SaleItem', 'SalePayment',
]
