from .tenancy import Tenant, Provider
from .catalog import Service, Booking
from .inventory import Product, StockMovement
from .sales import Sale, SaleLine, Payment, PaymentTender
from .registers import Till, TillEntry
from .revenue import RevenueConfig, RevenueOverride
from .commissions import CommissionEntry, CommissionAdjustment
from .documents import DocumentSequence

__all__ = [
    'Tenant', 'Provider',
    'Service', 'Booking',
    'Product', 'StockMovement',
    'Sale', 'SaleLine', 'Payment', 'PaymentTender',
    'Till', 'TillEntry',
    'RevenueConfig', 'RevenueOverride',
    'CommissionEntry', 'CommissionAdjustment',
    'DocumentSequence',
]
