from .catalog import Category, Product
from .orders import Order, OrderItem, CreditLedger, CreditPayment
from .spending import Spending
from .reports import DailyRevenue

__all__ = [
    'Category', 'Product',
    'Order', 'OrderItem', 'CreditLedger', 'CreditPayment',
    'Spending',
    'DailyRevenue',
]
