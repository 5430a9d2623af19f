from .auth import User, SessionToken
from .customers import Customer, customer_order_history
from .products import Product
from .orders import Order, OrderItem, OrderEdit, EditRequest
from .reports import ReportLog

__all__ = [
    'User', 'SessionToken',
    'Customer', 'customer_order_history',
    'Product',
    'Order', 'OrderItem', 'OrderEdit', 'EditRequest',
    'ReportLog',
]
