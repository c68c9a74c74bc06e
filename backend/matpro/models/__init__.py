from .catalog import Store, Product
from .auth import User, SessionToken
from .customers import Customer
from .sales import Sale, SaleLineItem, Payment
from .inventory import StockEvent, ApprovalRequest
from .documents import DocumentSequence, AuditLog

__all__ = [
    'Store', 'Product',
    'User', 'SessionToken',
    'Customer',
    'Sale', 'SaleLineItem', 'Payment',
    'StockEvent', 'ApprovalRequest',
    'DocumentSequence', 'AuditLog',
]
