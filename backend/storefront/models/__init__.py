from .users import User, Counter, CURRENT_SCHEMA_VERSION
from .orders import Order, OrderLine
from .stores import Store
from .auth import SessionToken

__all__ = [
    'User', 'Counter', 'CURRENT_SCHEMA_VERSION',
    'Order', 'OrderLine',
    'Store',
    'SessionToken',
]
