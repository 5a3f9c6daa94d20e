from .auth import User, SessionToken, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .tenancy import Branch, Store, StoreStaff
from .inventory import Category, Item, Inventory, InventoryItem, Location
from .sales import Transaction, CartItem

__all__ = [
    'User', 'SessionToken', 'ROLES', 'ROLE_ADMIN', 'ROLE_MANAGER', 'ROLE_CASHIER',
    'Branch', 'Store', 'StoreStaff',
    'Category', 'Item', 'Inventory', 'InventoryItem', 'Location',
    'Transaction', 'CartItem',
]
