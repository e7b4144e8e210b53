from .catalog import Product, SimpleProduct, VariableProduct, ProductModel, ProductColor
from .inventory import Inventory, StockHistory
from .offers import ProductOffer
from .orders import Order, OrderItem
from .cart import CartItem

__all__ = [
    'Product', 'SimpleProduct', 'VariableProduct', 'ProductModel', 'ProductColor',
    'Inventory', 'StockHistory',
    'ProductOffer',
    'Order', 'OrderItem',
    'CartItem',
]
