# 按照依赖顺序导入
from .base import BaseModel
from .auth import User, Distributor
from .catalog import Product
from .coupon import Coupon
from .trade import Order, OrderItem, OrderStatusHistory
from .stock import InventoryLog
from .sys import AuditLog
