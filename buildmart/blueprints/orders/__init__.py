from flask import Blueprint

# 注意：url_prefix 在 buildmart/__init__.py 注册时设置，这里不重复设置
orders_bp = Blueprint('orders', __name__)

from . import routes
