from buildmart.extensions import db
from .base import BaseModel


class InventoryLog(BaseModel):
    """
    库存流水 (补偿记录)
    订单引擎每一次扣减/回补库存都记一笔，和订单在同一事务内提交
    """
    __tablename__ = 'stock_logs'

    TYPE_RESERVE = 'reserve'  # 下单扣减
    TYPE_RESTORE = 'restore'  # 取消回补

    transaction_code = db.Column(db.String(48), index=True)  # 关联的订单号
    move_type = db.Column(db.String(20))

    product_id = db.Column(db.Integer, db.ForeignKey('catalog_products.id'), index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('trade_orders.id'), index=True)

    qty_change = db.Column(db.Integer)  # 变动数量 (+10, -5)
    balance_after = db.Column(db.Integer)  # 变动后结余 (快照)
    remark = db.Column(db.String(255))

    product = db.relationship('Product')
