from datetime import datetime
from buildmart.extensions import db
from .base import BaseModel


class Coupon(BaseModel):
    """优惠券"""
    __tablename__ = 'trade_coupons'

    TYPE_PERCENTAGE = 'percentage'
    TYPE_FIXED = 'fixed'
    TYPES = (TYPE_PERCENTAGE, TYPE_FIXED)

    code = db.Column(db.String(32), unique=True, index=True, nullable=False)  # 统一大写存储
    discount_type = db.Column(db.String(16), nullable=False)
    discount_value = db.Column(db.Float, nullable=False)
    min_purchase = db.Column(db.Float, default=0.0)
    max_discount = db.Column(db.Float, default=0.0)  # 仅百分比券有效，0 表示不封顶
    expiry_date = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True)
    usage_count = db.Column(db.Integer, default=0, nullable=False)

    @staticmethod
    def normalize_code(code):
        # 非字符串券码视为无效
        if not isinstance(code, str):
            return ''
        return code.strip().upper()

    def is_valid_at(self, moment=None):
        """启用且未过期"""
        moment = moment or datetime.utcnow()
        if not self.is_active or self.is_deleted:
            return False
        return self.expiry_date is None or self.expiry_date >= moment

    def compute_discount(self, subtotal):
        """按券类型计算折扣金额 (不校验门槛)"""
        if self.discount_type == self.TYPE_PERCENTAGE:
            discount = subtotal * self.discount_value / 100
            if self.max_discount and self.max_discount > 0 and discount > self.max_discount:
                discount = self.max_discount
        else:
            discount = self.discount_value
        return round(discount, 2)

    def __repr__(self):
        return f'<Coupon {self.code}>'
