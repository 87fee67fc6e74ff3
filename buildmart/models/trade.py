from datetime import datetime
from sqlalchemy import event
from buildmart.extensions import db
from buildmart.exceptions import ValidationError
from .base import BaseModel


class Order(BaseModel):
    """销售订单 (订单聚合根)"""
    __tablename__ = 'trade_orders'

    # 订单状态：前进顺序 + 取消
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PROCESSING = 'processing'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'

    STATUS_FLOW = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PROCESSING, STATUS_SHIPPED, STATUS_DELIVERED)
    STATUSES = STATUS_FLOW + (STATUS_CANCELLED,)
    TERMINAL_STATUSES = (STATUS_DELIVERED, STATUS_CANCELLED)
    CANCELLABLE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PROCESSING)

    # 审核状态 (经销商侧闸门，与订单状态相互独立)
    APPROVAL_PENDING = 'pending'
    APPROVAL_APPROVED = 'approved'
    APPROVAL_REJECTED = 'rejected'

    # 支付
    METHOD_ONLINE = 'Online'
    METHOD_COD = 'COD'
    PAYMENT_METHODS = (METHOD_ONLINE, METHOD_COD)

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    PAYMENT_FAILED = 'failed'
    PAYMENT_REFUNDED = 'refunded'
    PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_REFUNDED)

    # 退款状态
    REFUND_NONE = 'none'
    REFUND_PENDING = 'pending'
    REFUND_PROCESSED = 'processed'
    REFUND_FAILED = 'failed'

    # 操作人类型
    ACTOR_USER = 'User'
    ACTOR_DISTRIBUTOR = 'Distributor'
    ACTOR_ADMIN = 'Admin'
    ACTOR_SYSTEM = 'System'

    order_number = db.Column(db.String(48), unique=True, index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('auth_users.id'), index=True, nullable=False)
    distributor_id = db.Column(db.Integer, db.ForeignKey('auth_distributors.id'), index=True, nullable=False)

    # 价格快照
    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    delivery_charge = db.Column(db.Float, nullable=False, default=0.0)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)

    coupon_id = db.Column(db.Integer, db.ForeignKey('trade_coupons.id'))
    coupon_code = db.Column(db.String(32))

    # 收货地址快照 {full_name, phone, address, city, state, pincode}
    shipping_address = db.Column(db.JSON, nullable=False)
    delivery_notes = db.Column(db.String(500))

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), default=PAYMENT_PENDING, index=True)
    razorpay_order_id = db.Column(db.String(64), index=True)
    razorpay_payment_id = db.Column(db.String(64))
    razorpay_signature = db.Column(db.String(128))
    paid_at = db.Column(db.DateTime)

    # 退款记录 (已支付订单取消后发起)
    refund_amount = db.Column(db.Float, nullable=False, default=0.0)
    refund_status = db.Column(db.String(16), nullable=False, default=REFUND_NONE)
    razorpay_refund_id = db.Column(db.String(64))
    refunded_at = db.Column(db.DateTime)

    order_status = db.Column(db.String(16), default=STATUS_PENDING, index=True)

    approval_status = db.Column(db.String(16), default=APPROVAL_PENDING, index=True)
    approved_at = db.Column(db.DateTime)
    approved_by_id = db.Column(db.Integer)
    approved_by_kind = db.Column(db.String(16))
    rejection_reason = db.Column(db.String(500))
    rejected_at = db.Column(db.DateTime)
    rejected_by_id = db.Column(db.Integer)
    rejected_by_kind = db.Column(db.String(16))

    # 取消记录
    cancellation_reason = db.Column(db.String(500))
    cancelled_at = db.Column(db.DateTime)
    cancelled_by_id = db.Column(db.Integer)
    cancelled_by_kind = db.Column(db.String(16))

    # 物流跟踪
    tracking_number = db.Column(db.String(64))
    tracking_url = db.Column(db.String(256))
    estimated_delivery = db.Column(db.DateTime)
    actual_delivery = db.Column(db.DateTime)

    # 库存是否仍处于扣减状态 (取消时只回补一次)
    stock_reserved = db.Column(db.Boolean, default=False, nullable=False)

    # 乐观锁版本号
    version_id = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan',
                            order_by='OrderItem.id')
    status_history = db.relationship('OrderStatusHistory', backref='order', cascade='all, delete-orphan',
                                     order_by='OrderStatusHistory.id')
    coupon = db.relationship('Coupon')

    @property
    def can_be_cancelled(self):
        return self.order_status in self.CANCELLABLE_STATUSES

    @property
    def is_terminal(self):
        return self.order_status in self.TERMINAL_STATUSES

    def recompute_total(self):
        self.total_amount = round(self.subtotal + self.delivery_charge - self.discount, 2)
        return self.total_amount

    def check_totals(self, tolerance=1.0):
        """total = subtotal + delivery_charge - discount，允许少量舍入误差"""
        for field in ('subtotal', 'discount', 'delivery_charge', 'total_amount'):
            if (getattr(self, field) or 0) < 0:
                raise ValidationError(f'{field} cannot be negative')
        expected = (self.subtotal or 0) + (self.delivery_charge or 0) - (self.discount or 0)
        if abs(expected - (self.total_amount or 0)) > tolerance:
            raise ValidationError(
                f'Total amount mismatch. Expected {expected:.2f}, got {self.total_amount:.2f}')

    def to_dict(self, include_history=True):
        data = super().to_dict()
        data.pop('version_id', None)
        data['can_be_cancelled'] = self.can_be_cancelled
        data['items'] = [item.to_dict() for item in self.items]
        if include_history:
            data['status_history'] = [entry.to_dict() for entry in self.status_history]
        return data

    def __repr__(self):
        return f'<Order {self.order_number}>'


class OrderItem(BaseModel):
    """订单明细行"""
    __tablename__ = 'trade_order_items'

    order_id = db.Column(db.Integer, db.ForeignKey('trade_orders.id'), index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('catalog_products.id'))
    # 历史遗留字段：订单归属以 Order.distributor_id 为准
    distributor_id = db.Column(db.Integer, db.ForeignKey('auth_distributors.id'))

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)  # 下单时的单价快照
    name = db.Column(db.String(128))
    image = db.Column(db.String(256))

    product = db.relationship('Product')

    @property
    def line_total(self):
        return self.quantity * self.price

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'price': self.price,
            'name': self.name,
            'image': self.image,
            'line_total': round(self.line_total, 2),
        }


class OrderStatusHistory(BaseModel):
    """订单状态流水 (只追加)"""
    __tablename__ = 'trade_order_status_history'

    order_id = db.Column(db.Integer, db.ForeignKey('trade_orders.id'), index=True)
    status = db.Column(db.String(16), nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    note = db.Column(db.String(500))
    actor_id = db.Column(db.Integer)
    actor_kind = db.Column(db.String(16))

    def to_dict(self):
        return {
            'status': self.status,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'note': self.note,
            'actor_id': self.actor_id,
            'actor_kind': self.actor_kind,
        }


@event.listens_for(Order, 'before_insert')
@event.listens_for(Order, 'before_update')
def validate_order_totals(mapper, connection, target):
    """写库前校验金额一致性"""
    from flask import current_app
    target.check_totals(current_app.config.get('ORDER_TOTAL_TOLERANCE', 1.0))
