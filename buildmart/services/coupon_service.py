"""优惠券服务 - 折扣计算、核销计数、后台维护"""
from datetime import datetime
from flask import current_app
from sqlalchemy.exc import IntegrityError
from buildmart.extensions import db
from buildmart.exceptions import ValidationError, ConflictError
from buildmart.models.coupon import Coupon


class CouponService:
    """优惠券服务"""

    # ============== 折扣计算 ==============

    @staticmethod
    def resolve(code) -> Coupon:
        """按大写券码查找启用且未过期的券"""
        normalized = Coupon.normalize_code(code)
        coupon = Coupon.query.filter_by(code=normalized, is_deleted=False).first() if normalized else None
        if not coupon or not coupon.is_valid_at(datetime.utcnow()):
            raise ValidationError('Invalid or expired coupon')
        return coupon

    @staticmethod
    def calculate_discount(coupon: Coupon, subtotal: float) -> float:
        if subtotal < (coupon.min_purchase or 0):
            raise ValidationError(f'Minimum purchase of ₹{coupon.min_purchase:g} required')
        return coupon.compute_discount(subtotal)

    @staticmethod
    def preview_discount(code, subtotal):
        """
        下单前预览折扣，不改变任何状态
        返回: (coupon, discount)
        """
        coupon = CouponService.resolve(code)
        return coupon, CouponService.calculate_discount(coupon, subtotal)

    @staticmethod
    def apply_coupon(code, subtotal):
        """
        下单时核销：计算折扣并原子递增使用次数
        不提交事务，随订单一起提交
        返回: (coupon, discount)
        """
        coupon, discount = CouponService.preview_discount(code, subtotal)
        Coupon.query.filter_by(id=coupon.id).update(
            {Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)
        db.session.refresh(coupon, ['usage_count'])
        return coupon, discount

    # ============== 后台维护 ==============

    @staticmethod
    def _check_value(discount_type, value):
        if value is None or value <= 0:
            raise ValidationError('Discount value must be greater than 0')
        if discount_type == Coupon.TYPE_PERCENTAGE and not 1 <= value <= 100:
            raise ValidationError('Percentage discount must be between 1 and 100')

    @staticmethod
    def _check_expiry(expiry_date):
        if expiry_date is not None and expiry_date < datetime.utcnow():
            raise ValidationError('Expiry date must be in the future')

    @staticmethod
    def create_coupon(code, discount_type, discount_value, min_purchase=None,
                      max_discount=None, expiry_date=None):
        normalized = Coupon.normalize_code(code)
        if not normalized:
            raise ValidationError('Coupon code is required')
        if discount_type not in Coupon.TYPES:
            raise ValidationError('Discount type must be either "percentage" or "fixed"')
        CouponService._check_value(discount_type, discount_value)
        CouponService._check_expiry(expiry_date)

        if Coupon.query.filter_by(code=normalized).first():
            raise ConflictError('Coupon code already exists')

        coupon = Coupon(
            code=normalized,
            discount_type=discount_type,
            discount_value=float(discount_value),
            min_purchase=max(0.0, float(min_purchase or 0)),
            max_discount=max(0.0, float(max_discount or 0)),
            expiry_date=expiry_date
        )
        db.session.add(coupon)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('Coupon code already exists')
        current_app.logger.info(f'Coupon {coupon.code} created')
        return coupon

    @staticmethod
    def update_coupon(coupon_id, **changes):
        """只允许修改白名单字段"""
        coupon = Coupon.get_or_raise(coupon_id, 'Coupon not found')

        if changes.get('discount_value') is not None:
            CouponService._check_value(coupon.discount_type, changes['discount_value'])
            coupon.discount_value = float(changes['discount_value'])
        if changes.get('min_purchase') is not None:
            coupon.min_purchase = max(0.0, float(changes['min_purchase']))
        if changes.get('max_discount') is not None:
            coupon.max_discount = max(0.0, float(changes['max_discount']))
        if changes.get('expiry_date') is not None:
            CouponService._check_expiry(changes['expiry_date'])
            coupon.expiry_date = changes['expiry_date']
        if isinstance(changes.get('is_active'), bool):
            coupon.is_active = changes['is_active']

        db.session.commit()
        return coupon

    @staticmethod
    def delete_coupon(coupon_id):
        coupon = Coupon.get_or_raise(coupon_id, 'Coupon not found')
        coupon.is_active = False
        coupon.delete(soft=True)
        return coupon

    @staticmethod
    def list_coupons(page=1, limit=20, is_active=None):
        query = Coupon.query.filter_by(is_deleted=False)
        if is_active is not None:
            query = query.filter_by(is_active=is_active)
        return query.order_by(Coupon.created_at.desc()).paginate(
            page=page, per_page=limit, error_out=False)

    @staticmethod
    def get_coupon(coupon_id):
        return Coupon.get_or_raise(coupon_id, 'Coupon not found')
