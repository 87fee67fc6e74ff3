"""Coupon discount rules, preview and admin maintenance."""

import pytest
from datetime import datetime, timedelta

from buildmart.exceptions import ValidationError, ConflictError, NotFoundError
from buildmart.models import Coupon
from buildmart.services.coupon_service import CouponService


def _coupon(**kwargs):
    defaults = dict(code='TEST', discount_type=Coupon.TYPE_PERCENTAGE, discount_value=10,
                    min_purchase=0, max_discount=0, is_active=True, is_deleted=False,
                    expiry_date=datetime.utcnow() + timedelta(days=1))
    defaults.update(kwargs)
    return Coupon(**defaults)


# ============================================================================
# Discount computation
# ============================================================================

class TestComputeDiscount:

    def test_percentage_capped(self):
        assert _coupon(discount_value=10, max_discount=50).compute_discount(800) == 50

    def test_percentage_below_cap(self):
        assert _coupon(discount_value=10, max_discount=500).compute_discount(800) == 80

    def test_percentage_uncapped_when_cap_is_zero(self):
        assert _coupon(discount_value=25, max_discount=0).compute_discount(1000) == 250

    def test_fixed(self):
        assert _coupon(discount_type=Coupon.TYPE_FIXED, discount_value=150).compute_discount(800) == 150

    def test_rounding(self):
        assert _coupon(discount_value=7).compute_discount(333.33) == 23.33

    def test_validity_window(self):
        now = datetime.utcnow()
        assert _coupon().is_valid_at(now)
        assert not _coupon(is_active=False).is_valid_at(now)
        assert not _coupon(expiry_date=now - timedelta(seconds=1)).is_valid_at(now)


class TestPreview:

    def test_preview_does_not_consume_usage(self, db, coupon):
        found, discount = CouponService.preview_discount('save10', 800)

        assert found.id == coupon.id
        assert discount == 50
        db.session.expire_all()
        assert db.session.get(Coupon, coupon.id).usage_count == 0

    def test_minimum_purchase(self, db, coupon):
        coupon.min_purchase = 1000
        db.session.commit()
        with pytest.raises(ValidationError, match='Minimum purchase of ₹1000 required'):
            CouponService.preview_discount('SAVE10', 800)

    def test_expired(self, db, coupon):
        coupon.expiry_date = datetime.utcnow() - timedelta(days=1)
        db.session.commit()
        with pytest.raises(ValidationError, match='Invalid or expired coupon'):
            CouponService.preview_discount('SAVE10', 800)

    def test_inactive(self, db, coupon):
        coupon.is_active = False
        db.session.commit()
        with pytest.raises(ValidationError, match='Invalid or expired coupon'):
            CouponService.preview_discount('SAVE10', 800)

    @pytest.mark.parametrize('code', [123, None, ['SAVE10']])
    def test_non_text_code_is_invalid(self, db, coupon, code):
        assert Coupon.normalize_code(code) == ''
        with pytest.raises(ValidationError, match='Invalid or expired coupon'):
            CouponService.preview_discount(code, 800)

    def test_apply_increments_usage(self, db, coupon):
        CouponService.apply_coupon('SAVE10', 800)
        CouponService.apply_coupon('SAVE10', 800)
        db.session.commit()
        db.session.expire_all()
        assert db.session.get(Coupon, coupon.id).usage_count == 2


# ============================================================================
# Maintenance
# ============================================================================

class TestMaintenance:

    def _future(self, days=10):
        return datetime.utcnow() + timedelta(days=days)

    def test_create_normalizes_code(self, db):
        coupon = CouponService.create_coupon(' monsoon20 ', 'percentage', 20, expiry_date=self._future())
        assert coupon.code == 'MONSOON20'
        assert coupon.usage_count == 0
        assert coupon.is_active is True

    def test_duplicate_code(self, db, coupon):
        with pytest.raises(ConflictError, match='Coupon code already exists'):
            CouponService.create_coupon('save10', 'fixed', 100, expiry_date=self._future())

    @pytest.mark.parametrize('discount_type, value, message', [
        ('percentage', 150, 'Percentage discount must be between 1 and 100'),
        ('percentage', 0, 'Discount value must be greater than 0'),
        ('fixed', -5, 'Discount value must be greater than 0'),
        ('bogo', 10, 'Discount type must be either'),
    ])
    def test_invalid_values(self, db, discount_type, value, message):
        with pytest.raises(ValidationError, match=message):
            CouponService.create_coupon('BAD', discount_type, value, expiry_date=self._future())

    def test_expiry_in_past(self, db):
        with pytest.raises(ValidationError, match='Expiry date must be in the future'):
            CouponService.create_coupon('OLD', 'fixed', 100, expiry_date=datetime.utcnow() - timedelta(days=1))

    def test_update_whitelisted_fields(self, db, coupon):
        CouponService.update_coupon(coupon.id, discount_value=15, max_discount=75, is_active=False,
                                    code='HACKED')
        assert coupon.discount_value == 15
        assert coupon.max_discount == 75
        assert coupon.is_active is False
        assert coupon.code == 'SAVE10'

    def test_delete_is_soft(self, db, coupon):
        CouponService.delete_coupon(coupon.id)

        assert coupon.is_deleted is True
        assert coupon.is_active is False
        with pytest.raises(NotFoundError, match='Coupon not found'):
            CouponService.get_coupon(coupon.id)
        with pytest.raises(ValidationError, match='Invalid or expired coupon'):
            CouponService.preview_discount('SAVE10', 800)

    def test_list_filters_active(self, db, coupon):
        CouponService.create_coupon('OFF100', 'fixed', 100, expiry_date=self._future())
        CouponService.update_coupon(coupon.id, is_active=False)

        active = CouponService.list_coupons(is_active=True)
        assert [c.code for c in active.items] == ['OFF100']
        assert CouponService.list_coupons().total == 2
