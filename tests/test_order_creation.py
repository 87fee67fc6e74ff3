"""
Order creation: validation order, price capture, coupon pricing, delivery
charge policy, stock reservation and all-or-nothing rollback.
"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import update

from buildmart.exceptions import ValidationError, NotFoundError
from buildmart.models import Order, Product, Coupon, InventoryLog
from buildmart.services.inventory_service import InventoryService
from buildmart.services.order_service import OrderService


def _stock(db, product):
    db.session.expire_all()
    return db.session.get(Product, product.id).stock


# ============================================================================
# Pricing
# ============================================================================

class TestPricing:

    def test_two_items_with_capped_percentage_coupon(self, place_order, coupon):
        order = place_order(coupon_code='SAVE10')

        assert order.subtotal == 800
        assert order.discount == 50  # 10% of 800 is 80, capped at 50
        assert order.delivery_charge == 50
        assert order.total_amount == 800 + 50 - 50
        assert order.coupon_code == 'SAVE10'
        assert order.coupon_id == coupon.id

    def test_coupon_code_is_case_insensitive(self, place_order, coupon):
        order = place_order(coupon_code='  save10 ')
        assert order.discount == 50

    def test_free_delivery_above_threshold(self, place_order, products):
        _, steel = products
        order = place_order(items=[{'product_id': steel.id, 'quantity': 3}])

        assert order.subtotal == 1500
        assert order.delivery_charge == 0
        assert order.total_amount == 1500

    def test_subtotal_at_threshold_pays_delivery(self, place_order, products):
        _, steel = products
        order = place_order(items=[{'product_id': steel.id, 'quantity': 2}])
        assert order.subtotal == 1000
        assert order.delivery_charge == 50

    def test_price_is_taken_from_catalog(self, place_order, products):
        cement, _ = products
        order = place_order(items=[{'product_id': cement.id, 'quantity': 2, 'price': 1}])

        assert order.items[0].price == 100
        assert order.subtotal == 200

    def test_item_snapshot_keeps_name_and_price(self, db, place_order, products):
        cement, _ = products
        order = place_order()

        cement.price = 150
        cement.name = 'Renamed Cement'
        db.session.commit()

        item = order.items[0]
        assert item.price == 100
        assert item.name == 'OPC Cement'

    def test_fixed_coupon_larger_than_basket_is_clamped(self, db, place_order, products):
        cement, _ = products
        db.session.add(Coupon(code='BIGFLAT', discount_type=Coupon.TYPE_FIXED, discount_value=5000,
                              expiry_date=datetime.utcnow() + timedelta(days=1)))
        db.session.commit()

        order = place_order(items=[{'product_id': cement.id, 'quantity': 1}], coupon_code='BIGFLAT')

        assert order.discount == 100
        assert order.total_amount == 50

    def test_accepts_product_key(self, place_order, products):
        cement, _ = products
        order = place_order(items=[{'product': cement.id, 'quantity': 1}])
        assert order.items[0].product_id == cement.id


# ============================================================================
# Initial state
# ============================================================================

class TestInitialState:

    def test_states_start_pending(self, place_order):
        order = place_order()

        assert order.order_status == Order.STATUS_PENDING
        assert order.approval_status == Order.APPROVAL_PENDING
        assert order.payment_status == Order.PAYMENT_PENDING
        assert order.order_number.startswith('ORD-')

    def test_single_placed_history_entry(self, place_order, buyer):
        order = place_order()

        assert len(order.status_history) == 1
        entry = order.status_history[0]
        assert entry.status == Order.STATUS_PENDING
        assert entry.note == 'Order placed'
        assert entry.actor_id == buyer.id
        assert entry.actor_kind == Order.ACTOR_USER

    def test_shipping_address_is_copied(self, place_order, address):
        order = place_order()
        assert order.shipping_address == address

    def test_delivery_notes_are_stored(self, place_order):
        order = place_order(delivery_notes='Call before unloading')
        assert order.delivery_notes == 'Call before unloading'


# ============================================================================
# Stock and coupon usage
# ============================================================================

class TestReservation:

    def test_stock_is_decremented(self, db, place_order, products):
        cement, steel = products
        order = place_order()

        assert _stock(db, cement) == 47
        assert _stock(db, steel) == 9
        assert order.stock_reserved is True

    def test_inventory_ledger_rows(self, place_order, products):
        cement, _ = products
        order = place_order()

        logs = InventoryLog.query.filter_by(order_id=order.id).order_by(InventoryLog.id).all()
        assert [log.move_type for log in logs] == [InventoryLog.TYPE_RESERVE, InventoryLog.TYPE_RESERVE]
        assert logs[0].product_id == cement.id
        assert logs[0].qty_change == -3
        assert logs[0].balance_after == 47
        assert logs[0].transaction_code == order.order_number

    def test_coupon_usage_incremented_once(self, db, place_order, coupon):
        place_order(coupon_code='SAVE10')
        db.session.expire_all()
        assert db.session.get(Coupon, coupon.id).usage_count == 1

    def test_failed_order_does_not_consume_coupon_or_stock(self, db, place_order, products, coupon,
                                                          monkeypatch):
        cement, _ = products

        def explode(order):
            raise ValidationError('Insufficient stock for OPC Cement. Available: 0')

        monkeypatch.setattr(InventoryService, 'reserve_items', staticmethod(explode))

        with pytest.raises(ValidationError):
            place_order(coupon_code='SAVE10')

        db.session.expire_all()
        assert db.session.get(Coupon, coupon.id).usage_count == 0
        assert _stock(db, cement) == 50
        assert Order.query.count() == 0

    def test_insufficient_stock_rejects_whole_order(self, db, place_order, products):
        cement, steel = products
        with pytest.raises(ValidationError, match='Insufficient stock for TMT Bar 12mm. Available: 10'):
            place_order(items=[
                {'product_id': cement.id, 'quantity': 1},
                {'product_id': steel.id, 'quantity': 11},
            ])

        assert _stock(db, cement) == 50
        assert Order.query.count() == 0

    def test_insufficient_stock_reports_current_level(self, db, products):
        cement, _ = products
        assert cement.stock == 50
        # another request drained the stock behind this session's back
        db.session.execute(
            update(Product).where(Product.id == cement.id).values(stock=2)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ValidationError, match='Insufficient stock for OPC Cement. Available: 2'):
            InventoryService.adjust_stock(cement.id, -5, InventoryLog.TYPE_RESERVE)
        db.session.rollback()


# ============================================================================
# Validation
# ============================================================================

class TestValidation:

    def test_items_checked_first(self, buyer):
        with pytest.raises(ValidationError, match='Order must contain at least one item'):
            OrderService.create_order(buyer, None, None, None, [])

    def test_shipping_address_required(self, buyer, products):
        cement, _ = products
        with pytest.raises(ValidationError, match='Shipping address is required'):
            OrderService.create_order(buyer, None, None, None, [{'product_id': cement.id, 'quantity': 1}])

    def test_payment_method_required(self, buyer, products, address):
        cement, _ = products
        with pytest.raises(ValidationError, match='Payment method is required'):
            OrderService.create_order(buyer, None, address, None, [{'product_id': cement.id, 'quantity': 1}])

    def test_distributor_required(self, buyer, products, address):
        cement, _ = products
        with pytest.raises(ValidationError, match='Distributor is required'):
            OrderService.create_order(buyer, None, address, 'COD', [{'product_id': cement.id, 'quantity': 1}])

    def test_payment_method_must_be_known(self, place_order):
        with pytest.raises(ValidationError, match='Payment method must be either Online or COD'):
            place_order(payment_method='Cheque')

    def test_unknown_distributor(self, buyer, products, address):
        cement, _ = products
        with pytest.raises(NotFoundError, match='Distributor not found'):
            OrderService.create_order(buyer, 999, address, 'COD', [{'product_id': cement.id, 'quantity': 1}])

    def test_item_needs_product_and_quantity(self, place_order, products):
        cement, _ = products
        with pytest.raises(ValidationError, match='Each item must have product and quantity'):
            place_order(items=[{'product_id': cement.id}])

    @pytest.mark.parametrize('quantity, message', [
        (0, 'Quantity must be at least 1'),
        (-2, 'Quantity must be at least 1'),
        (1.5, 'Quantity must be a whole number'),
        ('two', 'Quantity must be a whole number'),
    ])
    def test_quantity_must_be_positive_integer(self, place_order, products, quantity, message):
        cement, _ = products
        with pytest.raises(ValidationError, match=message):
            place_order(items=[{'product_id': cement.id, 'quantity': quantity}])

    def test_unknown_product(self, place_order):
        with pytest.raises(NotFoundError, match='Product 999 not found'):
            place_order(items=[{'product_id': 999, 'quantity': 1}])

    def test_inactive_product(self, db, place_order, products):
        cement, _ = products
        cement.is_active = False
        db.session.commit()

        with pytest.raises(ValidationError, match='Product OPC Cement is not available'):
            place_order(items=[{'product_id': cement.id, 'quantity': 1}])

    def test_invalid_coupon(self, place_order):
        with pytest.raises(ValidationError, match='Invalid or expired coupon'):
            place_order(coupon_code='NOPE')

    def test_delivery_notes_limit(self, place_order):
        with pytest.raises(ValidationError, match='Delivery notes cannot exceed 500 characters'):
            place_order(delivery_notes='x' * 501)

    def test_delivery_notes_must_be_text(self, db, place_order, products):
        with pytest.raises(ValidationError, match='Delivery notes must be a string'):
            place_order(delivery_notes=5)
        assert _stock(db, products[0]) == 50

    @pytest.mark.parametrize('code', [123, ['SAVE10'], {'code': 'SAVE10'}])
    def test_coupon_code_must_be_text(self, place_order, coupon, code):
        with pytest.raises(ValidationError, match='Coupon code must be a string'):
            place_order(coupon_code=code)
        assert Order.query.count() == 0

    def test_unapproved_distributor(self, db, place_order, distributor):
        distributor.is_approved = False
        db.session.commit()

        with pytest.raises(ValidationError, match='Distributor is not accepting orders'):
            place_order()
        assert Order.query.count() == 0

    @pytest.mark.parametrize('field, value, message', [
        ('phone', '12345', 'Please provide a valid phone number'),
        ('pincode', '4110', 'Please provide a valid 6-digit pincode'),
        ('city', '  ', 'Shipping address city is required'),
    ])
    def test_shipping_address_fields(self, buyer, distributor, products, address, field, value, message):
        cement, _ = products
        address[field] = value
        with pytest.raises(ValidationError, match=message):
            OrderService.create_order(buyer, distributor.id, address, 'COD',
                                      [{'product_id': cement.id, 'quantity': 1}])


# ============================================================================
# Pricing consistency guard
# ============================================================================

class TestTotalsGuard:

    def test_mismatched_total_is_rejected_on_write(self, db, place_order):
        order = place_order()
        order.total_amount = order.total_amount + 25

        with pytest.raises(ValidationError, match='Total amount mismatch'):
            db.session.commit()
        db.session.rollback()

    def test_rounding_within_tolerance_is_accepted(self, db, place_order):
        order = place_order()
        order.total_amount = order.total_amount + 0.5
        db.session.commit()

        db.session.expire_all()
        assert db.session.get(Order, order.id).total_amount == pytest.approx(850.5)
