from flask import jsonify, request
from flask_login import current_user
from buildmart.blueprints.admin import admin_bp
from buildmart.blueprints.admin.forms import CouponForm, CouponUpdateForm
from buildmart.blueprints.distributor.forms import StatusUpdateForm, ApproveOrderForm, RejectOrderForm
from buildmart.exceptions import ValidationError
from buildmart.services.coupon_service import CouponService
from buildmart.services.order_service import OrderService
from buildmart.utils.audit import log_action, audit_log
from buildmart.utils.decorators import admin_required
from buildmart.utils.pagination import page_args, page_payload
from buildmart.utils.validators import validate_form


# ============== 优惠券管理 ==============

@admin_bp.route('/coupons')
@admin_required
def coupons():
    page, limit = page_args()
    is_active = request.args.get('is_active')
    if is_active is not None:
        is_active = is_active.lower() in ('1', 'true', 'yes')
    pagination = CouponService.list_coupons(page=page, limit=limit, is_active=is_active)
    return jsonify(page_payload(pagination, 'coupons'))


@admin_bp.route('/coupons', methods=['POST'])
@admin_required
def create_coupon():
    form = validate_form(CouponForm())
    coupon = CouponService.create_coupon(
        code=form.code.data,
        discount_type=form.discount_type.data,
        discount_value=form.discount_value.data,
        min_purchase=form.min_purchase.data,
        max_discount=form.max_discount.data,
        expiry_date=form.expiry_date.data
    )
    log_action('coupons', 'create_coupon', {'coupon_id': coupon.id, 'code': coupon.code})
    return jsonify({'success': True, 'message': 'Coupon created successfully', 'coupon': coupon.to_dict()}), 201


@admin_bp.route('/coupons/<int:coupon_id>', methods=['PUT'])
@admin_required
def update_coupon(coupon_id):
    form = validate_form(CouponUpdateForm())
    # BooleanField 缺省即 False，启用开关直接从 JSON 读取
    data = request.get_json(silent=True) or {}
    is_active = data.get('is_active') if isinstance(data, dict) else None
    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError('is_active must be true or false')

    coupon = CouponService.update_coupon(
        coupon_id,
        discount_value=form.discount_value.data,
        min_purchase=form.min_purchase.data,
        max_discount=form.max_discount.data,
        expiry_date=form.expiry_date.data,
        is_active=is_active
    )
    log_action('coupons', 'update_coupon', {'coupon_id': coupon.id, 'changes': data})
    return jsonify({'success': True, 'message': 'Coupon updated successfully', 'coupon': coupon.to_dict()})


@admin_bp.route('/coupons/<int:coupon_id>', methods=['DELETE'])
@admin_required
@audit_log('coupons', 'delete_coupon')
def delete_coupon(coupon_id):
    CouponService.delete_coupon(coupon_id)
    return jsonify({'success': True, 'message': 'Coupon deleted successfully'})


# ============== 订单管理 ==============

@admin_bp.route('/orders')
@admin_required
def orders():
    """全部订单，可按订单状态和支付状态筛选"""
    page, limit = page_args()
    pagination = OrderService.list_orders(
        current_user,
        status=request.args.get('status'),
        payment_status=request.args.get('payment_status'),
        page=page,
        limit=limit
    )
    return jsonify(page_payload(pagination, 'orders'))


@admin_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@admin_required
def override_status(order_id):
    form = validate_form(StatusUpdateForm())
    new_status = str(form.status.data).strip()
    order = OrderService.update_status(
        order_id,
        new_status,
        current_user,
        note=form.note.data or None,
        tracking_number=form.tracking_number.data or None,
        tracking_url=form.tracking_url.data or None,
        estimated_delivery=form.estimated_delivery.data
    )
    log_action('orders', 'override_status', {'order_id': order.id, 'status': new_status})
    return jsonify({'success': True, 'message': 'Order status updated successfully', 'order': order.to_dict()})


@admin_bp.route('/orders/<int:order_id>/approve', methods=['PUT'])
@admin_required
def approve_order(order_id):
    form = validate_form(ApproveOrderForm())
    order = OrderService.approve(
        order_id, current_user,
        delivery_charge=form.delivery_charge.data,
        note=form.note.data or None
    )
    log_action('orders', 'approve_order', {'order_id': order.id})
    return jsonify({'success': True, 'message': 'Order approved successfully', 'order': order.to_dict()})


@admin_bp.route('/orders/<int:order_id>/reject', methods=['PUT'])
@admin_required
def reject_order(order_id):
    form = validate_form(RejectOrderForm())
    order = OrderService.reject(order_id, current_user, form.reason.data)
    log_action('orders', 'reject_order', {'order_id': order.id, 'reason': order.rejection_reason})
    return jsonify({'success': True, 'message': 'Order rejected', 'order': order.to_dict()})


@admin_bp.route('/orders/<int:order_id>/refund', methods=['PUT'])
@admin_required
def retry_refund(order_id):
    """重新提交失败的退款"""
    order = OrderService.retry_refund(order_id, current_user)
    log_action('orders', 'retry_refund', {'order_id': order.id, 'refund_status': order.refund_status})
    return jsonify({'success': True, 'message': f'Refund is {order.refund_status}', 'order': order.to_dict()})
