from flask import jsonify, request, current_app
from flask_login import login_required, current_user
from buildmart.blueprints.orders import orders_bp
from buildmart.blueprints.orders.forms import CancelOrderForm, ApplyCouponForm
from buildmart.services.order_service import OrderService
from buildmart.services.coupon_service import CouponService
from buildmart.services.payment_service import PaymentService
from buildmart.utils.decorators import role_required
from buildmart.utils.pagination import page_args, page_payload
from buildmart.utils.validators import validate_form


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@orders_bp.route('/', methods=['POST'])
@role_required('user')
def create():
    """
    下单
    Body: distributor_id, items[{product_id, quantity}], shipping_address{...},
          payment_method (Online/COD), coupon_code?, delivery_notes?
    """
    data = _json_body()
    order = OrderService.create_order(
        user=current_user,
        distributor_id=data.get('distributor_id', data.get('distributor')),
        shipping_address=data.get('shipping_address'),
        payment_method=data.get('payment_method'),
        items_data=data.get('items'),
        coupon_code=data.get('coupon_code'),
        delivery_notes=data.get('delivery_notes')
    )
    return jsonify({'success': True, 'message': 'Order placed successfully', 'order': order.to_dict()}), 201


@orders_bp.route('/')
@login_required
def index():
    """调用方可见的订单列表 (按角色限定范围)"""
    page, limit = page_args()
    pagination = OrderService.list_orders(
        current_user,
        status=request.args.get('status'),
        page=page,
        limit=limit
    )
    return jsonify(page_payload(pagination, 'orders'))


@orders_bp.route('/<int:order_id>')
@login_required
def view(order_id):
    order = OrderService.get_order(order_id, actor=current_user)
    return jsonify({'success': True, 'order': order.to_dict()})


@orders_bp.route('/<int:order_id>/cancel', methods=['PUT'])
@role_required('user')
def cancel(order_id):
    form = validate_form(CancelOrderForm())
    order = OrderService.cancel(order_id, current_user, reason=form.reason.data)
    return jsonify({'success': True, 'message': 'Order cancelled successfully', 'order': order.to_dict()})


@orders_bp.route('/apply-coupon', methods=['POST'])
@login_required
def apply_coupon():
    """预览优惠，不核销"""
    form = validate_form(ApplyCouponForm())
    total = form.total_amount.data
    coupon, discount = CouponService.preview_discount(form.coupon_code.data, total)
    return jsonify({
        'success': True,
        'coupon_code': coupon.code,
        'discount': discount,
        'final_amount': round(max(total - discount, 0.0), 2)
    })


# ============== 支付 ==============

@orders_bp.route('/razorpay/create', methods=['POST'])
@role_required('user')
def razorpay_create():
    data = _json_body()
    order, remote = PaymentService.create_gateway_order(data.get('order_id'), current_user)
    return jsonify({
        'success': True,
        'key_id': current_app.config['RAZORPAY_KEY_ID'],
        'razorpay_order': {
            'id': remote.get('id'),
            'amount': remote.get('amount'),
            'currency': remote.get('currency')
        },
        'order': order.to_dict(include_history=False)
    })


@orders_bp.route('/razorpay/verify', methods=['POST'])
@role_required('user')
def razorpay_verify():
    data = _json_body()
    order = PaymentService.verify_payment(
        data.get('order_id'),
        current_user,
        razorpay_order_id=data.get('razorpay_order_id'),
        razorpay_payment_id=data.get('razorpay_payment_id'),
        razorpay_signature=data.get('razorpay_signature')
    )
    return jsonify({'success': True, 'message': 'Payment verified successfully', 'order': order.to_dict()})


@orders_bp.route('/cod/confirm', methods=['POST'])
@role_required('user')
def cod_confirm():
    data = _json_body()
    order = PaymentService.confirm_cod(data.get('order_id'), current_user)
    return jsonify({'success': True, 'message': 'Cash on delivery order confirmed', 'order': order.to_dict()})
