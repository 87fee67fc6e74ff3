from flask import jsonify, request
from flask_login import current_user
from buildmart.blueprints.distributor import distributor_bp
from buildmart.blueprints.distributor.forms import StatusUpdateForm, ApproveOrderForm, RejectOrderForm
from buildmart.services.order_service import OrderService
from buildmart.utils.decorators import role_required
from buildmart.utils.pagination import page_args, page_payload
from buildmart.utils.validators import validate_form


@distributor_bp.route('/orders')
@role_required('distributor')
def orders():
    """经销商收到的订单"""
    page, limit = page_args()
    pagination = OrderService.list_orders(
        current_user,
        status=request.args.get('status'),
        page=page,
        limit=limit
    )
    return jsonify(page_payload(pagination, 'orders'))


@distributor_bp.route('/orders/<int:order_id>')
@role_required('distributor')
def view_order(order_id):
    order = OrderService.get_order(order_id, actor=current_user)
    return jsonify({'success': True, 'order': order.to_dict()})


@distributor_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@role_required('distributor')
def update_status(order_id):
    form = validate_form(StatusUpdateForm())
    order = OrderService.update_status(
        order_id,
        str(form.status.data).strip(),
        current_user,
        note=form.note.data or None,
        tracking_number=form.tracking_number.data or None,
        tracking_url=form.tracking_url.data or None,
        estimated_delivery=form.estimated_delivery.data
    )
    return jsonify({'success': True, 'message': 'Order status updated successfully', 'order': order.to_dict()})


@distributor_bp.route('/orders/<int:order_id>/approve', methods=['PUT'])
@role_required('distributor')
def approve(order_id):
    form = validate_form(ApproveOrderForm())
    order = OrderService.approve(
        order_id, current_user,
        delivery_charge=form.delivery_charge.data,
        note=form.note.data or None
    )
    return jsonify({'success': True, 'message': 'Order approved successfully', 'order': order.to_dict()})


@distributor_bp.route('/orders/<int:order_id>/reject', methods=['PUT'])
@role_required('distributor')
def reject(order_id):
    form = validate_form(RejectOrderForm())
    order = OrderService.reject(order_id, current_user, form.reason.data)
    return jsonify({'success': True, 'message': 'Order rejected', 'order': order.to_dict()})
