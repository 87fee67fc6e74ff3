from flask import jsonify, request
from buildmart.blueprints.payments import payments_bp
from buildmart.services.payment_service import PaymentService


@payments_bp.route('/webhook', methods=['POST'])
def webhook():
    """
    Razorpay 异步通知
    签名基于原始请求体计算，不能先解析再序列化
    """
    event, order = PaymentService.handle_webhook(
        request.get_data(),
        request.headers.get('X-Razorpay-Signature', '')
    )
    return jsonify({
        'success': True,
        'event': event,
        'handled': order is not None,
        'order_number': order.order_number if order is not None else None
    })
