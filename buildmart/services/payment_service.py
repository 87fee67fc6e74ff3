"""支付服务 - 在线支付 (Razorpay) 与货到付款"""
import json
from datetime import datetime
from flask import current_app
from buildmart.extensions import db
from buildmart.exceptions import ValidationError
from buildmart.models.trade import Order
from buildmart.services.order_service import OrderService
from buildmart.services.payment_gateway import (
    RazorpayGateway, verify_payment_signature, verify_webhook_signature
)
from buildmart.utils import permissions


class PaymentService:

    @staticmethod
    def gateway():
        return RazorpayGateway.from_config()

    @staticmethod
    def _get_payable_order(order_id, actor, method):
        if not order_id:
            raise ValidationError('Order ID is required')
        order = OrderService.get_order(order_id)
        permissions.ensure_owner(actor, order)
        if order.payment_method != method:
            label = 'Online' if method == Order.METHOD_ONLINE else 'Cash on Delivery'
            raise ValidationError(f'Order payment method is not {label}')
        return order

    @staticmethod
    def create_gateway_order(order_id, actor):
        """为在线支付订单创建远端支付单，返回网关响应"""
        order = PaymentService._get_payable_order(order_id, actor, Order.METHOD_ONLINE)
        if order.payment_status == Order.PAYMENT_PAID:
            raise ValidationError('Order is already paid')
        if order.order_status == Order.STATUS_CANCELLED:
            raise ValidationError('Cannot pay for a cancelled order')

        remote = PaymentService.gateway().create_order(
            amount=order.total_amount,
            currency=current_app.config['PAYMENT_CURRENCY'],
            receipt=order.order_number,
            notes={'order_id': str(order.id), 'order_number': order.order_number}
        )
        order.razorpay_order_id = remote['id']
        db.session.commit()
        current_app.logger.info(f'Razorpay order {remote["id"]} created for {order.order_number}')
        return order, remote

    @staticmethod
    def verify_payment(order_id, actor, razorpay_order_id, razorpay_payment_id, razorpay_signature):
        """
        校验支付签名
        签名不符：支付状态置为 failed，订单其余字段不变
        签名通过：记录支付信息，pending 订单推进到 confirmed
        """
        if not all([order_id, razorpay_order_id, razorpay_payment_id, razorpay_signature]):
            raise ValidationError('All payment verification fields are required')

        order = PaymentService._get_payable_order(order_id, actor, Order.METHOD_ONLINE)
        if order.payment_status == Order.PAYMENT_PAID:
            raise ValidationError('Order is already paid')
        if order.order_status == Order.STATUS_CANCELLED:
            raise ValidationError('Cannot pay for a cancelled order')

        valid = verify_payment_signature(
            current_app.config['RAZORPAY_KEY_SECRET'],
            razorpay_order_id, razorpay_payment_id, razorpay_signature
        )
        if valid and order.razorpay_order_id and order.razorpay_order_id != razorpay_order_id:
            valid = False

        if not valid:
            order.payment_status = Order.PAYMENT_FAILED
            db.session.commit()
            current_app.logger.warning(f'Payment verification failed for {order.order_number}')
            raise ValidationError('Payment verification failed. Please try again.')

        try:
            order.razorpay_order_id = razorpay_order_id
            order.razorpay_signature = razorpay_signature
            PaymentService._record_capture(order, razorpay_payment_id, actor)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Payment {razorpay_payment_id} verified for {order.order_number}')
        return order

    @staticmethod
    def confirm_cod(order_id, actor):
        """确认货到付款：支付状态保持 pending，pending 订单推进到 confirmed"""
        order = PaymentService._get_payable_order(order_id, actor, Order.METHOD_COD)
        if order.order_status == Order.STATUS_CANCELLED:
            raise ValidationError('Cannot confirm a cancelled order')

        try:
            order.payment_status = Order.PAYMENT_PENDING
            if order.order_status == Order.STATUS_PENDING:
                OrderService.apply_transition(
                    order, Order.STATUS_CONFIRMED, actor, note='Cash on delivery confirmed')
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    @staticmethod
    def _record_capture(order, payment_id, actor=None):
        """
        记录一次成功扣款 (不提交事务)
        pending 订单推进到 confirmed；订单已取消则登记退款
        """
        order.razorpay_payment_id = payment_id or order.razorpay_payment_id
        order.payment_status = Order.PAYMENT_PAID
        order.paid_at = order.paid_at or datetime.utcnow()
        if order.order_status == Order.STATUS_CANCELLED:
            OrderService.queue_refund(order)
        elif order.order_status == Order.STATUS_PENDING:
            OrderService.apply_transition(order, Order.STATUS_CONFIRMED, actor, note='Payment received')
        return order

    # ============== Webhook ==============

    @staticmethod
    def handle_webhook(raw_body, signature):
        """
        处理网关异步通知
        :return: (event_name, order 或 None)
        """
        if not verify_webhook_signature(current_app.config['RAZORPAY_WEBHOOK_SECRET'], raw_body, signature):
            raise ValidationError('Invalid webhook signature')

        try:
            payload = json.loads(raw_body) if isinstance(raw_body, (bytes, str)) else raw_body
        except ValueError:
            raise ValidationError('Malformed webhook payload')
        if not isinstance(payload, dict):
            raise ValidationError('Malformed webhook payload')

        event = payload.get('event', '')
        entities = payload.get('payload') or {}
        order = None

        try:
            if event in ('payment.captured', 'payment.failed'):
                payment = (entities.get('payment') or {}).get('entity') or {}
                order = Order.query.filter_by(razorpay_order_id=payment.get('order_id')).first() \
                    if payment.get('order_id') else None
                if order is not None:
                    if event == 'payment.captured':
                        if order.payment_status != Order.PAYMENT_PAID:
                            PaymentService._record_capture(order, payment.get('id'))
                    elif order.payment_status != Order.PAYMENT_PAID:
                        order.payment_status = Order.PAYMENT_FAILED
            elif event in ('refund.processed', 'refund.failed'):
                refund = (entities.get('refund') or {}).get('entity') or {}
                order = Order.query.filter_by(razorpay_payment_id=refund.get('payment_id')).first() \
                    if refund.get('payment_id') else None
                if order is not None:
                    if event == 'refund.processed':
                        amount = refund.get('amount')
                        OrderService.settle_refund(
                            order, refund.get('id'), amount=amount / 100 if amount else None)
                    elif order.refund_status != Order.REFUND_PROCESSED:
                        order.refund_status = Order.REFUND_FAILED

            if order is None:
                current_app.logger.info(f'Webhook {event or "<none>"} ignored')
                return event, None
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Webhook {event}: {order.order_number} payment is {order.payment_status}')
        # 取消后才到账的款项立即退回
        OrderService.request_refund(order)
        return event, order
