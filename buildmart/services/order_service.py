"""
订单引擎
下单定价、状态机流转、经销商审核/驳回、买家取消、库存对账
"""
import uuid
from datetime import datetime
from flask import current_app
from buildmart.extensions import db
from buildmart.exceptions import ValidationError, NotFoundError, PaymentGatewayError
from buildmart.models.auth import Distributor
from buildmart.models.trade import Order, OrderItem, OrderStatusHistory
from buildmart.services.coupon_service import CouponService
from buildmart.services.inventory_service import InventoryService
from buildmart.services.payment_gateway import RazorpayGateway
from buildmart.utils import permissions
from buildmart.utils.validators import normalize_shipping_address


class OrderService:

    @staticmethod
    def generate_order_no():
        """生成订单号 (ORD-YYYYMMDD-XXXXXXXX)"""
        date_str = datetime.now().strftime('%Y%m%d')
        random_str = uuid.uuid4().hex[:8].upper()
        return f"ORD-{date_str}-{random_str}"

    @staticmethod
    def calculate_delivery_charge(subtotal):
        """运费策略：满额包邮，否则收取固定运费"""
        if subtotal > current_app.config['FREE_DELIVERY_THRESHOLD']:
            return 0.0
        return float(current_app.config['DELIVERY_CHARGE'])

    @staticmethod
    def get_order(order_id, actor=None) -> Order:
        order = db.session.get(Order, order_id) if order_id is not None else None
        if not order or order.is_deleted:
            raise NotFoundError('Order not found')
        if actor is not None:
            permissions.ensure_can_view(actor, order)
        return order

    # ============== 下单 ==============

    @staticmethod
    def _parse_quantity(value):
        if isinstance(value, bool):
            raise ValidationError('Quantity must be a whole number')
        try:
            quantity = int(value)
        except (TypeError, ValueError):
            raise ValidationError('Quantity must be a whole number')
        if quantity != value and str(quantity) != str(value).strip():
            raise ValidationError('Quantity must be a whole number')
        if quantity < 1:
            raise ValidationError('Quantity must be at least 1')
        return quantity

    @staticmethod
    def create_order(user, distributor_id, shipping_address, payment_method, items_data,
                     coupon_code=None, delivery_notes=None) -> Order:
        """
        创建订单
        :param items_data: [{'product_id': 1, 'quantity': 2}, ...]
        单价一律取商品当前售价，忽略客户端传入的价格
        """
        # 1. 必填项 (按顺序，第一条错误即返回)
        if not items_data or not isinstance(items_data, (list, tuple)):
            raise ValidationError('Order must contain at least one item')
        if not shipping_address:
            raise ValidationError('Shipping address is required')
        if not payment_method:
            raise ValidationError('Payment method is required')
        if not distributor_id:
            raise ValidationError('Distributor is required')
        if payment_method not in Order.PAYMENT_METHODS:
            raise ValidationError('Payment method must be either Online or COD')
        if coupon_code is not None and not isinstance(coupon_code, str):
            raise ValidationError('Coupon code must be a string')
        if delivery_notes is not None and not isinstance(delivery_notes, str):
            raise ValidationError('Delivery notes must be a string')
        if delivery_notes and len(delivery_notes) > 500:
            raise ValidationError('Delivery notes cannot exceed 500 characters')

        address = normalize_shipping_address(shipping_address)
        distributor = db.session.get(Distributor, distributor_id)
        if not distributor or distributor.is_deleted:
            raise NotFoundError('Distributor not found')
        if not distributor.is_approved or not distributor.is_active:
            raise ValidationError('Distributor is not accepting orders')

        try:
            # 2. 逐项校验商品并锁定快照价格
            order = Order(
                order_number=OrderService.generate_order_no(),
                user_id=user.id,
                distributor_id=distributor.id,
                shipping_address=address,
                payment_method=payment_method,
                delivery_notes=delivery_notes,
                order_status=Order.STATUS_PENDING,
                approval_status=Order.APPROVAL_PENDING,
                payment_status=Order.PAYMENT_PENDING,
            )
            subtotal = 0.0
            for item in items_data:
                product_id = item.get('product_id', item.get('product')) if isinstance(item, dict) else None
                if not product_id or item.get('quantity') in (None, ''):
                    raise ValidationError('Each item must have product and quantity')
                quantity = OrderService._parse_quantity(item.get('quantity'))

                product = InventoryService.get_product(product_id)
                if not product.is_active:
                    raise ValidationError(f'Product {product.name} is not available')
                if product.stock < quantity:
                    raise ValidationError(
                        f'Insufficient stock for {product.name}. Available: {product.stock}')

                order.items.append(OrderItem(
                    product_id=product.id,
                    distributor_id=product.distributor_id,
                    quantity=quantity,
                    price=product.price,
                    name=product.name,
                    image=product.image
                ))
                subtotal += product.price * quantity

            # 3. 计算价格
            order.subtotal = round(subtotal, 2)
            order.discount = 0.0
            if coupon_code:
                coupon, discount = CouponService.apply_coupon(coupon_code, order.subtotal)
                order.coupon_id = coupon.id
                order.coupon_code = coupon.code
                order.discount = min(discount, order.subtotal)
            order.delivery_charge = OrderService.calculate_delivery_charge(order.subtotal)
            order.recompute_total()

            order.status_history.append(OrderStatusHistory(
                status=Order.STATUS_PENDING,
                note='Order placed',
                actor_id=user.id,
                actor_kind=permissions.actor_kind(user)
            ))
            db.session.add(order)
            db.session.flush()

            # 4. 扣减库存 (与订单同一事务)
            InventoryService.reserve_items(order)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        InventoryService.invalidate_catalog()
        current_app.logger.info(
            f'Order {order.order_number} created: user={user.id} distributor={distributor.id} '
            f'total={order.total_amount:.2f}')
        return order

    # ============== 状态机 ==============

    @staticmethod
    def validate_transition(current, new_status):
        """
        状态流转规则
        - delivered / cancelled 为终态，不再接受任何流转
        - 非终态可以直接取消
        - 其余只能向前流转，允许跳级
        """
        if new_status not in Order.STATUSES:
            raise ValidationError(f'Order status must be one of: {", ".join(Order.STATUSES)}')
        if current in Order.TERMINAL_STATUSES:
            raise ValidationError(f'Cannot transition from {current} to {new_status}: order is already {current}')
        if new_status == Order.STATUS_CANCELLED:
            return
        if Order.STATUS_FLOW.index(new_status) <= Order.STATUS_FLOW.index(current):
            raise ValidationError(f'Cannot transition from {current} to {new_status}')

    @staticmethod
    def apply_transition(order, new_status, actor, note=None, reason=None):
        """
        执行一次状态流转并追加一条状态流水 (不提交事务)
        进入 cancelled 时写取消记录、回补库存，已支付订单登记待退款
        actor 为 None 表示网关回调等系统操作
        """
        OrderService.validate_transition(order.order_status, new_status)
        now = datetime.utcnow()
        kind = permissions.actor_kind(actor)
        actor_id = actor.id if actor is not None else None
        previous = order.order_status
        order.order_status = new_status

        if new_status == Order.STATUS_CANCELLED:
            order.cancellation_reason = reason or note or f'Cancelled by {kind.lower()}'
            order.cancelled_at = now
            order.cancelled_by_id = actor_id
            order.cancelled_by_kind = kind
            InventoryService.restore_items(order)
            OrderService.queue_refund(order)
        elif new_status == Order.STATUS_DELIVERED:
            order.actual_delivery = now

        order.status_history.append(OrderStatusHistory(
            status=new_status,
            timestamp=now,
            note=note or f'Status updated to {new_status}',
            actor_id=actor_id,
            actor_kind=kind
        ))
        current_app.logger.info(
            f'Order {order.order_number}: {previous} -> {new_status} by {kind} {actor_id}')
        return order

    @staticmethod
    def update_status(order_id, new_status, actor, note=None, tracking_number=None,
                      tracking_url=None, estimated_delivery=None) -> Order:
        """经销商 / 管理员更新订单状态"""
        order = OrderService.get_order(order_id)
        permissions.ensure_can_manage(actor, order)
        try:
            OrderService.apply_transition(order, new_status, actor, note=note)
            if tracking_number:
                order.tracking_number = tracking_number
            if tracking_url:
                order.tracking_url = tracking_url
            if estimated_delivery:
                order.estimated_delivery = estimated_delivery
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        if new_status == Order.STATUS_CANCELLED:
            InventoryService.invalidate_catalog()
            OrderService.request_refund(order)
        return order

    # ============== 审核 / 驳回 ==============

    @staticmethod
    def _ensure_approval_pending(order):
        if order.approval_status != Order.APPROVAL_PENDING:
            raise ValidationError(f'Order has already been {order.approval_status}')

    @staticmethod
    def approve(order_id, actor, delivery_charge=None, note=None) -> Order:
        """
        审核通过
        可覆盖运费并重算总额；订单仍为 pending 时推进到 confirmed
        """
        order = OrderService.get_order(order_id)
        permissions.ensure_can_manage(actor, order)
        OrderService._ensure_approval_pending(order)
        if order.order_status == Order.STATUS_CANCELLED:
            raise ValidationError('Cannot approve a cancelled order')
        if delivery_charge is not None and delivery_charge < 0:
            raise ValidationError('Delivery charge cannot be negative')

        try:
            order.approval_status = Order.APPROVAL_APPROVED
            order.approved_at = datetime.utcnow()
            order.approved_by_id = actor.id
            order.approved_by_kind = permissions.actor_kind(actor)

            if delivery_charge is not None:
                order.delivery_charge = round(float(delivery_charge), 2)
                order.recompute_total()

            if order.order_status == Order.STATUS_PENDING:
                OrderService.apply_transition(
                    order, Order.STATUS_CONFIRMED, actor, note=note or 'Order approved')
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Order {order.order_number} approved by {order.approved_by_kind} {actor.id}')
        return order

    @staticmethod
    def reject(order_id, actor, reason) -> Order:
        """驳回：审核状态置为 rejected，并取消订单"""
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError('Rejection reason is required')

        order = OrderService.get_order(order_id)
        permissions.ensure_can_manage(actor, order)
        OrderService._ensure_approval_pending(order)
        if order.is_terminal:
            raise ValidationError(f'Cannot reject an order that is already {order.order_status}')

        try:
            order.approval_status = Order.APPROVAL_REJECTED
            order.rejection_reason = reason
            order.rejected_at = datetime.utcnow()
            order.rejected_by_id = actor.id
            order.rejected_by_kind = permissions.actor_kind(actor)
            OrderService.apply_transition(
                order, Order.STATUS_CANCELLED, actor, note=f'Order rejected: {reason}', reason=reason)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        InventoryService.invalidate_catalog()
        current_app.logger.info(f'Order {order.order_number} rejected: {reason}')
        return OrderService.request_refund(order)

    # ============== 买家取消 ==============

    @staticmethod
    def cancel(order_id, actor, reason=None) -> Order:
        """买家取消：仅 pending / confirmed / processing 可取消"""
        order = OrderService.get_order(order_id)
        permissions.ensure_owner(actor, order, 'You are not authorized to cancel this order')
        if not order.can_be_cancelled:
            raise ValidationError('Order cannot be cancelled in current status')

        reason = (reason or '').strip() or 'Cancelled by user'
        try:
            OrderService.apply_transition(order, Order.STATUS_CANCELLED, actor, note=reason, reason=reason)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        InventoryService.invalidate_catalog()
        return OrderService.request_refund(order)

    # ============== 退款 ==============

    @staticmethod
    def queue_refund(order):
        """已支付的订单被取消：登记全额待退款 (不提交事务)"""
        if order.payment_status != Order.PAYMENT_PAID or order.refund_status != Order.REFUND_NONE:
            return False
        order.refund_status = Order.REFUND_PENDING
        order.refund_amount = order.total_amount
        return True

    @staticmethod
    def request_refund(order):
        """
        向网关提交待退款 (订单事务提交之后调用)
        网关失败时退款记为 failed，订单取消结果不受影响，可由管理员重试
        """
        if order.refund_status != Order.REFUND_PENDING or order.razorpay_refund_id:
            return order
        try:
            remote = RazorpayGateway.from_config().create_refund(
                order.razorpay_payment_id,
                amount=order.refund_amount,
                notes={'order_number': order.order_number}
            )
        except PaymentGatewayError as e:
            order.refund_status = Order.REFUND_FAILED
            db.session.commit()
            current_app.logger.error(f'Refund for {order.order_number} failed: {e.message}')
            return order

        order.razorpay_refund_id = remote.get('id')
        if remote.get('status') == 'processed':
            OrderService.settle_refund(order, remote.get('id'))
        db.session.commit()
        current_app.logger.info(f'Refund {order.razorpay_refund_id} requested for {order.order_number}')
        return order

    @staticmethod
    def settle_refund(order, refund_id=None, amount=None):
        """网关确认退款完成 (不提交事务)"""
        order.razorpay_refund_id = refund_id or order.razorpay_refund_id
        if amount is not None:
            order.refund_amount = amount
        elif not order.refund_amount:
            order.refund_amount = order.total_amount
        order.refund_status = Order.REFUND_PROCESSED
        order.payment_status = Order.PAYMENT_REFUNDED
        order.refunded_at = datetime.utcnow()
        return order

    @staticmethod
    def retry_refund(order_id, actor) -> Order:
        """管理员重新提交失败的退款"""
        order = OrderService.get_order(order_id)
        permissions.ensure(permissions.is_admin(actor), 'Only admins can retry refunds')
        if order.refund_status != Order.REFUND_FAILED:
            raise ValidationError('Order has no failed refund to retry')
        order.refund_status = Order.REFUND_PENDING
        order.razorpay_refund_id = None
        db.session.commit()
        return OrderService.request_refund(order)

    # ============== 查询 ==============

    @staticmethod
    def list_orders(actor, status=None, payment_status=None, page=1, limit=20):
        """按调用方角色限定范围的订单列表"""
        query = Order.query.filter_by(is_deleted=False)
        if permissions.role_of(actor) == 'distributor':
            query = query.filter_by(distributor_id=actor.id)
        elif not permissions.is_admin(actor):
            query = query.filter_by(user_id=actor.id)

        # 非法筛选值直接忽略
        if status in Order.STATUSES:
            query = query.filter_by(order_status=status)
        if payment_status in Order.PAYMENT_STATUSES:
            query = query.filter_by(payment_status=payment_status)

        return query.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
            page=page, per_page=limit, error_out=False)
