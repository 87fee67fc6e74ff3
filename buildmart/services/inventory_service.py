from buildmart.extensions import db, cache
from buildmart.exceptions import NotFoundError, ValidationError
from buildmart.models.catalog import Product
from buildmart.models.stock import InventoryLog


class InventoryService:
    """
    商品目录边界：查询商品、调整库存
    不提交事务，由调用方 (订单引擎) 统一提交或回滚
    """

    @staticmethod
    def get_product(product_id) -> Product:
        product = db.session.get(Product, product_id) if product_id is not None else None
        if not product or product.is_deleted:
            raise NotFoundError(f'Product {product_id} not found')
        return product

    @staticmethod
    def adjust_stock(product_id: int, delta: int, move_type: str, order=None, remark: str = None) -> int:
        """
        原子化库存调整
        :param delta: 变动值，负数为扣减
        :return: 变动后的库存
        """
        query = Product.query.filter(Product.id == product_id)
        if delta < 0:
            # 条件更新，防止并发超卖
            query = query.filter(Product.stock >= -delta)
        updated = query.update({Product.stock: Product.stock + delta}, synchronize_session=False)

        # 已下架 (软删除) 的商品同样需要回补库存，这里不过滤 is_deleted
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f'Product {product_id} not found')
        db.session.refresh(product, ['stock'])
        if not updated:
            raise ValidationError(f'Insufficient stock for {product.name}. Available: {product.stock}')

        log = InventoryLog(
            transaction_code=order.order_number if order is not None else None,
            order_id=order.id if order is not None else None,
            move_type=move_type,
            product_id=product_id,
            qty_change=delta,
            balance_after=product.stock,
            remark=remark
        )
        db.session.add(log)
        return product.stock

    @staticmethod
    def reserve_items(order):
        """下单扣减库存"""
        for item in order.items:
            InventoryService.adjust_stock(
                item.product_id, -item.quantity, InventoryLog.TYPE_RESERVE,
                order=order, remark=f'Order placed - {order.order_number}'
            )
        order.stock_reserved = True

    @staticmethod
    def restore_items(order):
        """取消订单回补库存，只回补一次"""
        if not order.stock_reserved:
            return False
        for item in order.items:
            InventoryService.adjust_stock(
                item.product_id, item.quantity, InventoryLog.TYPE_RESTORE,
                order=order, remark=f'Order cancelled - {order.order_number}'
            )
        order.stock_reserved = False
        return True

    @staticmethod
    def invalidate_catalog():
        """库存变动后清理商品列表缓存"""
        cache.clear()
