"""
订单权限控制
订单引擎在每个操作入口调用这里的检查，路由层无需重复校验归属
"""
from buildmart.exceptions import AuthorizationError


def role_of(actor):
    return getattr(actor, 'role', None)


def is_admin(actor):
    return role_of(actor) == 'admin'


def actor_kind(actor):
    """操作人类型：User / Distributor / Admin，网关回调等无操作人时为 System"""
    from buildmart.models.trade import Order
    if actor is None:
        return Order.ACTOR_SYSTEM
    role = role_of(actor)
    if role == 'admin':
        return Order.ACTOR_ADMIN
    if role == 'distributor':
        return Order.ACTOR_DISTRIBUTOR
    return Order.ACTOR_USER


def owns_order(actor, order):
    """买家本人的订单"""
    return role_of(actor) == 'user' and order.user_id == actor.id


def serves_order(actor, order):
    """经销商名下的订单"""
    return role_of(actor) == 'distributor' and order.distributor_id == actor.id


def can_view_order(actor, order):
    return is_admin(actor) or owns_order(actor, order) or serves_order(actor, order)


def can_manage_order(actor, order):
    """状态流转、审核、驳回：经销商本人或管理员"""
    return is_admin(actor) or serves_order(actor, order)


def ensure(allowed, message='You are not authorized to access this order'):
    if not allowed:
        raise AuthorizationError(message)


def ensure_can_view(actor, order):
    ensure(can_view_order(actor, order))


def ensure_can_manage(actor, order):
    ensure(can_manage_order(actor, order), 'You are not authorized to update this order')


def ensure_owner(actor, order, message='You are not authorized to access this order'):
    ensure(owns_order(actor, order), message)
