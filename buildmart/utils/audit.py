"""
审计日志工具模块
记录管理后台的优惠券变更和订单状态强制修改
"""
from functools import wraps
from flask import request, current_app
from flask_login import current_user
from buildmart.models.sys import AuditLog
from buildmart.extensions import db
from buildmart.utils.permissions import actor_kind
import json


def log_action(module, action, details=None):
    """
    记录审计日志
    :param module: 模块名称 (如 'coupons', 'orders')
    :param action: 操作名称 (如 'create_coupon', 'override_status')
    :param details: 详细信息 (dict)
    """
    if current_user.is_authenticated:
        log = AuditLog(
            actor_id=current_user.id,
            actor_kind=actor_kind(current_user),
            module=module,
            action=action,
            ip_address=request.remote_addr,
            details=json.dumps(details, ensure_ascii=False, default=str) if details else None
        )
        db.session.add(log)
        db.session.commit()
        current_app.logger.info(f'Audit {module}.{action} by {log.actor_kind}:{log.actor_id}')


def audit_log(module, action):
    """
    审计日志装饰器，视图执行成功后记录
    使用方法:
    @audit_log('coupons', 'delete_coupon')
    def delete_coupon(coupon_id):
        pass
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            result = f(*args, **kwargs)
            log_action(module, action, {'args': kwargs} if kwargs else None)
            return result
        return decorated_function
    return decorator
