from functools import wraps
from flask_login import current_user
from buildmart.exceptions import AuthenticationError, AuthorizationError


def role_required(*roles):
    """
    检查当前调用方角色
    用法: @role_required('admin') / @role_required('user', 'admin')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise AuthenticationError('Authentication required')
            if current_user.role not in roles:
                raise AuthorizationError(f'This action requires role: {", ".join(roles)}')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """检查当前调用方是否是管理员"""
    return role_required('admin')(f)
