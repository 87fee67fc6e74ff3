from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_caching import Cache

# 初始化扩展对象 (暂不绑定 app)
db = SQLAlchemy()
migrate = Migrate()
cache = Cache()
login_manager = LoginManager()

# REST 接口：不做页面跳转，未登录统一返回 401 JSON
login_manager.session_protection = None


@login_manager.user_loader
def load_user(user_id):
    """Flask-Login 会话加载回调，user_id 形如 'distributor:3'"""
    from buildmart.services.auth_service import AuthService
    return AuthService.load_principal(user_id)


@login_manager.request_loader
def load_user_from_request(request):
    """从 Authorization: Bearer <token> 解析当前调用方"""
    header = request.headers.get('Authorization', '')
    if not header.lower().startswith('bearer '):
        return None
    from buildmart.services.auth_service import AuthService
    return AuthService.resolve_token(header.split(' ', 1)[1].strip())
