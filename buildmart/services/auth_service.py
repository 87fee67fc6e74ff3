"""账号服务 - 注册、登录、Bearer Token 签发与解析"""
from datetime import datetime
from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from buildmart.extensions import db
from buildmart.exceptions import AuthenticationError, ConflictError, ValidationError
from buildmart.models.auth import User, Distributor

TOKEN_SALT = 'buildmart-auth'


class AuthService:

    @staticmethod
    def _serializer():
        return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)

    @staticmethod
    def issue_token(principal) -> str:
        return AuthService._serializer().dumps({'id': principal.id, 'role': principal.role})

    @staticmethod
    def _lookup(role, principal_id):
        model = Distributor if role == 'distributor' else User
        principal = db.session.get(model, principal_id)
        if principal is None or not principal.is_active:
            return None
        # 角色以数据库为准，防止旧 Token 越权
        if model is User and principal.role != role:
            return None
        if model is Distributor and not principal.is_approved:
            return None
        return principal

    @staticmethod
    def resolve_token(token):
        """Token 无效或过期时返回 None，由 Flask-Login 统一处理为 401"""
        try:
            data = AuthService._serializer().loads(token, max_age=current_app.config['AUTH_TOKEN_MAX_AGE'])
        except (SignatureExpired, BadSignature):
            return None
        if not isinstance(data, dict) or 'id' not in data:
            return None
        return AuthService._lookup(data.get('role'), data['id'])

    @staticmethod
    def load_principal(session_id):
        """解析 'role:id' 形式的会话 ID"""
        role, _, raw_id = str(session_id).partition(':')
        if not raw_id.isdigit():
            return None
        return AuthService._lookup(role, int(raw_id))

    @staticmethod
    def register_user(name, email, password, phone=None) -> User:
        email = (email or '').strip().lower()
        if User.query.filter_by(email=email).first():
            raise ConflictError('Email already registered')
        user = User(name=name, email=email, phone=phone, role=User.ROLE_USER)
        user.password = password
        db.session.add(user)
        db.session.commit()
        return user

    @staticmethod
    def login(email, password, account_type='user'):
        """
        校验账号密码
        :param account_type: 'user' (买家/管理员) 或 'distributor'
        :return: (principal, token)
        """
        email = (email or '').strip().lower()
        if account_type not in ('user', 'distributor'):
            raise ValidationError('Account type must be either user or distributor')
        model = Distributor if account_type == 'distributor' else User

        principal = model.query.filter_by(email=email, is_deleted=False).first()
        if principal is None or not principal.verify_password(password):
            raise AuthenticationError('Invalid email or password')
        if not principal.is_active:
            raise AuthenticationError('Your account has been deactivated')
        if model is Distributor and not principal.is_approved:
            raise AuthenticationError('Your distributor account is pending approval')

        principal.last_login = datetime.utcnow()
        db.session.commit()
        return principal, AuthService.issue_token(principal)
