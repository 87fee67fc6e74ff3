from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from buildmart.extensions import db
from .base import BaseModel


class AccountMixin(UserMixin):
    """用户与经销商共用的账号字段和密码逻辑"""
    email = db.Column(db.String(128), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(256))
    phone = db.Column(db.String(20))
    is_active_account = db.Column(db.Boolean, default=True)  # 封号开关
    last_login = db.Column(db.DateTime)

    __hidden_fields__ = ('password_hash',)

    @property
    def password(self):
        raise AttributeError('password is not a readable attribute')

    @password.setter
    def password(self, password):
        self.password_hash = generate_password_hash(password)

    def verify_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def get_id(self):
        # 用户表和经销商表主键可能重复，会话 ID 带上角色前缀
        return f'{self.role}:{self.id}'

    # Flask-Login 必须属性覆盖
    @property
    def is_active(self):
        return bool(self.is_active_account) and not self.is_deleted


class User(AccountMixin, BaseModel):
    """买家 / 管理员"""
    __tablename__ = 'auth_users'

    ROLE_USER = 'user'
    ROLE_ADMIN = 'admin'

    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), default=ROLE_USER, nullable=False)

    orders = db.relationship('Order', backref='user', lazy='dynamic')

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    def __repr__(self):
        return f'<User {self.email}>'


class Distributor(AccountMixin, BaseModel):
    """经销商 (建材供应方)"""
    __tablename__ = 'auth_distributors'

    role = 'distributor'

    business_name = db.Column(db.String(128), nullable=False)
    owner_name = db.Column(db.String(128))
    city = db.Column(db.String(64))
    state = db.Column(db.String(64))
    pincode = db.Column(db.String(6))

    # 经销商需要管理员审核后才能登录
    is_approved = db.Column(db.Boolean, default=False)

    products = db.relationship('Product', backref='distributor', lazy='dynamic')
    orders = db.relationship('Order', backref='distributor', lazy='dynamic')

    is_admin = False

    def __repr__(self):
        return f'<Distributor {self.business_name}>'
