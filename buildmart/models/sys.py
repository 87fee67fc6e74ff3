from buildmart.extensions import db
from .base import BaseModel


class AuditLog(BaseModel):
    """管理操作审计"""
    __tablename__ = 'sys_audit_logs'

    actor_id = db.Column(db.Integer, index=True)
    actor_kind = db.Column(db.String(16))  # User / Distributor / Admin
    module = db.Column(db.String(32))  # e.g., 'coupons', 'orders'
    action = db.Column(db.String(64))  # e.g., 'create_coupon', 'override_status'
    ip_address = db.Column(db.String(64))
    details = db.Column(db.Text)  # JSON 详情
