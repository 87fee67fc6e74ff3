from buildmart.extensions import db
from .base import BaseModel


class Product(BaseModel):
    """建材商品"""
    __tablename__ = 'catalog_products'

    CATEGORIES = ('Cement', 'Steel', 'Bricks', 'Sand', 'Paint', 'Tiles', 'Other')

    name = db.Column(db.String(128), index=True, nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(32), index=True, default='Other')
    unit = db.Column(db.String(32), default='unit')  # 计量单位：袋/吨/块
    image = db.Column(db.String(256), default='')

    price = db.Column(db.Float, default=0.0, nullable=False)  # 当前售价
    stock = db.Column(db.Integer, default=0, nullable=False)  # 可售库存

    distributor_id = db.Column(db.Integer, db.ForeignKey('auth_distributors.id'), index=True)
    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
    )

    def __repr__(self):
        return f'<Product {self.name}>'
