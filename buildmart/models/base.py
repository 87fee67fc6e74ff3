from datetime import datetime
from buildmart.extensions import db
from buildmart.exceptions import NotFoundError


class BaseModel(db.Model):
    """
    BuildMart 模型基类
    包含：ID主键, 创建时间, 更新时间, 软删除标记, 序列化方法
    """
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 软删除标记：记录只做清理标记，不做物理删除
    is_deleted = db.Column(db.Boolean, default=False, index=True)

    # 序列化时隐藏的字段
    __hidden_fields__ = ()

    @classmethod
    def get_or_raise(cls, record_id, message=None):
        """按主键获取记录，不存在（或已软删除）时抛出 NotFoundError"""
        record = db.session.get(cls, record_id) if record_id is not None else None
        if record is None or record.is_deleted:
            raise NotFoundError(message or f'{cls.__name__} not found')
        return record

    def save(self):
        """保存到数据库"""
        db.session.add(self)
        db.session.commit()

    def delete(self, soft=True):
        """删除数据（默认软删除）"""
        if soft:
            self.is_deleted = True
            self.save()
        else:
            db.session.delete(self)
            db.session.commit()

    def to_dict(self):
        """
        通用序列化方法：将模型转换为字典，便于 API 返回 JSON。
        过滤掉以 '_' 开头的私有属性和 __hidden_fields__。
        """
        data = {}
        for c in self.__table__.columns:
            if c.name.startswith('_') or c.name in self.__hidden_fields__:
                continue
            val = getattr(self, c.name)
            if isinstance(val, datetime):
                data[c.name] = val.isoformat()
            else:
                data[c.name] = val
        return data
