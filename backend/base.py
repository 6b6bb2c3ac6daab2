from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import declarative_base

class DictMixin:
    """
    Mixin providing a standardized dictionary serialization for SQLAlchemy models.

    Decimal money columns are rendered as floats and datetimes as ISO strings so the
    result can be handed straight to jsonify.
    """
    def to_dict(self):
        data = {}
        for c in self.__table__.columns:
            value = getattr(self, c.name)
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[c.name] = value
        return data

Base = declarative_base(cls=DictMixin)
