from datetime import date, datetime
from decimal import Decimal

from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func


db = SQLAlchemy()
login_manager = LoginManager()


def _json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SerializerMixin:
    """Plain-dict view of a row for JSON responses.

    Columns listed in ``__hidden__`` are never exposed.
    """

    __hidden__: tuple = ()

    def to_dict(self) -> dict:
        return {
            c.key: _json_value(getattr(self, c.key))
            for c in self.__table__.columns
            if c.key not in self.__hidden__
        }


class DatedMixin:
    """Business events carry an optional user supplied ``entry_date``.

    Statements place a row by ``entry_date`` when present, otherwise by the
    day it was recorded.
    """

    entry_date = db.Column(db.Date, nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    @property
    def effective_date(self) -> date:
        if self.entry_date is not None:
            return self.entry_date
        return (self.created_at or datetime.utcnow()).date()

    @classmethod
    def effective_date_column(cls):
        """SQL side of ``effective_date`` for range filters."""
        return func.coalesce(cls.entry_date, func.date(cls.created_at), type_=db.Date)
