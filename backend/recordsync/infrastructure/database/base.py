"""SQLAlchemy base and table registry."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class whose metadata holds every record table."""

    pass
