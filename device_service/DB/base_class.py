"""
device_service/DB/base_class.py
=================================
SQLAlchemy Base Model Definition
=================================

Declarative base for the registry models (SQLAlchemy 2.0 style). Table names
default to the lowercase class name; models may override __tablename__.

Usage Example:
-------------
    from device_service.DB.base_class import Base
    from sqlalchemy import Column, Integer, Text

    class Device(Base):
        __tablename__ = "devices"
        id = Column(Integer, primary_key=True)
        name = Column(Text, nullable=False)
"""

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models in the application."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()
