# dream_interpreter/infrastructure/db/meta.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every ORM entity."""
