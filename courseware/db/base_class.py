# Fichier: courseware/db/base_class.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Base class shared by every SQLAlchemy model.
    Its metadata is used to create the schema at startup.
    """
