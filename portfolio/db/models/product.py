from sqlalchemy import Column, Integer, String

from portfolio.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(256), nullable=False)
