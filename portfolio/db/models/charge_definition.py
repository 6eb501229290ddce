from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from portfolio.db.base import Base


class ChargeDefinition(Base):
    __tablename__ = "charge_definitions"
    __table_args__ = (
        UniqueConstraint(
            "product_id", "identifier", name="uq_charge_definitions_product_identifier"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    identifier = Column(String(32), nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(String(2048), nullable=True)
    accrue_action = Column(String(32), nullable=True)
    charge_action = Column(String(32), nullable=False)
    amount = Column(Numeric(19, 4), nullable=False)
    charge_method = Column(String(32), nullable=False)
    proportional_to = Column(String(32), nullable=True)
    from_account_designator = Column(String(32), nullable=True)
    accrual_account_designator = Column(String(32), nullable=True)
    to_account_designator = Column(String(32), nullable=True)
    for_cycle_size_unit = Column(String(32), nullable=True)
    read_only = Column(Boolean, nullable=False, default=False)

    # Relationships
    product = relationship("Product", backref="charge_definitions")
