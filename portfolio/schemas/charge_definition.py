from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

IDENTIFIER_PATTERN = r"^[A-Za-z0-9._~-]+$"


class Action(str, Enum):
    OPEN = "OPEN"
    APPROVE = "APPROVE"
    DENY = "DENY"
    CLOSE = "CLOSE"
    DISBURSE = "DISBURSE"
    APPLY_INTEREST = "APPLY_INTEREST"
    ACCEPT_PAYMENT = "ACCEPT_PAYMENT"
    MARK_LATE = "MARK_LATE"
    WRITE_OFF = "WRITE_OFF"
    RECOVER = "RECOVER"


class ChargeMethod(str, Enum):
    FIXED = "FIXED"
    PROPORTIONAL = "PROPORTIONAL"
    INTEREST = "INTEREST"


class CycleSizeUnit(str, Enum):
    DAYS = "DAYS"
    WEEKS = "WEEKS"
    MONTHS = "MONTHS"
    YEARS = "YEARS"


class ChargeDefinition(BaseModel):
    """A charge rule attached to a product.

    Serialized with camelCase keys (``readOnly``, ``chargeAction``...). Instances
    are frozen so they can be carried inside immutable commands.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    identifier: str = Field(
        ..., min_length=1, max_length=32, pattern=IDENTIFIER_PATTERN
    )
    name: str = Field(..., min_length=1, max_length=256)
    description: str | None = Field(None, max_length=2048)
    accrue_action: Action | None = None
    charge_action: Action
    amount: Decimal = Field(..., ge=0, max_digits=19, decimal_places=4)
    charge_method: ChargeMethod
    proportional_to: str | None = Field(None, max_length=32)
    from_account_designator: str | None = Field(None, max_length=32)
    accrual_account_designator: str | None = Field(None, max_length=32)
    to_account_designator: str | None = Field(None, max_length=32)
    for_cycle_size_unit: CycleSizeUnit | None = None
    read_only: bool = False

    @model_validator(mode="after")
    def validate_proportional_to(self):
        """Proportional charges must name what they are proportional to."""
        if self.charge_method == ChargeMethod.PROPORTIONAL and not self.proportional_to:
            raise ValueError("proportionalTo is required for PROPORTIONAL charges")
        return self


class StoredChargeDefinition(BaseModel):
    """A charge definition as read back from the store.

    Carries no request-only constraints (identifier pattern, lengths,
    PROPORTIONAL rule), so system-seeded rows outside them are still readable.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    identifier: str
    name: str
    description: str | None = None
    accrue_action: Action | None = None
    charge_action: Action
    amount: Decimal
    charge_method: ChargeMethod
    proportional_to: str | None = None
    from_account_designator: str | None = None
    accrual_account_designator: str | None = None
    to_account_designator: str | None = None
    for_cycle_size_unit: CycleSizeUnit | None = None
    read_only: bool = False
