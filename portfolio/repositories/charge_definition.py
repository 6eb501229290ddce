from typing import Any

from sqlalchemy.orm import Session

from portfolio.db.models.charge_definition import (
    ChargeDefinition as ChargeDefinitionModel,
)
from portfolio.db.models.product import Product as ProductModel
from portfolio.errors import NotFoundError

# Columns copied from a definition payload on create/change.
_DEFINITION_FIELDS = (
    "name",
    "description",
    "accrue_action",
    "charge_action",
    "amount",
    "charge_method",
    "proportional_to",
    "from_account_designator",
    "accrual_account_designator",
    "to_account_designator",
    "for_cycle_size_unit",
    "read_only",
)


def get_charge_definitions_by_product(
    db: Session, product_identifier: str
) -> list[ChargeDefinitionModel]:
    """Get all charge definitions of a product, in insertion order."""
    return (
        db.query(ChargeDefinitionModel)
        .join(ProductModel)
        .filter(ProductModel.identifier == product_identifier)
        .order_by(ChargeDefinitionModel.id)
        .all()
    )


def get_charge_definition_by_identifier(
    db: Session, product_identifier: str, identifier: str
) -> ChargeDefinitionModel | None:
    """Get a charge definition by product identifier and its own identifier."""
    return (
        db.query(ChargeDefinitionModel)
        .join(ProductModel)
        .filter(
            ProductModel.identifier == product_identifier,
            ChargeDefinitionModel.identifier == identifier,
        )
        .first()
    )


def create_charge_definition(
    db: Session,
    product_id: int,
    identifier: str,
    commit: bool = True,
    **fields: Any,
) -> ChargeDefinitionModel:
    """Create a new charge definition in the database. Pure data access - no business logic."""
    db_definition = ChargeDefinitionModel(
        product_id=product_id,
        identifier=identifier,
        **{key: fields[key] for key in _DEFINITION_FIELDS if key in fields},
    )
    db.add(db_definition)
    if commit:
        db.commit()
        db.refresh(db_definition)
    else:
        db.flush()
    return db_definition


def update_charge_definition(
    db: Session,
    product_identifier: str,
    identifier: str,
    commit: bool = True,
    **fields: Any,
) -> ChargeDefinitionModel:
    """
    Update a charge definition. Only updates fields that are explicitly provided.

    The identifier and owning product never change.
    """
    definition = get_charge_definition_by_identifier(db, product_identifier, identifier)
    if not definition:
        raise NotFoundError("Charge definition not found")

    for key in _DEFINITION_FIELDS:
        if key in fields:
            setattr(definition, key, fields[key])

    if commit:
        db.commit()
        db.refresh(definition)
    else:
        db.flush()
    return definition


def delete_charge_definition(
    db: Session, product_identifier: str, identifier: str, commit: bool = True
) -> None:
    """Delete a charge definition."""
    definition = get_charge_definition_by_identifier(db, product_identifier, identifier)
    if not definition:
        raise NotFoundError("Charge definition not found")

    db.delete(definition)
    if commit:
        db.commit()
    else:
        db.flush()
