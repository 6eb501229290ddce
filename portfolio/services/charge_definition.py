from sqlalchemy.orm import Session

import portfolio.repositories.charge_definition as charge_definition_repo
import portfolio.repositories.product as product_repo
from portfolio.db.models.charge_definition import (
    ChargeDefinition as ChargeDefinitionModel,
)
from portfolio.db.models.command import ChargeDefinitionCommand as CommandModel
from portfolio.db.models.product import Product as ProductModel
from portfolio.domain.charge_definition_rules import (
    check_creatable,
    check_identifier_unchanged,
    require_mutable,
)
from portfolio.domain.commands import (
    ChangeChargeDefinition,
    CreateChargeDefinition,
    DeleteChargeDefinition,
)
from portfolio.errors import NotFoundError
from portfolio.schemas.charge_definition import ChargeDefinition
from portfolio.services.command_gateway import CommandGateway


def ensure_product_exists(db: Session, product_identifier: str) -> ProductModel:
    """
    Precondition of every charge definition operation.

    Raises:
        NotFoundError: If the product is unknown to the product registry.
    """
    product = product_repo.get_product_by_identifier(db, product_identifier)
    if not product:
        raise NotFoundError("Invalid product referenced.")
    return product


def list_charge_definitions(
    db: Session, product_identifier: str
) -> list[ChargeDefinitionModel]:
    ensure_product_exists(db, product_identifier)
    return charge_definition_repo.get_charge_definitions_by_product(
        db, product_identifier
    )


def get_charge_definition(
    db: Session, product_identifier: str, charge_definition_identifier: str
) -> ChargeDefinitionModel:
    """
    Get one charge definition of a product.

    Raises:
        NotFoundError: If the product or the charge definition does not exist.
    """
    ensure_product_exists(db, product_identifier)

    definition = charge_definition_repo.get_charge_definition_by_identifier(
        db, product_identifier, charge_definition_identifier
    )
    if not definition:
        raise NotFoundError(
            f"No charge definition with the identifier '{charge_definition_identifier}' found."
        )
    return definition


def validate_for_create(
    db: Session, product_identifier: str, candidate: ChargeDefinition
) -> None:
    existing = charge_definition_repo.get_charge_definition_by_identifier(
        db, product_identifier, candidate.identifier
    )
    check_creatable(candidate, existing)


def validate_for_change(
    db: Session,
    product_identifier: str,
    charge_definition_identifier: str,
    candidate: ChargeDefinition,
) -> None:
    _validate_mutable(db, product_identifier, charge_definition_identifier)
    check_identifier_unchanged(charge_definition_identifier, candidate)


def validate_for_delete(
    db: Session, product_identifier: str, charge_definition_identifier: str
) -> None:
    _validate_mutable(db, product_identifier, charge_definition_identifier)


def _validate_mutable(
    db: Session, product_identifier: str, charge_definition_identifier: str
) -> None:
    existing = charge_definition_repo.get_charge_definition_by_identifier(
        db, product_identifier, charge_definition_identifier
    )
    require_mutable(product_identifier, charge_definition_identifier, existing)


def create_charge_definition(
    db: Session,
    gateway: CommandGateway,
    product_identifier: str,
    definition: ChargeDefinition,
) -> CommandModel:
    """
    Validate a new charge definition and queue its creation.

    - Validates product exists
    - Validates definition is not read-only
    - Validates identifier is not used yet within the product

    Returns the accepted command; the definition exists once a worker applies it.
    """
    ensure_product_exists(db, product_identifier)
    validate_for_create(db, product_identifier, definition)

    return gateway.submit(CreateChargeDefinition(product_identifier, definition))


def change_charge_definition(
    db: Session,
    gateway: CommandGateway,
    product_identifier: str,
    charge_definition_identifier: str,
    definition: ChargeDefinition,
) -> CommandModel:
    """
    Validate a replacement charge definition and queue the change.

    - Validates product exists
    - Validates the definition exists and is not read-only
    - Validates the body identifier matches the path identifier
    """
    ensure_product_exists(db, product_identifier)
    validate_for_change(db, product_identifier, charge_definition_identifier, definition)

    return gateway.submit(ChangeChargeDefinition(product_identifier, definition))


def delete_charge_definition(
    db: Session,
    gateway: CommandGateway,
    product_identifier: str,
    charge_definition_identifier: str,
) -> CommandModel:
    """
    Validate and queue deletion of a charge definition.

    - Validates product exists
    - Validates the definition exists and is not read-only
    """
    ensure_product_exists(db, product_identifier)
    validate_for_delete(db, product_identifier, charge_definition_identifier)

    return gateway.submit(
        DeleteChargeDefinition(product_identifier, charge_definition_identifier)
    )
