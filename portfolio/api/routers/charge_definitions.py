from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portfolio.api.deps import get_command_gateway, get_db, require_permission
from portfolio.core.security import PRODUCT_MANAGEMENT
from portfolio.schemas.charge_definition import ChargeDefinition, StoredChargeDefinition
from portfolio.schemas.command import CommandAccepted
from portfolio.services.charge_definition import (
    change_charge_definition,
    create_charge_definition,
    delete_charge_definition,
    get_charge_definition,
    list_charge_definitions,
)
from portfolio.services.command_gateway import CommandGateway

router = APIRouter(
    prefix="/products/{product_identifier}/charges",
    tags=["charge definitions"],
    dependencies=[Depends(require_permission(PRODUCT_MANAGEMENT))],
)


def _accepted(command) -> CommandAccepted:
    return CommandAccepted(
        command_id=command.id,
        command_type=command.command_type,
        status=command.status,
    )


@router.get("/", response_model=list[StoredChargeDefinition])
def get_all_charge_definitions(
    product_identifier: str,
    db: Session = Depends(get_db),
):
    """
    Get all charge definitions of a product.
    """
    definitions = list_charge_definitions(db, product_identifier)
    return [StoredChargeDefinition.model_validate(definition) for definition in definitions]


@router.post(
    "/", response_model=CommandAccepted, status_code=status.HTTP_202_ACCEPTED
)
def create_new_charge_definition(
    product_identifier: str,
    definition: ChargeDefinition,
    db: Session = Depends(get_db),
    gateway: CommandGateway = Depends(get_command_gateway),
):
    """
    Create a charge definition.

    The request is validated immediately and the creation is queued; the
    definition becomes readable once the command has been applied.
    Charge definitions created through the API cannot be read-only.
    """
    command = create_charge_definition(db, gateway, product_identifier, definition)
    return _accepted(command)


@router.get("/{charge_definition_identifier}", response_model=StoredChargeDefinition)
def get_charge_definition_by_identifier(
    product_identifier: str,
    charge_definition_identifier: str,
    db: Session = Depends(get_db),
):
    """
    Get a charge definition by identifier.
    """
    definition = get_charge_definition(db, product_identifier, charge_definition_identifier)
    return StoredChargeDefinition.model_validate(definition)


@router.put(
    "/{charge_definition_identifier}",
    response_model=CommandAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
def change_charge_definition_by_identifier(
    product_identifier: str,
    charge_definition_identifier: str,
    definition: ChargeDefinition,
    db: Session = Depends(get_db),
    gateway: CommandGateway = Depends(get_command_gateway),
):
    """
    Replace a charge definition.

    Read-only definitions cannot be changed, and the identifier in the body
    must match the one in the path.
    """
    command = change_charge_definition(
        db, gateway, product_identifier, charge_definition_identifier, definition
    )
    return _accepted(command)


@router.delete(
    "/{charge_definition_identifier}",
    response_model=CommandAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
def delete_charge_definition_by_identifier(
    product_identifier: str,
    charge_definition_identifier: str,
    db: Session = Depends(get_db),
    gateway: CommandGateway = Depends(get_command_gateway),
):
    """
    Delete a charge definition. Read-only definitions cannot be deleted.
    """
    command = delete_charge_definition(
        db, gateway, product_identifier, charge_definition_identifier
    )
    return _accepted(command)
