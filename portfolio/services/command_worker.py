"""Applies accepted charge definition commands.

Commands are consumed in submission order. A worker claims a command
(PENDING to PROCESSING) before applying it, so when several workers poll
the same table each command is applied at most once. Each command is
re-validated against the current state before it is applied, so a command
that lost a race after acceptance (e.g. two creates of the same identifier)
is rejected here instead of corrupting the store.
"""

import asyncio
import logging
from typing import Any, Callable

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import portfolio.repositories.charge_definition as charge_definition_repo
import portfolio.repositories.command as command_repo
import portfolio.repositories.product as product_repo
from portfolio.db.models.command import APPLIED, REJECTED
from portfolio.db.models.command import ChargeDefinitionCommand as CommandModel
from portfolio.domain.charge_definition_rules import (
    check_creatable,
    check_identifier_unchanged,
    require_mutable,
)
from portfolio.domain.commands import CHANGE, CREATE, DELETE
from portfolio.errors import DomainError, NotFoundError
from portfolio.schemas.charge_definition import ChargeDefinition

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def _definition_fields(definition: ChargeDefinition) -> dict[str, Any]:
    fields = definition.model_dump(mode="json", exclude={"identifier"})
    fields["amount"] = definition.amount
    return fields


def _apply_create(db: Session, product_id: int, command: CommandModel) -> None:
    definition = ChargeDefinition.model_validate(command.payload)
    existing = charge_definition_repo.get_charge_definition_by_identifier(
        db, command.product_identifier, definition.identifier
    )
    check_creatable(definition, existing)
    charge_definition_repo.create_charge_definition(
        db,
        product_id=product_id,
        identifier=definition.identifier,
        commit=False,
        **_definition_fields(definition),
    )


def _apply_change(db: Session, command: CommandModel) -> None:
    definition = ChargeDefinition.model_validate(command.payload)
    existing = charge_definition_repo.get_charge_definition_by_identifier(
        db, command.product_identifier, command.charge_definition_identifier
    )
    require_mutable(
        command.product_identifier, command.charge_definition_identifier, existing
    )
    check_identifier_unchanged(command.charge_definition_identifier, definition)
    charge_definition_repo.update_charge_definition(
        db,
        command.product_identifier,
        command.charge_definition_identifier,
        commit=False,
        **_definition_fields(definition),
    )


def _apply_delete(db: Session, command: CommandModel) -> None:
    existing = charge_definition_repo.get_charge_definition_by_identifier(
        db, command.product_identifier, command.charge_definition_identifier
    )
    require_mutable(
        command.product_identifier, command.charge_definition_identifier, existing
    )
    charge_definition_repo.delete_charge_definition(
        db,
        command.product_identifier,
        command.charge_definition_identifier,
        commit=False,
    )


def apply_command(db: Session, command: CommandModel) -> None:
    """
    Apply one command to the charge definition store without committing.

    Raises:
        DomainError: If the command is no longer admissible.
        ValidationError: If the stored payload is not a valid definition.
    """
    product = product_repo.get_product_by_identifier(db, command.product_identifier)
    if not product:
        raise NotFoundError("Invalid product referenced.")

    if command.command_type == CREATE:
        _apply_create(db, product.id, command)
    elif command.command_type == CHANGE:
        _apply_change(db, command)
    elif command.command_type == DELETE:
        _apply_delete(db, command)
    else:
        raise DomainError(f"Unknown command type '{command.command_type}'")


def _reject(db: Session, command_id: int, reason: str) -> None:
    db.rollback()
    if command_repo.finish_command(db, command_id, REJECTED, reason):
        db.commit()
        logger.warning("Rejected command %s: %s", command_id, reason)
    else:
        db.rollback()
        logger.warning("Command %s was finished elsewhere; rejection dropped", command_id)


def _retry_or_reject(
    db: Session, command_id: int, attempts: int, max_attempts: int, error: SQLAlchemyError
) -> None:
    reason = f"Storage error: {error}"
    if attempts >= max_attempts:
        _reject(db, command_id, f"{reason} (gave up after {attempts} attempts)")
        return

    db.rollback()
    command_repo.release_command(db, command_id, reason)
    db.commit()
    logger.warning(
        "Command %s failed on attempt %s of %s, will retry: %s",
        command_id,
        attempts,
        max_attempts,
        error,
    )


def process_command(
    db: Session, command: CommandModel, max_attempts: int = DEFAULT_MAX_ATTEMPTS
) -> CommandModel:
    """
    Claim, apply and record the outcome of one command.

    A command already claimed or finished by another worker is skipped. A
    storage error other than a constraint violation returns the command to
    PENDING until it has been attempted max_attempts times, then rejects it.
    """
    command_id = command.id
    if not command_repo.claim_command(db, command_id):
        logger.info("Command %s already claimed, skipping", command_id)
        return command

    attempts = command.attempts
    try:
        apply_command(db, command)
    except (DomainError, ValidationError) as e:
        _reject(db, command_id, str(e))
        return command
    except IntegrityError as e:
        # Unique constraint on (product, identifier) lost a race.
        _reject(db, command_id, f"Constraint violation: {e.orig}")
        return command
    except SQLAlchemyError as e:
        _retry_or_reject(db, command_id, attempts, max_attempts, e)
        return command

    if not command_repo.finish_command(db, command_id, APPLIED):
        db.rollback()
        logger.warning("Command %s was finished elsewhere; changes rolled back", command_id)
        return command

    db.commit()
    logger.info(
        "Applied %s command %s for %s.%s",
        command.command_type,
        command_id,
        command.product_identifier,
        command.charge_definition_identifier,
    )
    return command


def process_pending_commands(
    db: Session, limit: int | None = None, max_attempts: int = DEFAULT_MAX_ATTEMPTS
) -> list[CommandModel]:
    """Process pending commands in submission order and return them."""
    commands = command_repo.get_pending_commands(db, limit=limit)
    for command in commands:
        process_command(db, command, max_attempts=max_attempts)
    return commands


def _drain_once(
    session_factory: Callable[[], Session], batch_size: int, max_attempts: int
) -> int:
    db = session_factory()
    try:
        return len(process_pending_commands(db, limit=batch_size, max_attempts=max_attempts))
    finally:
        db.close()


async def run_command_worker(
    session_factory: Callable[[], Session],
    interval_seconds: float,
    batch_size: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> None:
    """Poll for pending commands until cancelled.

    Database errors are logged and retried on the next poll; the commands stay
    pending.
    """
    logger.info("Command worker started (poll interval %ss)", interval_seconds)
    while True:
        try:
            processed = await asyncio.to_thread(
                _drain_once, session_factory, batch_size, max_attempts
            )
        except SQLAlchemyError:
            logger.exception("Command worker failed to process pending commands")
            processed = 0

        if processed < batch_size:
            await asyncio.sleep(interval_seconds)


def log_worker_exit(task: asyncio.Task) -> None:
    """Done-callback for the worker task: report it if it died."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Command worker stopped unexpectedly", exc_info=exc)
