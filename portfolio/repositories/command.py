from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from portfolio.db.models.command import PENDING, PROCESSING
from portfolio.db.models.command import ChargeDefinitionCommand as CommandModel


def add_command(
    db: Session,
    command_type: str,
    product_identifier: str,
    charge_definition_identifier: str,
    payload: dict[str, Any] | None,
) -> CommandModel:
    """Persist a pending command. Pure data access - no business logic."""
    db_command = CommandModel(
        command_type=command_type,
        product_identifier=product_identifier,
        charge_definition_identifier=charge_definition_identifier,
        payload=payload,
        status=PENDING,
    )
    db.add(db_command)
    db.commit()
    db.refresh(db_command)
    return db_command


def get_command_by_id(db: Session, command_id: int) -> CommandModel | None:
    return db.query(CommandModel).filter(CommandModel.id == command_id).first()


def get_pending_commands(db: Session, limit: int | None = None) -> list[CommandModel]:
    """Get pending commands in submission order."""
    query = (
        db.query(CommandModel)
        .filter(CommandModel.status == PENDING)
        .order_by(CommandModel.id)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()

def claim_command(db: Session, command_id: int) -> bool:
    """
    Atomically move a command from PENDING to PROCESSING and count the attempt.

    Returns False when another worker already claimed or finished it.
    Commits the claim.
    """
    claimed = (
        db.query(CommandModel)
        .filter(CommandModel.id == command_id, CommandModel.status == PENDING)
        .update(
            {
                CommandModel.status: PROCESSING,
                CommandModel.attempts: CommandModel.attempts + 1,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return claimed == 1


def finish_command(
    db: Session, command_id: int, status: str, error: str | None = None
) -> bool:
    """
    Record the final outcome of a claimed command. The caller owns the commit.

    Only a PROCESSING command is updated; returns False otherwise.
    """
    updated = (
        db.query(CommandModel)
        .filter(CommandModel.id == command_id, CommandModel.status == PROCESSING)
        .update(
            {
                CommandModel.status: status,
                CommandModel.error: error,
                CommandModel.processed_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    return updated == 1


def release_command(db: Session, command_id: int, error: str) -> bool:
    """Return a claimed command to PENDING so a later poll retries it. The caller owns the commit."""
    updated = (
        db.query(CommandModel)
        .filter(CommandModel.id == command_id, CommandModel.status == PROCESSING)
        .update(
            {CommandModel.status: PENDING, CommandModel.error: error},
            synchronize_session=False,
        )
    )
    return updated == 1
