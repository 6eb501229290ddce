"""Hand-off point between the lifecycle service and command execution."""

import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import portfolio.repositories.command as command_repo
from portfolio.db.models.command import ChargeDefinitionCommand as CommandModel
from portfolio.domain.commands import ChargeDefinitionCommand
from portfolio.errors import CommandSubmissionError

logger = logging.getLogger(__name__)


class CommandGateway(Protocol):
    def submit(self, command: ChargeDefinitionCommand) -> CommandModel:
        """Durably accept a command for execution and return its record.

        Raises:
            CommandSubmissionError: If the command could not be accepted.
        """
        ...


class SqlCommandGateway:
    """Queues commands in the ``charge_definition_commands`` table.

    The command worker consumes the table in submission order.
    """

    def __init__(self, db: Session):
        self.db = db

    def submit(self, command: ChargeDefinitionCommand) -> CommandModel:
        try:
            record = command_repo.add_command(
                self.db,
                command_type=command.command_type,
                product_identifier=command.product_identifier,
                charge_definition_identifier=command.charge_definition_identifier,
                payload=command.payload(),
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Failed to submit %s command for %s.%s: %s",
                command.command_type,
                command.product_identifier,
                command.charge_definition_identifier,
                e,
            )
            raise CommandSubmissionError(
                f"{command.command_type} command could not be accepted for execution"
            ) from e

        logger.info(
            "Accepted %s command %s for %s.%s",
            record.command_type,
            record.id,
            record.product_identifier,
            record.charge_definition_identifier,
        )
        return record
