"""Immutable lifecycle commands for charge definitions.

A command describes an intended state change. Submitting one only means it
was accepted for execution; a worker applies it later.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from portfolio.schemas.charge_definition import ChargeDefinition

CREATE = "CREATE"
CHANGE = "CHANGE"
DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class CreateChargeDefinition:
    command_type: ClassVar[str] = CREATE

    product_identifier: str
    definition: ChargeDefinition

    @property
    def charge_definition_identifier(self) -> str:
        return self.definition.identifier

    def payload(self) -> dict[str, Any]:
        return self.definition.model_dump(mode="json")


@dataclass(frozen=True, slots=True)
class ChangeChargeDefinition:
    command_type: ClassVar[str] = CHANGE

    product_identifier: str
    definition: ChargeDefinition

    @property
    def charge_definition_identifier(self) -> str:
        return self.definition.identifier

    def payload(self) -> dict[str, Any]:
        return self.definition.model_dump(mode="json")


@dataclass(frozen=True, slots=True)
class DeleteChargeDefinition:
    command_type: ClassVar[str] = DELETE

    product_identifier: str
    charge_definition_identifier: str

    def payload(self) -> dict[str, Any] | None:
        return None


ChargeDefinitionCommand = (
    CreateChargeDefinition | ChangeChargeDefinition | DeleteChargeDefinition
)
