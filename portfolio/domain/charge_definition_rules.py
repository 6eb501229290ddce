"""Lifecycle rules for charge definitions.

These functions only decide. Callers look up the current state (the existing
definition, if any) and pass it in, so the rules run the same way in the
request path and in the command worker.
"""

from __future__ import annotations

from typing import Protocol

from portfolio.errors import (
    DomainValidationError,
    DuplicateResourceError,
    NotFoundError,
    ReadOnlyResourceError,
)


class HasReadOnlyFlag(Protocol):
    identifier: str
    read_only: bool


def check_creatable(candidate: HasReadOnlyFlag, existing: HasReadOnlyFlag | None) -> None:
    """A new definition must not be read-only and must not reuse an identifier.

    Raises:
        DomainValidationError: If the candidate is marked read-only.
        DuplicateResourceError: If a definition with the same identifier exists.
    """
    if candidate.read_only:
        raise DomainValidationError("Created charges cannot be read only.")

    if existing is not None:
        raise DuplicateResourceError(f"Duplicate identifier: {existing.identifier}")


def require_mutable(
    product_identifier: str,
    charge_definition_identifier: str,
    existing: HasReadOnlyFlag | None,
) -> HasReadOnlyFlag:
    """Shared change/delete precondition: the definition exists and is not read-only.

    Raises:
        NotFoundError: If there is no such definition under the product.
        ReadOnlyResourceError: If the definition is read-only.
    """
    if existing is None:
        raise NotFoundError(
            f"No charge definition '{product_identifier}.{charge_definition_identifier}' found."
        )

    if existing.read_only:
        raise ReadOnlyResourceError(
            f"Charge definition is read only '{charge_definition_identifier}'"
        )

    return existing


def check_identifier_unchanged(path_identifier: str, candidate: HasReadOnlyFlag) -> None:
    if candidate.identifier != path_identifier:
        raise DomainValidationError("Instance identifiers may not be changed.")
