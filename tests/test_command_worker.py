import asyncio
import contextlib
import logging
from decimal import Decimal

import pytest
from sqlalchemy.exc import DataError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

import portfolio.repositories.charge_definition as charge_definition_repo
import portfolio.repositories.command as command_repo
from portfolio.db.models.command import APPLIED, PENDING, PROCESSING, REJECTED
from portfolio.domain.commands import (
    ChangeChargeDefinition,
    CreateChargeDefinition,
    DeleteChargeDefinition,
)
from portfolio.errors import CommandSubmissionError
from portfolio.schemas.charge_definition import ChargeDefinition
from portfolio.services.command_gateway import SqlCommandGateway
from portfolio.services.command_worker import (
    log_worker_exit,
    process_command,
    process_pending_commands,
    run_command_worker,
)


def _definition(identifier: str, **overrides) -> ChargeDefinition:
    values = {
        "identifier": identifier,
        "name": f"Charge {identifier}",
        "charge_action": "DISBURSE",
        "amount": Decimal("12.25"),
        "charge_method": "FIXED",
    }
    values.update(overrides)
    return ChargeDefinition(**values)


@pytest.fixture(scope="function")
def gateway(db: Session) -> SqlCommandGateway:
    return SqlCommandGateway(db)


# ============================================================================
# GATEWAY TESTS
# ============================================================================


def test_submit_persists_pending_command(db: Session, product, gateway):
    record = gateway.submit(CreateChargeDefinition("P1", _definition("C1")))

    stored = command_repo.get_command_by_id(db, record.id)
    assert stored.status == PENDING
    assert stored.command_type == "CREATE"
    assert stored.product_identifier == "P1"
    assert stored.charge_definition_identifier == "C1"
    assert stored.payload["identifier"] == "C1"
    assert stored.payload["amount"] == "12.25"
    assert stored.processed_at is None

    # Nothing is applied on submission
    assert charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1") is None


def test_submit_delete_has_no_payload(db: Session, product, gateway):
    record = gateway.submit(DeleteChargeDefinition("P1", "C1"))
    assert record.command_type == "DELETE"
    assert record.payload is None


def test_submit_failure_raises_command_submission_error(
    db: Session, product, gateway, monkeypatch
):
    def broken_add_command(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(command_repo, "add_command", broken_add_command)

    with pytest.raises(CommandSubmissionError):
        gateway.submit(CreateChargeDefinition("P1", _definition("C1")))


# ============================================================================
# WORKER TESTS
# ============================================================================


def test_create_command_is_applied(db: Session, product, gateway):
    record = gateway.submit(
        CreateChargeDefinition(
            "P1", _definition("C1", for_cycle_size_unit="MONTHS", accrue_action="OPEN")
        )
    )

    processed = process_pending_commands(db)

    assert [c.id for c in processed] == [record.id]
    assert processed[0].status == APPLIED
    assert processed[0].error is None
    assert processed[0].processed_at is not None

    definition = charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1")
    assert definition.name == "Charge C1"
    assert definition.amount == Decimal("12.25")
    assert definition.charge_action == "DISBURSE"
    assert definition.for_cycle_size_unit == "MONTHS"
    assert definition.read_only is False


def test_racing_creates_apply_only_once(db: Session, product, gateway):
    """Both creates passed validation before either was applied."""
    first = gateway.submit(CreateChargeDefinition("P1", _definition("C1", name="First")))
    second = gateway.submit(CreateChargeDefinition("P1", _definition("C1", name="Second")))

    process_pending_commands(db)

    assert command_repo.get_command_by_id(db, first.id).status == APPLIED
    rejected = command_repo.get_command_by_id(db, second.id)
    assert rejected.status == REJECTED
    assert rejected.error == "Duplicate identifier: C1"

    definitions = charge_definition_repo.get_charge_definitions_by_product(db, "P1")
    assert [d.name for d in definitions] == ["First"]


def test_change_command_is_applied(db: Session, product, gateway, add_charge_definition):
    add_charge_definition("C1")
    gateway.submit(
        ChangeChargeDefinition(
            "P1", _definition("C1", name="Renamed", description="Now described")
        )
    )

    process_pending_commands(db)

    definition = charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1")
    assert definition.identifier == "C1"
    assert definition.name == "Renamed"
    assert definition.description == "Now described"
    assert definition.amount == Decimal("12.25")


def test_delete_command_is_applied(db: Session, product, gateway, add_charge_definition):
    add_charge_definition("C1")
    record = gateway.submit(DeleteChargeDefinition("P1", "C1"))

    process_pending_commands(db)

    assert command_repo.get_command_by_id(db, record.id).status == APPLIED
    assert charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1") is None


def test_commands_for_definition_turned_read_only_are_rejected(
    db: Session, product, gateway, add_charge_definition
):
    definition = add_charge_definition("C1")
    change = gateway.submit(ChangeChargeDefinition("P1", _definition("C1", name="Renamed")))
    delete = gateway.submit(DeleteChargeDefinition("P1", "C1"))

    # Seeded as read-only by the system after the commands were accepted
    definition.read_only = True
    db.commit()

    process_pending_commands(db)

    assert command_repo.get_command_by_id(db, change.id).status == REJECTED
    rejected = command_repo.get_command_by_id(db, delete.id)
    assert rejected.status == REJECTED
    assert rejected.error == "Charge definition is read only 'C1'"

    remaining = charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1")
    assert remaining.name == "Charge C1"


def test_change_of_vanished_definition_is_rejected(db: Session, product, gateway):
    record = gateway.submit(ChangeChargeDefinition("P1", _definition("C1")))

    process_pending_commands(db)

    rejected = command_repo.get_command_by_id(db, record.id)
    assert rejected.status == REJECTED
    assert rejected.error == "No charge definition 'P1.C1' found."


def test_command_for_unknown_product_is_rejected(db: Session, gateway):
    record = gateway.submit(CreateChargeDefinition("Pmissing", _definition("C1")))

    process_pending_commands(db)

    rejected = command_repo.get_command_by_id(db, record.id)
    assert rejected.status == REJECTED
    assert rejected.error == "Invalid product referenced."


def test_commands_are_applied_in_submission_order(db: Session, product, gateway):
    gateway.submit(CreateChargeDefinition("P1", _definition("C1")))
    gateway.submit(ChangeChargeDefinition("P1", _definition("C1", name="Renamed")))
    gateway.submit(DeleteChargeDefinition("P1", "C1"))
    gateway.submit(CreateChargeDefinition("P1", _definition("C1", name="Recreated")))

    processed = process_pending_commands(db)

    assert [c.status for c in processed] == [APPLIED, APPLIED, APPLIED, APPLIED]
    definitions = charge_definition_repo.get_charge_definitions_by_product(db, "P1")
    assert [d.name for d in definitions] == ["Recreated"]


def test_process_respects_limit_and_skips_processed(db: Session, product, gateway):
    for identifier in ("C1", "C2", "C3"):
        gateway.submit(CreateChargeDefinition("P1", _definition(identifier)))

    assert len(process_pending_commands(db, limit=2)) == 2
    assert [c.charge_definition_identifier for c in command_repo.get_pending_commands(db)] == ["C3"]

    assert len(process_pending_commands(db)) == 1
    assert process_pending_commands(db) == []


def test_command_is_applied_once_when_two_workers_pick_it_up(
    db: Session, product, gateway, add_charge_definition
):
    add_charge_definition("C1")
    command_id = gateway.submit(DeleteChargeDefinition("P1", "C1")).id

    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    first, second = session_factory(), session_factory()
    try:
        [first_view] = command_repo.get_pending_commands(first)
        [second_view] = command_repo.get_pending_commands(second)

        process_command(first, first_view)
        process_command(second, second_view)
    finally:
        first.close()
        second.close()

    db.commit()
    command = command_repo.get_command_by_id(db, command_id)
    assert command.status == APPLIED
    assert command.error is None
    assert command.attempts == 1
    assert charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1") is None


def test_claimed_command_is_not_claimed_again(db: Session, product, gateway):
    command_id = gateway.submit(CreateChargeDefinition("P1", _definition("C1"))).id

    assert command_repo.claim_command(db, command_id) is True
    assert command_repo.claim_command(db, command_id) is False
    assert command_repo.get_command_by_id(db, command_id).status == PROCESSING
    assert command_repo.get_pending_commands(db) == []


def test_finished_command_status_is_not_overwritten(db: Session, product, gateway):
    command_id = gateway.submit(CreateChargeDefinition("P1", _definition("C1"))).id
    command_repo.claim_command(db, command_id)
    assert command_repo.finish_command(db, command_id, APPLIED) is True
    db.commit()

    assert command_repo.finish_command(db, command_id, REJECTED, "late rejection") is False
    db.commit()

    command = command_repo.get_command_by_id(db, command_id)
    assert command.status == APPLIED
    assert command.error is None


def test_storage_error_is_retried_then_rejected(db: Session, product, gateway, monkeypatch):
    create_charge_definition = charge_definition_repo.create_charge_definition

    def flaky_create(db, product_id, identifier, commit=True, **fields):
        if identifier == "C1":
            raise DataError("INSERT", {}, Exception("value too long"))
        return create_charge_definition(db, product_id, identifier, commit=commit, **fields)

    monkeypatch.setattr(charge_definition_repo, "create_charge_definition", flaky_create)

    failing_id = gateway.submit(CreateChargeDefinition("P1", _definition("C1"))).id
    healthy_id = gateway.submit(CreateChargeDefinition("P1", _definition("C2"))).id

    process_pending_commands(db, max_attempts=2)

    # The failing command does not hold back the rest of the queue
    assert command_repo.get_command_by_id(db, healthy_id).status == APPLIED
    retried = command_repo.get_command_by_id(db, failing_id)
    assert retried.status == PENDING
    assert retried.attempts == 1
    assert retried.error.startswith("Storage error:")

    process_pending_commands(db, max_attempts=2)

    rejected = command_repo.get_command_by_id(db, failing_id)
    assert rejected.status == REJECTED
    assert rejected.attempts == 2
    assert "gave up after 2 attempts" in rejected.error
    assert process_pending_commands(db, max_attempts=2) == []


def test_worker_exit_is_logged(caplog):
    async def crash():
        raise RuntimeError("boom")

    async def run_crashing_worker():
        task = asyncio.create_task(crash())
        with contextlib.suppress(RuntimeError):
            await task
        return task

    task = asyncio.run(run_crashing_worker())

    with caplog.at_level(logging.ERROR, logger="portfolio.services.command_worker"):
        log_worker_exit(task)

    assert "Command worker stopped unexpectedly" in caplog.text


def _status(session_factory, command_id: int) -> str:
    db = session_factory()
    try:
        return command_repo.get_command_by_id(db, command_id).status
    finally:
        db.close()


def test_run_command_worker_applies_commands_until_cancelled(
    db: Session, product, gateway
):
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    command_id = gateway.submit(CreateChargeDefinition("P1", _definition("C1"))).id

    async def run_briefly():
        worker = asyncio.create_task(
            run_command_worker(session_factory, interval_seconds=0.01, batch_size=10)
        )
        try:
            for _ in range(500):
                await asyncio.sleep(0.01)
                status = await asyncio.to_thread(_status, session_factory, command_id)
                if status != PENDING:
                    break
        finally:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

    asyncio.run(run_briefly())

    db.commit()
    assert command_repo.get_command_by_id(db, command_id).status == APPLIED
    assert charge_definition_repo.get_charge_definition_by_identifier(db, "P1", "C1") is not None
