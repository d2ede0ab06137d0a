"""Tests for concurrent matching on a shared bank account."""

import threading
import pytest
from datetime import date
from decimal import Decimal

from bankrec.database.factories import create_sqlite_database
from bankrec.domain.errors import TransientError
from bankrec.domain.locking import account_lock, hold_account_lock
from bankrec.domain.progress import BalanceTracker
from bankrec.domain.reconciliation import ReconciliationService

from conftest import TENANT, add_movement, raw_line

AMOUNTS = ["10.00", "20.00", "-30.00", "40.00", "-55.55"]


def seed_movements(db, account):
    return [
        add_movement(db, account, f"JE-{i}", amount, date(2024, 3, 1 + 3 * i))
        for i, amount in enumerate(AMOUNTS)
    ]


def import_copy(recon_service, account, name):
    return recon_service.import_statement(
        TENANT,
        account.id,
        name,
        date(2024, 3, 1),
        date(2024, 3, 31),
        [raw_line(date(2024, 3, 1 + 3 * i), amount) for i, amount in enumerate(AMOUNTS)],
    )


def run_in_threads(temp_db, jobs):
    """Run each job(service) on its own database connection, starting together."""
    barrier = threading.Barrier(len(jobs))
    results = [None] * len(jobs)
    errors = []

    def worker(index, job):
        db = create_sqlite_database(temp_db.database_path, timeout=10)
        db.connect()
        try:
            service = ReconciliationService(db, lock_timeout=10)
            barrier.wait()
            results[index] = job(service)
        except Exception as e:
            errors.append(e)
        finally:
            db.disconnect()

    threads = [threading.Thread(target=worker, args=(i, job)) for i, job in enumerate(jobs)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    # Drop objects cached before the other connections wrote
    temp_db.disconnect()
    assert not errors, errors
    return results


def test_two_statements_never_claim_the_same_movement(temp_db, recon_service, sample_account):
    refs = seed_movements(temp_db, sample_account)
    first = import_copy(recon_service, sample_account, "copy-a.csv")
    second = import_copy(recon_service, sample_account, "copy-b.csv")

    results = run_in_threads(
        temp_db,
        [
            lambda service: service.run_matching(TENANT, first),
            lambda service: service.run_matching(TENANT, second),
        ],
    )

    assert sum(r.new_matches for r in results) == len(AMOUNTS)
    assert temp_db.claimed_movements(refs) == set(refs)

    lines = temp_db.list_lines(first) + temp_db.list_lines(second)
    matched = [line.matched_movement for line in lines if line.status.is_matched]
    assert len(matched) == len(set(matched)) == len(AMOUNTS)

    for statement_id in (first, second):
        claims = temp_db.list_claims_for_statement(statement_id)
        assert temp_db.get_statement(statement_id).matched_lines == len(claims)

    assert BalanceTracker(temp_db).audit(sample_account.id).is_consistent


def test_manual_match_racing_a_matching_run(temp_db, recon_service, sample_account):
    refs = seed_movements(temp_db, sample_account)
    auto_statement = import_copy(recon_service, sample_account, "auto.csv")
    manual_statement = import_copy(recon_service, sample_account, "manual.csv")
    manual_line = temp_db.list_lines(manual_statement)[0]

    def manual(service):
        try:
            return service.manual_match(TENANT, manual_line.id, refs[0])
        except TransientError:
            raise
        except Exception as e:
            return e

    run_in_threads(
        temp_db,
        [lambda service: service.run_matching(TENANT, auto_statement), manual],
    )

    claim = temp_db.get_claim(refs[0])
    assert claim is not None
    owners = [
        line
        for line in temp_db.list_lines(auto_statement) + temp_db.list_lines(manual_statement)
        if line.matched_movement == refs[0]
    ]
    assert [line.id for line in owners] == [claim.statement_line_id]
    assert BalanceTracker(temp_db).audit(sample_account.id).is_consistent


class TestAccountLock:
    """Tests for the per-account claim lock."""

    def test_same_account_shares_one_lock(self):
        assert account_lock(901) is account_lock(901)
        assert account_lock(901) is not account_lock(902)

    def test_busy_account_times_out(self):
        with hold_account_lock(903):
            outcome = []

            def contender():
                try:
                    with hold_account_lock(903, timeout=0.05):
                        outcome.append("acquired")
                except TransientError:
                    outcome.append("busy")

            thread = threading.Thread(target=contender)
            thread.start()
            thread.join()

        assert outcome == ["busy"]

    def test_lock_is_released_after_error(self):
        with pytest.raises(RuntimeError):
            with hold_account_lock(904):
                raise RuntimeError("boom")
        with hold_account_lock(904, timeout=0.05):
            pass

    def test_matching_run_on_busy_account_writes_nothing(self, temp_db, sample_account, four_line_statement):
        service = ReconciliationService(temp_db, lock_timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with hold_account_lock(sample_account.id):
                held.set()
                done.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(timeout=5)
        try:
            with pytest.raises(TransientError) as excinfo:
                service.run_matching(TENANT, four_line_statement)
        finally:
            done.set()
            thread.join()

        assert excinfo.value.retryable
        assert temp_db.get_statement(four_line_statement).matched_lines == 0
        assert temp_db.get_bank_account(sample_account.id).current_balance == Decimal("1000.00")
