# utils/mining_ledger.py
"""
Mining ledger: the start / stop / claim / read operations on a user's
MiningRecord.

Every write goes through a versioned UPDATE (MiningRecord.version), so two
concurrent writers on the same row cannot both succeed: the loser gets a
StaleDataError on flush, its transaction is rolled back and re-run against
the fresh row. For claim that means the second caller re-reads a cleared
last_start and credits nothing.

Timestamps always come from utcnow() on the server, never from the request.
"""
import time
from decimal import Decimal
from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from extensions import db
from models import MiningRecord, BalanceHistory
from utils.errors import (
    LedgerError, Unauthenticated, RecordNotFound, StorageConflict, StorageUnavailable
)
from utils.log import get_logger
from utils.mining_service import calculate_reward, project_balance, utcnow

logger = get_logger("mining_ledger")


def _authorize(user_id, caller_id):
    if not caller_id or str(caller_id) != str(user_id):
        logger.warning(f"[authorize] caller {caller_id} rejected for record {user_id}")
        raise Unauthenticated(user_id=user_id)


def _load_record(user_id, for_update=False):
    record = db.session.get(
        MiningRecord,
        user_id,
        with_for_update=True if for_update else None,
        populate_existing=True,
    )
    if record is None:
        # 开户时必定创建，缺失说明开户流程有 bug
        logger.critical(f"[load_record] no mining record for user {user_id}, provisioning is broken")
        raise RecordNotFound(user_id=user_id)
    return record


def _commit(op, user_id):
    try:
        db.session.commit()
    except OperationalError as e:
        # 提交结果未知（可能已落库），不能重跑事务
        db.session.rollback()
        logger.error(f"[{op}] commit failed for user {user_id}, outcome unknown: {e}")
        raise StorageUnavailable(user_id=user_id, stage='commit') from e


def _transact(op, user_id, fn):
    """
    Run fn() and commit, retrying on version conflicts and transient
    database errors. Nothing is returned unless the commit went through.

    Only failures before the commit are retried. A connection lost during
    the commit leaves the outcome unknown, so it surfaces as
    StorageUnavailable straight away instead of running fn() again.
    """
    max_attempts = max(1, int(current_app.config.get('MINING_MAX_ATTEMPTS', 5)))
    backoff = float(current_app.config.get('MINING_RETRY_BACKOFF', 0.05))

    failure = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = fn()
            _commit(op, user_id)
            return result
        except LedgerError:
            db.session.rollback()
            raise
        except StaleDataError as e:
            db.session.rollback()
            failure = (StorageConflict(user_id=user_id, attempts=attempt), e)
            logger.warning(f"[{op}] concurrent update on user {user_id}, attempt {attempt}/{max_attempts}")
        except OperationalError as e:
            db.session.rollback()
            failure = (StorageUnavailable(user_id=user_id, attempts=attempt), e)
            logger.warning(f"[{op}] database error for user {user_id}, attempt {attempt}/{max_attempts}: {e}")
        except SQLAlchemyError:
            db.session.rollback()
            raise

        if attempt < max_attempts:
            time.sleep(backoff * attempt)

    error, cause = failure
    logger.error(f"[{op}] giving up on user {user_id} after {max_attempts} attempts: {error}")
    raise error from cause


def start(user_id, caller_id):
    """
    Idle -> Accruing. Sets mining_active and a fresh server-side last_start.

    Starting while already accruing keeps the running last_start unless
    MINING_RESTART_RESETS_CLOCK is set, in which case the clock restarts
    and unclaimed progress is forfeited.
    """
    _authorize(user_id, caller_id)
    resets_clock = bool(current_app.config.get('MINING_RESTART_RESETS_CLOCK', False))

    def _start():
        record = _load_record(user_id, for_update=True)
        if record.mining_active and record.last_start is not None and not resets_clock:
            return record, False

        record.mining_active = True
        record.last_start = utcnow()
        db.session.flush()
        return record, True

    record, changed = _transact('start', user_id, _start)
    if changed:
        logger.info(f"[start] user {user_id} started mining at {record.last_start}")
    else:
        logger.info(f"[start] user {user_id} already mining since {record.last_start}, kept")
    return record


def stop(user_id, caller_id):
    """
    Accruing -> Idle. Clears mining_active only: last_start stays, so the
    elapsed time can still be claimed, and balance is never touched.
    """
    _authorize(user_id, caller_id)

    def _stop():
        record = _load_record(user_id, for_update=True)
        if record.mining_active:
            record.mining_active = False
            db.session.flush()
        return record

    record = _transact('stop', user_id, _stop)
    logger.info(f"[stop] user {user_id} stopped mining")
    return record


def claim(user_id, caller_id):
    """
    Credit the reward accrued since last_start and close the session.

    Read, reward computation and write happen in one transaction against a
    locked, versioned row. Returns the credited reward; 0 when there is no
    open accrual window (e.g. a second claim right after the first).
    """
    _authorize(user_id, caller_id)

    def _claim():
        record = _load_record(user_id, for_update=True)
        if record.last_start is None:
            return Decimal('0')

        now = utcnow()
        reward = calculate_reward(record.last_start, now)

        record.balance = Decimal(record.balance or 0) + reward
        record.last_claim = now
        record.last_start = None
        record.mining_active = False

        if reward > 0:
            db.session.add(BalanceHistory(
                user_id=user_id,
                change_type='mining_claim',
                change_amount=reward,
                description='Mining reward claimed',
                created_at=now
            ))

        db.session.flush()
        return reward

    reward = _transact('claim', user_id, _claim)
    logger.info(f"[claim] user {user_id} credited {reward}")
    return reward


def read(user_id, caller_id):
    """
    Current record plus advisory figures for display:
    claimable_reward is what claim would credit right now,
    projected_balance is the live estimate while mining_active.
    """
    _authorize(user_id, caller_id)

    try:
        record = _load_record(user_id)
    except OperationalError as e:
        db.session.rollback()
        raise StorageUnavailable(user_id=user_id) from e

    now = utcnow()
    balance = Decimal(record.balance or 0)
    return {
        "balance": balance,
        "mining_active": record.mining_active,
        "last_start": record.last_start,
        "last_claim": record.last_claim,
        "claimable_reward": calculate_reward(record.last_start, now),
        "projected_balance": project_balance(balance, record.mining_active, record.last_start, now),
    }
