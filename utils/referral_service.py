import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from extensions import db
from models import User, MiningRecord, InviteRecord
from utils.errors import UserAlreadyExists, RecordNotFound
from utils.log import get_logger

logger = get_logger("referrals")


def generate_referral_code(user_id, length=6):
    return str(user_id)[:length].upper()


def _unique_referral_code(user_id):
    # 前6位撞车时逐步加长，id 太短再退回随机码
    for length in (6, 8, 10, 12, 16):
        code = generate_referral_code(user_id, length)
        if not User.query.filter_by(referral_code=code).first():
            return code
    return uuid.uuid4().hex[:10].upper()


def _record_referral(referrer_code, invitee_id):
    """Adds the InviteRecord to the session; caller commits."""
    inviter = User.query.filter_by(referral_code=referrer_code.strip().upper()).first()
    if not inviter:
        logger.info(f"[referral] unknown referral code {referrer_code} for {invitee_id}, skipped")
        return False
    if inviter.id == invitee_id:
        logger.info(f"[referral] {invitee_id} tried to refer themselves, skipped")
        return False

    # 检查是否已经被邀请过
    if InviteRecord.query.filter_by(invitee_id=invitee_id).first():
        return False

    db.session.add(InviteRecord(
        inviter_id=inviter.id,
        invitee_id=invitee_id,
        created_at=datetime.now(timezone.utc)
    ))

    invitee = db.session.get(User, invitee_id)
    if invitee is not None:
        invitee.referred_by = inviter.referral_code
    return True


def create_user(user_id, username=None, referred_by=None):
    """
    Onboard a user: profile and an idle, zero-balance mining record,
    plus the referral when a known code is given. One transaction.
    """
    if db.session.get(User, user_id):
        raise UserAlreadyExists(user_id=user_id)

    # referred_by 只在邀请码有效时由 _record_referral 写入
    user = User(
        id=user_id,
        username=username,
        referral_code=_unique_referral_code(user_id),
        referred_by=None,
        created_at=datetime.now(timezone.utc)
    )
    db.session.add(user)
    db.session.add(MiningRecord(
        user_id=user_id,
        balance=Decimal('0'),
        mining_active=False,
        last_start=None,
        last_claim=None
    ))
    db.session.flush()

    if referred_by:
        _record_referral(referred_by, user_id)

    try:
        db.session.commit()
    except IntegrityError as e:
        # 并发开户或 referral_code 撞车
        db.session.rollback()
        raise UserAlreadyExists(user_id=user_id) from e

    logger.info(f"[onboarding] user {user_id} created, referral code {user.referral_code}")
    return user


def register_referral(referrer_code, invitee_id):
    """Returns True when a new referral was recorded."""
    if not db.session.get(User, invitee_id):
        raise RecordNotFound(user_id=invitee_id)

    recorded = _record_referral(referrer_code, invitee_id)
    if not recorded:
        return False

    try:
        db.session.commit()
    except IntegrityError:
        # 并发绑定时 invitee_id 唯一约束兜底
        db.session.rollback()
        return False

    logger.info(f"[referral] {invitee_id} bound to referral code {referrer_code}")
    return True


def referral_stats(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise RecordNotFound(user_id=user_id)

    invites = InviteRecord.query.filter_by(
        inviter_id=user_id
    ).order_by(
        InviteRecord.created_at.desc(), InviteRecord.id.desc()
    ).all()

    return {
        "referral_code": user.referral_code,
        "referred_by": user.referred_by,
        "total_referred": len(invites),
        "referred_users": [record.invitee_id for record in invites],
    }
