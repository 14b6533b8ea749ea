# models/invite_models.py

from extensions import db
from datetime import datetime, timezone


class InviteRecord(db.Model):
    __tablename__ = 'invite_records'

    id = db.Column(db.Integer, primary_key=True)
    inviter_id = db.Column(db.String(128), db.ForeignKey('users.id'), nullable=False, index=True)  # 邀请人
    invitee_id = db.Column(db.String(128), db.ForeignKey('users.id'), nullable=False, unique=True, index=True)  # 被邀请人，只能被邀请一次
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
