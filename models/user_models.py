from extensions import db
from sqlalchemy.orm import relationship
from datetime import datetime, timezone


class User(db.Model):
    # 用户档案，id 为身份提供方的 subject
    __tablename__ = 'users'

    id = db.Column(db.String(128), primary_key=True)
    username = db.Column(db.String(64), nullable=True)
    avatar_url = db.Column(db.String(255), nullable=True)
    referral_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    referred_by = db.Column(db.String(16), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    mining_record = relationship("MiningRecord", uselist=False, back_populates="user")

    def to_dict(self):
        return {
            "user_id": self.id,
            "username": self.username,
            "avatar_url": self.avatar_url,
            "referral_code": self.referral_code,
            "referred_by": self.referred_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
