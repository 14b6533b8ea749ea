from datetime import datetime, timezone
from sqlalchemy import Numeric, ForeignKey
from sqlalchemy.orm import relationship
from extensions import db
from utils.mining_service import format_amount


class MiningRecord(db.Model):
    __tablename__ = 'mining_records'

    user_id = db.Column(db.String(128), ForeignKey('users.id'), primary_key=True)
    balance = db.Column(Numeric(36, 18), default=0, nullable=False)
    mining_active = db.Column(db.Boolean, default=False, nullable=False)
    last_start = db.Column(db.DateTime, nullable=True)  # 开始挖矿时设置，领取后清空
    last_claim = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    user = relationship("User", back_populates="mining_record")

    # UPDATE ... WHERE version = :read_version, 0 行即并发冲突
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self):
        return {
            "balance": format_amount(self.balance),
            "mining_active": self.mining_active,
            "last_start": self.last_start.isoformat() if self.last_start else None,
            "last_claim": self.last_claim.isoformat() if self.last_claim else None,
        }


class BalanceHistory(db.Model):
    __tablename__ = 'balance_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), ForeignKey('users.id'), nullable=False, index=True)
    change_type = db.Column(db.String(60), nullable=False)
    change_amount = db.Column(Numeric(36, 18), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    description = db.Column(db.String(255), nullable=True)

    user = relationship('User', backref='balance_history')
