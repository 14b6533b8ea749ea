from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from models import User
from utils import mining_ledger
from utils.auth_utils import jwt_required
from utils.errors import LedgerError
from utils.referral_service import create_user, referral_stats
from utils.mining_service import format_amount

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _iso(value):
    return value.isoformat() if value else None


# --------- 开户：建档案 + 挖矿记录 ----------
@users_bp.route('', methods=['POST'])
@jwt_required
def onboard():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip() or None
    referred_by = (data.get('referred_by') or '').strip() or None

    if username and len(username) > 64:
        return jsonify({'success': False, 'error': 'invalid_username', 'message': 'Username too long'}), 400

    try:
        user = create_user(g.current_user_id, username=username, referred_by=referred_by)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"DB error in onboard: {e}")
        return jsonify({'success': False, 'error': 'database_error', 'message': 'Database error'}), 500

    return jsonify({'success': True, 'user': user.to_dict()}), 201


# --------- 获取用户全部数据 ----------
@users_bp.route('/me', methods=['GET'])
@jwt_required
def get_me():
    user = db.session.get(User, g.current_user_id)
    if not user:
        return jsonify({'success': False, 'error': 'user_not_found', 'message': 'User not found'}), 404

    try:
        mining = mining_ledger.read(user.id, g.current_user_id)
        referrals = referral_stats(user.id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status

    return jsonify({
        'success': True,
        'profile': user.to_dict(),
        'mining': {
            'balance': format_amount(mining['balance']),
            'mining_active': mining['mining_active'],
            'last_start': _iso(mining['last_start']),
            'last_claim': _iso(mining['last_claim']),
        },
        'referrals': {
            'total_referred': referrals['total_referred'],
            'referred_users': referrals['referred_users'],
        }
    })
