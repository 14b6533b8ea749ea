from flask import Blueprint, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from utils import mining_ledger
from utils.auth_utils import jwt_required
from utils.errors import LedgerError
from utils.mining_service import DAILY_MAX, RATE_PER_SECOND, format_amount

mining_bp = Blueprint('mining', __name__, url_prefix='/api/mining')


def _iso(value):
    return value.isoformat() if value else None


def _error_response(e):
    if e.status >= 500:
        current_app.logger.error(f"Mining ledger error: {e}")
    return jsonify(e.to_dict()), e.status


def _db_error_response(e):
    db.session.rollback()
    current_app.logger.error(f"DB error in mining ledger: {e}")
    return jsonify({'success': False, 'error': 'database_error', 'message': 'Database error'}), 500


@mining_bp.route('/<user_id>/start', methods=['POST'])
@jwt_required
def mining_start(user_id):
    try:
        record = mining_ledger.start(user_id, g.current_user_id)
    except LedgerError as e:
        return _error_response(e)
    except SQLAlchemyError as e:
        return _db_error_response(e)

    return jsonify({"success": True, "message": "Mining started", "mining": record.to_dict()})


@mining_bp.route('/<user_id>/stop', methods=['POST'])
@jwt_required
def mining_stop(user_id):
    try:
        record = mining_ledger.stop(user_id, g.current_user_id)
    except LedgerError as e:
        return _error_response(e)
    except SQLAlchemyError as e:
        return _db_error_response(e)

    return jsonify({"success": True, "message": "Mining stopped", "mining": record.to_dict()})


@mining_bp.route('/<user_id>/claim', methods=['POST'])
@jwt_required
def mining_claim(user_id):
    try:
        reward = mining_ledger.claim(user_id, g.current_user_id)
    except LedgerError as e:
        return _error_response(e)
    except SQLAlchemyError as e:
        return _db_error_response(e)

    return jsonify({"success": True, "message": "Reward claimed", "reward": format_amount(reward)})


@mining_bp.route('/<user_id>/status', methods=['GET'])
@jwt_required
def mining_status(user_id):
    try:
        state = mining_ledger.read(user_id, g.current_user_id)
    except LedgerError as e:
        return _error_response(e)
    except SQLAlchemyError as e:
        return _db_error_response(e)

    return jsonify({
        "success": True,
        "balance": format_amount(state["balance"]),
        "mining_active": state["mining_active"],
        "last_start": _iso(state["last_start"]),
        "last_claim": _iso(state["last_claim"]),
        # 以下仅供前端展示，以 claim 返回为准
        "claimable_reward": format_amount(state["claimable_reward"]),
        "projected_balance": format_amount(state["projected_balance"]),
        "rate_per_second": format_amount(RATE_PER_SECOND),
        "daily_max": format_amount(DAILY_MAX),
    })
