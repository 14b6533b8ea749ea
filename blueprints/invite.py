from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from utils.auth_utils import jwt_required
from utils.errors import LedgerError
from utils.referral_service import register_referral, referral_stats

invite_bp = Blueprint('invite', __name__, url_prefix='/api/referrals')


@invite_bp.route('/bind', methods=['POST'])
@jwt_required
def bind_referral():
    data = request.get_json(silent=True) or {}
    referral_code = (data.get('referral_code') or '').strip()

    if not referral_code:
        return jsonify({"success": False, "error": "missing_parameters", "message": "referral_code is required"}), 400

    try:
        recorded = register_referral(referral_code, g.current_user_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"DB error in bind_referral: {e}")
        return jsonify({"success": False, "error": "database_error", "message": "Database error"}), 500

    if not recorded:
        # 已被邀请过、邀请码无效或邀请自己
        return jsonify({"success": True, "bound": False, "message": "Referral not applied"}), 200

    return jsonify({"success": True, "bound": True, "message": "Referral bound successfully"})


@invite_bp.route('/stats', methods=['GET'])
@jwt_required
def get_referral_stats():
    try:
        stats = referral_stats(g.current_user_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status

    return jsonify({"success": True, "data": stats})
