import logging

from flask import Blueprint, current_app, jsonify

from contestbot.services.health_service import run_health_checks

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)


@health_bp.route('/')
def index():
    return 'Contest Bot is running!'


@health_bp.route('/health')
def health():
    try:
        result = run_health_checks(current_app.extensions['contest_service'])
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return jsonify({'status': 'error', 'error': str(e)}), 500
    return jsonify(result), (200 if result['status'] == 'healthy' else 503)
