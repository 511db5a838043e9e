import logging

from flask import Blueprint, current_app, jsonify, request

from contestbot.scrapers.common import Platform

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')

MAX_DAYS_AHEAD = 90


def _service():
    return current_app.extensions['contest_service']


def _contest_payload(contests, **extra):
    data = {
        'count': len(contests),
        'contests': [c.to_dict() for c in contests],
    }
    if not contests:
        data['message'] = 'No upcoming contests in range.'
    data.update(extra)
    return jsonify(data)


def _parse_platforms():
    """Platforms from ``?platform=a,b``; None means every enabled platform."""
    raw = request.args.get('platform', '').strip()
    if not raw:
        return None
    return [Platform.parse(part) for part in raw.split(',') if part.strip()]


@api_bp.route('/contests')
def list_contests():
    try:
        platforms = _parse_platforms()
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    days = request.args.get('days', type=int)
    if 'days' in request.args and days is None:
        return jsonify({'error': 'days must be an integer'}), 400
    if days is not None and not 1 <= days <= MAX_DAYS_AHEAD:
        return jsonify({'error': f'days must be between 1 and {MAX_DAYS_AHEAD}'}), 400

    contests = _service().refresh(platforms=platforms, days=days)
    return _contest_payload(contests)


@api_bp.route('/contests/today')
def contests_today():
    contests = _service().contests_on(0)
    return _contest_payload(contests, day='today')


@api_bp.route('/contests/tomorrow')
def contests_tomorrow():
    contests = _service().contests_on(1)
    return _contest_payload(contests, day='tomorrow')


@api_bp.route('/refresh', methods=['POST'])
def refresh():
    service = _service()
    contests = service.refresh_and_arm()
    return _contest_payload(
        contests,
        armed=len(service.reminders.tasks),
        epoch=service.reminders.epoch,
    )


@api_bp.route('/reminders')
def list_reminders():
    reminders = _service().reminders
    tasks = sorted(reminders.tasks, key=lambda t: (t.fire_at, t.contest.identity))
    return jsonify({
        'epoch': reminders.epoch,
        'count': len(tasks),
        'reminders': [t.to_dict() for t in tasks],
    })
