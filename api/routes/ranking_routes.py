"""
Ranking History API Routes

Endpoints for reading the ranking time series and triggering archive
actions (snapshot, import, backfill-gsc).
"""

from flask import Blueprint, current_app, jsonify, request

from api.validators import parse_limit, parse_optional_date, parse_site_id
from runner.logging_setup import get_logger
from seo_pipeline.config import Config
from seo_pipeline.exceptions import ValidationError
from seo_pipeline.services import RankingHistoryArchiver

ranking_bp = Blueprint('ranking', __name__)
logger = get_logger("ranking_routes")

ACTIONS = ('snapshot', 'import', 'backfill-gsc')


def _archiver() -> RankingHistoryArchiver:
    return RankingHistoryArchiver(current_app.extensions['seo_db'])


@ranking_bp.route('/ranking-history', methods=['GET'])
def get_ranking_history():
    """
    Read ranking history.

    Query params:
        siteId: Site (required)
        keyword: Case-insensitive substring filter
        startDate / endDate: Inclusive YYYY-MM-DD bounds
        limit: Maximum rows (default: 365)

    Returns:
        JSON with history rows (newest first) and a trend summary when a
        keyword filter narrows the rows to one keyword
    """
    try:
        site_id = parse_site_id(request.args.get('siteId'))
        start_date = parse_optional_date(request.args.get('startDate'), 'startDate')
        end_date = parse_optional_date(request.args.get('endDate'), 'endDate')
        limit = parse_limit(request.args.get('limit'), Config.RANKING_HISTORY_LIMIT)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400

    try:
        data = _archiver().get_history_with_trend(
            site_id,
            keyword=request.args.get('keyword') or None,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )
    except Exception as e:
        logger.error(f"Error reading ranking history: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify(data)


@ranking_bp.route('/ranking-history', methods=['POST'])
def post_ranking_history():
    """
    Trigger a ranking history action.

    Request body:
        {
            "siteId": 1,
            "action": "snapshot" | "import" | "backfill-gsc",
            "data": [...]  # import rows
        }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    action = body.get('action')

    try:
        site_id = parse_site_id(body.get('siteId'))
        if action not in ACTIONS:
            raise ValidationError(f"action must be one of {', '.join(ACTIONS)}")
        if action == 'import' and not isinstance(body.get('data'), list):
            raise ValidationError("import requires a data list")
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400

    archiver = _archiver()
    logger.info(f"Ranking history action '{action}' for site {site_id}")

    try:
        if action == 'snapshot':
            result = archiver.snapshot(site_id)
        elif action == 'import':
            result = archiver.import_history(site_id, body['data'])
        else:
            result = archiver.backfill_from_gsc(site_id)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Ranking history action '{action}' failed: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify({'success': True, 'action': action, **result})
