"""
Metadata Extract API Routes

Endpoints for creating, running and polling metadata extract jobs.
"""

from flask import Blueprint, current_app, jsonify, request

from api.validators import parse_site_id
from db.models import Site
from runner.logging_setup import get_logger
from seo_pipeline.exceptions import ValidationError
from seo_pipeline.jobs import JobTracker, MetadataExtractJob

metadata_bp = Blueprint('metadata', __name__)
logger = get_logger("metadata_routes")


def _db():
    return current_app.extensions['seo_db']


@metadata_bp.route('/metadata-extract', methods=['POST'])
def run_metadata_extract():
    """
    Run a metadata extract job to completion.

    Request body:
        {"jobId": "...", "siteId": 1}

    Returns:
        200 with the result when the job completed,
        500 with the error when the job failed or the request errored,
        400 on missing fields, 404 for an unknown job
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    job_id = data.get('jobId')
    if not job_id:
        logger.error("[SEO Metadata Extract] Missing jobId or siteId")
        return jsonify({'error': 'jobId and siteId are required'}), 400

    try:
        site_id = parse_site_id(data.get('siteId'))
    except ValidationError as e:
        logger.error(f"[SEO Metadata Extract] {e}")
        return jsonify({'error': str(e)}), 400

    tracker = JobTracker(_db())

    try:
        if tracker.get(job_id) is None:
            return jsonify({'error': f'Job not found: {job_id}'}), 404

        job = MetadataExtractJob(_db(), http_client=current_app.extensions['seo_http_client'])
        summary = job.run(job_id, site_id)
    except Exception as e:
        logger.error(f"[SEO Metadata Extract] Error: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    logger.info(f"[SEO Metadata Extract] Job {job_id} finished: {summary['status']}")

    if summary['status'] == 'failed':
        return jsonify({
            'jobId': job_id,
            'status': 'failed',
            'error': summary.get('error'),
        }), 500

    return jsonify({
        'jobId': job_id,
        'status': summary['status'],
        'result': summary['result'],
    }), 200


@metadata_bp.route('/jobs', methods=['POST'])
def create_job():
    """
    Create a queued job.

    Request body:
        {"siteId": 1, "jobType": "metadata_extract"}
    """
    data = request.get_json(silent=True) or {}

    try:
        site_id = parse_site_id(data.get('siteId'))
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400

    with _db().get_session() as session:
        site_exists = session.get(Site, site_id) is not None

    if not site_exists:
        return jsonify({'error': f'Site not found: {site_id}'}), 404

    job_id = JobTracker(_db()).create(site_id, job_type=data.get('jobType') or 'metadata_extract')
    return jsonify({'jobId': job_id, 'status': 'queued'}), 201


@metadata_bp.route('/jobs/<job_id>', methods=['GET'])
def get_job(job_id):
    """Poll a job record."""
    job = JobTracker(_db()).get(job_id)
    if job is None:
        return jsonify({'error': f'Job not found: {job_id}'}), 404

    return jsonify({'job': job})
