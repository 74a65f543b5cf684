#!/usr/bin/env python3
"""
SEO Pipeline API
Flask application exposing the metadata extract job and ranking history.

Endpoints:
    POST /api/seo/metadata-extract     - Run a metadata extract job
    POST /api/seo/jobs                 - Create a queued job
    GET  /api/seo/jobs/<job_id>        - Poll a job
    GET  /api/seo/ranking-history      - Read ranking history (+ trend)
    POST /api/seo/ranking-history      - snapshot | import | backfill-gsc
"""

from datetime import datetime
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from api.routes.metadata_routes import metadata_bp
from api.routes.ranking_routes import ranking_bp
from db.database_manager import DatabaseManager, create_db_manager
from runner.logging_setup import get_logger
from seo_pipeline.config import Config

logger = get_logger("seo_api")


def create_app(
    database_url: Optional[str] = None,
    db: Optional[DatabaseManager] = None,
    http_client=None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        database_url: Database to connect to (default: Config.DATABASE_URL)
        db: Pre-built DatabaseManager (takes precedence over database_url)
        http_client: HTTP client handed to crawl jobs (default: a fresh SEOHTTPClient per job)

    Raises:
        ValueError: If Config fails validation
    """
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Refusing to start API: {e}")
        raise

    app = Flask(__name__)
    app.config.from_object(Config)

    CORS(app, origins=Config.CORS_ORIGINS)

    app.extensions['seo_db'] = db or create_db_manager(database_url)
    app.extensions['seo_http_client'] = http_client

    app.register_blueprint(metadata_bp, url_prefix='/api/seo')
    app.register_blueprint(ranking_bp, url_prefix='/api/seo')

    @app.route('/health')
    def health():
        """Health check endpoint."""
        db_status = app.extensions['seo_db'].get_connection_health()
        status_code = 200 if db_status['connected'] else 500

        return jsonify({
            'status': 'healthy' if db_status['connected'] else 'unhealthy',
            'timestamp': datetime.utcnow().isoformat(),
            'database': db_status,
        }), status_code

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    app = create_app()

    logger.info("=" * 70)
    logger.info("Starting SEO Pipeline API")
    logger.info("=" * 70)
    logger.info(f"Port: {Config.API_PORT}")
    logger.info("=" * 70)

    app.run(
        host=Config.API_HOST,
        port=Config.API_PORT,
        debug=Config.DEBUG
    )
