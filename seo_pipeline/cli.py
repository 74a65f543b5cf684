"""
SEO Pipeline CLI

Command-line interface for pipeline operations.

Usage:
    python -m seo_pipeline <command> [options]

Commands:
    init-db     - Create database tables
    add-site    - Register a site
    create-job  - Create a queued metadata extract job for a site
    extract     - Run a metadata extract job (creates one if --job-id is omitted)
    job-status  - Show a job record
    archive     - Ranking history: snapshot, import, backfill
    trend       - Show ranking history and trend for a keyword
    serve       - Run the HTTP API
"""

import argparse
import json
import sys

from db.database_manager import create_db_manager
from runner.logging_setup import get_logger
from seo_pipeline.config import Config

logger = get_logger("seo_cli")


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(args):
    """Create database tables."""
    db = create_db_manager(args.database_url)
    db.create_tables()
    print("Database tables created")
    return 0


def cmd_add_site(args):
    """Register a site for crawling."""
    from db.models import Site, domain_from_url

    db = create_db_manager(args.database_url)
    domain = domain_from_url(args.domain)

    with db.get_session() as session:
        site = Site(domain=domain, sitemap_url=args.sitemap_url)
        session.add(site)
        session.flush()
        site_id = site.id

    print(f"Site {site_id}: {domain}")
    return 0


def cmd_create_job(args):
    """Create a queued job."""
    from seo_pipeline.jobs import JobTracker

    db = create_db_manager(args.database_url)
    job_id = JobTracker(db).create(args.site_id)
    print(job_id)
    return 0


def cmd_extract(args):
    """Run metadata extraction for a site."""
    from seo_pipeline.jobs import JobTracker, MetadataExtractJob

    db = create_db_manager(args.database_url)
    job_id = args.job_id or JobTracker(db).create(args.site_id)

    summary = MetadataExtractJob(db).run(job_id, args.site_id)

    if summary['status'] == 'completed':
        result = summary['result']
        print(f"\nJob {job_id} completed for {result['domain']}")
        print("=" * 60)
        print(f"URLs found: {result['total']}")
        print(f"Extracted:  {result['extracted']}")
        print(f"Created:    {result['created']}")
        print(f"Updated:    {result['updated']}")
        print(f"Errors:     {result['errors']}")
        print(f"Duplicates: {result['duplicates']}")
        return 0

    print(f"\nJob {job_id} failed: {summary['error']}")
    return 1


def cmd_job_status(args):
    """Show a job record."""
    from seo_pipeline.jobs import JobTracker

    db = create_db_manager(args.database_url)
    job = JobTracker(db).get(args.job_id)
    if job is None:
        print(f"Job not found: {args.job_id}")
        return 1

    _print_json(job)
    return 0


def cmd_archive(args):
    """Ranking history archive actions."""
    from seo_pipeline.services import RankingHistoryArchiver

    db = create_db_manager(args.database_url)
    archiver = RankingHistoryArchiver(db)

    if args.action == 'snapshot':
        result = archiver.snapshot(args.site_id)
    elif args.action == 'backfill':
        result = archiver.backfill_from_gsc(args.site_id)
    else:
        if not args.file:
            print("Please provide a JSON file with --file")
            return 1
        with open(args.file, 'r', encoding='utf-8') as f:
            records = json.load(f)
        result = archiver.import_history(args.site_id, records)

    _print_json(result)
    return 0


def cmd_trend(args):
    """Show ranking history and trend for a keyword."""
    from seo_pipeline.services import RankingHistoryArchiver

    db = create_db_manager(args.database_url)
    data = RankingHistoryArchiver(db).get_history_with_trend(
        args.site_id, keyword=args.keyword, limit=args.limit
    )

    print(f"\nRanking history for '{args.keyword}':")
    print("=" * 60)
    for row in data['history']:
        print(f"{row['date']}  #{row['position']}  {row['keyword']}  ({row['source']})")

    if data['trend']:
        print()
        _print_json(data['trend'])
    return 0


def cmd_serve(args):
    """Run the HTTP API."""
    from api.app import create_app

    app = create_app(database_url=args.database_url)
    app.run(host=args.host, port=args.port, debug=Config.DEBUG)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seo_pipeline",
        description="SEO metadata pipeline",
    )
    parser.add_argument('--database-url', default=None, help='Override DATABASE_URL')
    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('init-db', help='Create database tables')
    p.set_defaults(func=cmd_init_db)

    p = subparsers.add_parser('add-site', help='Register a site')
    p.add_argument('domain', help='Domain or URL, e.g. example.com')
    p.add_argument('--sitemap-url', default=None, help='Sitemap location (default: https://{domain}/sitemap.xml)')
    p.set_defaults(func=cmd_add_site)

    p = subparsers.add_parser('create-job', help='Create a queued metadata extract job')
    p.add_argument('--site-id', type=int, required=True)
    p.set_defaults(func=cmd_create_job)

    p = subparsers.add_parser('extract', help='Run metadata extraction for a site')
    p.add_argument('--site-id', type=int, required=True)
    p.add_argument('--job-id', default=None, help='Existing queued job id')
    p.set_defaults(func=cmd_extract)

    p = subparsers.add_parser('job-status', help='Show a job record')
    p.add_argument('job_id')
    p.set_defaults(func=cmd_job_status)

    p = subparsers.add_parser('archive', help='Ranking history archive actions')
    p.add_argument('action', choices=['snapshot', 'import', 'backfill'])
    p.add_argument('--site-id', type=int, required=True)
    p.add_argument('--file', default=None, help='JSON list of rows for import')
    p.set_defaults(func=cmd_archive)

    p = subparsers.add_parser('trend', help='Show ranking history and trend for a keyword')
    p.add_argument('--site-id', type=int, required=True)
    p.add_argument('--keyword', required=True)
    p.add_argument('--limit', type=int, default=Config.RANKING_HISTORY_LIMIT)
    p.set_defaults(func=cmd_trend)

    p = subparsers.add_parser('serve', help='Run the HTTP API')
    p.add_argument('--host', default=Config.API_HOST)
    p.add_argument('--port', type=int, default=Config.API_PORT)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        Config.validate()
    except ValueError as e:
        logger.error(str(e))
        print(f"✗ {e}", file=sys.stderr)
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
