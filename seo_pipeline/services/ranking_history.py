"""
Ranking History Service

Archives keyword ranking positions as an immutable daily time series:
- snapshot: today's tracked-keyword positions joined with GSC metrics
  (re-running the same day refreshes that day's rows)
- import: externally supplied historical rows (existing rows are kept)
- backfill: today's GSC query rows matched to tracked keywords
  (existing rows are kept)

One row per (site, keyword, date).

Usage:
    archiver = RankingHistoryArchiver(db)
    archiver.snapshot(site_id=1)
    archiver.import_history(site_id=1, records=[{"keyword": "shoes", "date": "2024-01-01", "position": 5}])
    history = archiver.get_history_with_trend(site_id=1, keyword="shoes")
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select

from db.database_manager import DatabaseManager
from db.models import GscQuery, RankingHistory, TrackedKeyword
from runner.logging_setup import get_logger
from seo_pipeline.config import Config
from seo_pipeline.exceptions import ValidationError
from seo_pipeline.services.ranking_trends import calculate_trend

logger = get_logger("ranking_history")

SOURCE_SNAPSHOT = "gsc"
SOURCE_BACKFILL = "gsc-backfill"
SOURCE_IMPORT = "import"


def parse_date(value) -> Optional[date]:
    """Parse a date or ISO date/datetime string. Returns None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_position(value) -> Optional[float]:
    """Parse a ranking position. Returns None unless it is a positive number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        position = float(value)
    except (TypeError, ValueError):
        return None
    return position if position > 0 else None


def _as_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class RankingHistoryArchiver:
    """Writes and reads the seo_ranking_history time series."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _upsert(self, session, values: Dict[str, Any], overwrite: bool) -> str:
        """
        Write one row keyed on (site_id, keyword, date); keyword compares case-insensitively.

        Returns:
            'inserted', 'updated' or 'skipped'
        """
        stmt = select(RankingHistory).where(
            RankingHistory.site_id == values['site_id'],
            func.lower(RankingHistory.keyword) == func.lower(values['keyword']),
            RankingHistory.date == values['date'],
        )
        existing = session.execute(stmt).scalars().first()

        if existing is None:
            session.add(RankingHistory(**values))
            session.flush()
            return 'inserted'

        if not overwrite:
            return 'skipped'

        for key, value in values.items():
            setattr(existing, key, value)
        session.flush()
        return 'updated'

    def _tracked_keywords(self, session, site_id: int) -> Dict[str, TrackedKeyword]:
        stmt = select(TrackedKeyword).where(TrackedKeyword.site_id == site_id)
        return {kw.keyword.lower(): kw for kw in session.execute(stmt).scalars()}

    def snapshot(self, site_id: int, snapshot_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Archive today's position of every tracked keyword that has one.

        Re-running for the same date overwrites that date's rows. Past dates
        are refused so a later run cannot rewrite history.

        Returns:
            dict: {'archived', 'date'} plus 'message' when nothing was archived

        Raises:
            ValidationError: snapshot_date is in the past
        """
        today = date.today()
        snapshot_date = snapshot_date or today
        if snapshot_date < today:
            raise ValidationError(
                f"Snapshot date {snapshot_date} is in the past; use import for historical rows"
            )

        with self.db.get_session() as session:
            keywords = session.execute(
                select(TrackedKeyword).where(
                    TrackedKeyword.site_id == site_id,
                    TrackedKeyword.current_position.is_not(None),
                )
            ).scalars().all()

            if not keywords:
                logger.info(f"Site {site_id}: no tracked keywords with positions to archive")
                return {
                    'archived': 0,
                    'date': snapshot_date.isoformat(),
                    'message': "No tracked keywords with positions",
                }

            # Latest row per query wins
            gsc_rows = session.execute(
                select(GscQuery)
                .where(GscQuery.site_id == site_id)
                .order_by(GscQuery.date.asc().nulls_first(), GscQuery.id.asc())
            ).scalars()
            gsc_map = {row.query.lower(): row for row in gsc_rows}

            counts = {'inserted': 0, 'updated': 0, 'skipped': 0}
            for kw in keywords:
                gsc = gsc_map.get(kw.keyword.lower())
                action = self._upsert(session, {
                    'site_id': site_id,
                    'keyword_id': kw.id,
                    'keyword': kw.keyword,
                    'date': snapshot_date,
                    'url': kw.best_ranking_url,
                    'position': kw.current_position,
                    'clicks': gsc.clicks if gsc else 0,
                    'impressions': gsc.impressions if gsc else 0,
                    'ctr': gsc.ctr if gsc else None,
                    'source': SOURCE_SNAPSHOT,
                }, overwrite=True)
                counts[action] += 1

        logger.info(
            f"Site {site_id}: archived {len(keywords)} keywords for {snapshot_date} "
            f"({counts['inserted']} new, {counts['updated']} refreshed)"
        )
        return {
            'archived': len(keywords),
            'date': snapshot_date.isoformat(),
            'inserted': counts['inserted'],
            'updated': counts['updated'],
        }

    def import_history(self, site_id: int, records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Import historical ranking rows.

        Records missing keyword, date or position (or with an unparseable
        date or non-positive position) are dropped. Rows that already exist
        for (site, keyword, date) are left untouched.
        Keywords matching a tracked keyword are stored under its spelling.

        Returns:
            dict: {'imported', 'duplicates', 'skipped_invalid'}
        """
        valid = []
        skipped_invalid = 0

        for record in records:
            if not isinstance(record, dict):
                skipped_invalid += 1
                continue

            keyword = (record.get('keyword') or '').strip()
            record_date = parse_date(record.get('date'))
            position = parse_position(record.get('position'))

            if not keyword or record_date is None or position is None:
                skipped_invalid += 1
                continue

            valid.append((keyword, record_date, position, record))

        if skipped_invalid:
            logger.warning(f"Site {site_id}: dropped {skipped_invalid} invalid import rows")

        imported = 0
        duplicates = 0

        with self.db.get_session() as session:
            tracked = self._tracked_keywords(session, site_id)

            for keyword, record_date, position, record in valid:
                kw = tracked.get(keyword.lower())
                action = self._upsert(session, {
                    'site_id': site_id,
                    'keyword_id': kw.id if kw else None,
                    'keyword': kw.keyword if kw else keyword,
                    'date': record_date,
                    'url': record.get('url'),
                    'position': position,
                    'clicks': _as_int(record.get('clicks')),
                    'impressions': _as_int(record.get('impressions')),
                    'ctr': _as_float(record.get('ctr')),
                    'source': record.get('source') or SOURCE_IMPORT,
                }, overwrite=False)

                if action == 'inserted':
                    imported += 1
                else:
                    duplicates += 1

        logger.info(
            f"Site {site_id}: imported {imported} ranking rows "
            f"({duplicates} duplicates ignored)"
        )
        return {
            'imported': imported,
            'duplicates': duplicates,
            'skipped_invalid': skipped_invalid,
        }

    def backfill_from_gsc(self, site_id: int, snapshot_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Build ranking rows from the date's GSC query rows.

        A query row is used when it matches a tracked keyword exactly
        (case-insensitive) and carries a positive position. Existing rows
        are left untouched.

        Returns:
            dict: {'backfilled', 'duplicates', 'date'}
        """
        snapshot_date = snapshot_date or date.today()
        backfilled = 0
        duplicates = 0

        with self.db.get_session() as session:
            tracked = self._tracked_keywords(session, site_id)
            gsc_rows = session.execute(
                select(GscQuery)
                .where(GscQuery.site_id == site_id, GscQuery.date == snapshot_date)
                .order_by(GscQuery.id.asc())
            ).scalars().all()

            for row in gsc_rows:
                kw = tracked.get(row.query.lower())
                position = parse_position(row.position)
                if kw is None or position is None:
                    continue

                action = self._upsert(session, {
                    'site_id': site_id,
                    'keyword_id': kw.id,
                    'keyword': kw.keyword,
                    'date': snapshot_date,
                    'url': row.page_url or kw.best_ranking_url,
                    'position': position,
                    'clicks': row.clicks or 0,
                    'impressions': row.impressions or 0,
                    'ctr': row.ctr,
                    'source': SOURCE_BACKFILL,
                }, overwrite=False)

                if action == 'inserted':
                    backfilled += 1
                else:
                    duplicates += 1

        logger.info(f"Site {site_id}: backfilled {backfilled} ranking rows for {snapshot_date}")
        return {
            'backfilled': backfilled,
            'duplicates': duplicates,
            'date': snapshot_date.isoformat(),
        }

    def get_history(
        self,
        site_id: int,
        keyword: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read ranking rows newest first.

        Args:
            site_id: Site to read
            keyword: Case-insensitive substring filter
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound
            limit: Maximum rows (default: Config.RANKING_HISTORY_LIMIT)
        """
        stmt = select(RankingHistory).where(RankingHistory.site_id == site_id)

        if keyword:
            stmt = stmt.where(RankingHistory.keyword.icontains(keyword, autoescape=True))
        if start_date:
            stmt = stmt.where(RankingHistory.date >= start_date)
        if end_date:
            stmt = stmt.where(RankingHistory.date <= end_date)

        stmt = stmt.order_by(
            RankingHistory.date.desc(), RankingHistory.keyword.asc()
        ).limit(limit or Config.RANKING_HISTORY_LIMIT)

        with self.db.get_session() as session:
            return [row.to_dict() for row in session.execute(stmt).scalars()]

    def get_history_with_trend(self, site_id: int, keyword: Optional[str] = None, **filters) -> Dict[str, Any]:
        """
        Read ranking rows plus a trend summary.

        The trend is included when a keyword filter narrows the rows to a
        single keyword with more than one row.
        """
        history = self.get_history(site_id, keyword=keyword, **filters)
        trend = None

        if keyword and len(history) > 1:
            keywords = {row['keyword'].lower() for row in history}
            if len(keywords) == 1:
                trend = calculate_trend(history).to_dict()

        return {'history': history, 'trend': trend}
