# test_statistics.py
import os
import sys
from datetime import datetime, timedelta

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.models import Hymn
from core.statistics import NO_BOOK_LABEL, NONE_LABEL, compute_statistics


class TestComputeStatistics:

    def test_empty_library(self, db):
        stats = compute_statistics(db)
        assert stats['total_hymns'] == 0
        assert stats['most_viewed'] == NONE_LABEL
        assert stats['language_distribution'] == []
        assert stats['total_hymn_books'] == 3
        assert stats['total_collections'] == 3
        assert stats['total_exports'] == 0

    def test_counts_and_distributions(self, db, settings, sample_hymns):
        db.update_view_count(sample_hymns[1].id)
        db.update_view_count(sample_hymns[1].id)
        db.update_view_count(sample_hymns[0].id)
        settings.increment_export_count()

        stats = compute_statistics(db, settings)
        assert stats['total_hymns'] == 3
        assert stats['favorite_hymns'] == 1
        assert stats['total_views'] == 3
        assert stats['most_viewed'] == "Yesu Ni Bwana (2 vistas)"
        assert stats['total_exports'] == 1
        assert stats['recently_added'] == 3

        assert stats['language_distribution'] == [
            {'name': 'English', 'count': 2, 'percentage': 66.7},
            {'name': 'Swahili', 'count': 1, 'percentage': 33.3},
        ]
        book_name = db.get_hymn_book(sample_hymns[0].hymn_book_id).name
        assert stats['hymn_book_distribution'][0] == {'name': book_name, 'count': 2, 'percentage': 66.7}
        assert stats['hymn_book_distribution'][1]['name'] == NO_BOOK_LABEL

        assert stats['database_size'] > 0
        assert stats['database_size_text'].endswith("KB")

    def test_recent_window(self, db):
        old = Hymn(title="Viejo", lyrics="x")
        db.save_hymn(old)
        later = datetime.now() + timedelta(days=30)
        stats = compute_statistics(db, now=later)
        assert stats['recently_added'] == 0
        assert stats['recently_modified'] == 0

    def test_recently_modified_excludes_untouched(self, db):
        hymn = Hymn(title="Editado", lyrics="x")
        db.save_hymn(hymn)
        stored = db.get_hymn(hymn.id)
        stored.created_date = stored.created_date - timedelta(days=1)
        with db.transaction() as conn:
            conn.execute("UPDATE hymns SET created_date = ? WHERE id = ?",
                         (stored.created_date.isoformat(timespec="seconds"), hymn.id))
        db.save_hymn(Hymn(title="Nuevo", lyrics="y"))

        stats = compute_statistics(db)
        assert stats['recently_added'] == 2
        assert stats['recently_modified'] == 1
