# test_database.py
import json
import os
import sqlite3
import sys
from datetime import datetime

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.database import DatabaseManager
from core.models import Collection, Hymn, HymnBook


class TestInitialization:

    def test_seeds_default_data(self, db):
        assert db.is_initialized()
        assert [b.name for b in db.get_hymn_books()] == [
            "Cantiques Chrétiens", "Church of God Hymnal", "Nyimbo za Kristo"]
        assert [c.name for c in db.get_collections()] == ["Favorites", "Sunday Service", "Communion"]

    def test_initialize_is_idempotent(self, tmp_path):
        path = tmp_path / "again.db3"
        with DatabaseManager(path) as first:
            first.initialize()
        second = DatabaseManager(path)
        second.initialize()
        second.initialize()
        assert second.get_total_books_count() == 3
        assert second.get_total_collections_count() == 3
        second.close()


class TestHymns:

    def test_save_assigns_id_and_dates(self, db):
        hymn = Hymn(title="New", lyrics="Line")
        hymn_id = db.save_hymn(hymn)
        assert hymn_id > 0
        stored = db.get_hymn(hymn_id)
        assert stored.title == "New"
        assert stored.created_date == stored.modified_date

    def test_update(self, db):
        hymn = Hymn(title="Old", lyrics="x")
        db.add_hymn(hymn)
        hymn.title = "Renamed"
        db.update_hymn(hymn)
        assert db.get_hymn(hymn.id).title == "Renamed"
        assert db.get_total_hymns_count() == 1

    def test_update_without_id_fails(self, db):
        with pytest.raises(ValueError):
            db.update_hymn(Hymn(title="Sin id"))

    def test_get_missing(self, db):
        assert db.get_hymn(9999) is None

    def test_search_case_insensitive(self, db, sample_hymns):
        titles = [h.title for h in db.search_hymns("grace")]
        assert titles == ["Amazing Grace"]
        assert [h.title for h in db.search_hymns("BWANA")] == ["Yesu Ni Bwana"]
        # Busca también en etiquetas y número
        assert [h.title for h in db.search_hymns("classic")] == ["Amazing Grace"]
        assert [h.title for h in db.search_hymns("12")] == ["Amazing Grace"]

    def test_search_case_sensitive(self, db, sample_hymns):
        assert db.search_hymns("grace how", case_sensitive=True)
        assert [h.title for h in db.search_hymns("Amazing", case_sensitive=True)] == ["Amazing Grace"]
        assert db.search_hymns("BWANA", case_sensitive=True) == []

    def test_empty_search_returns_all(self, db, sample_hymns):
        assert len(db.search_hymns("   ")) == 3

    def test_filters(self, db, sample_hymns):
        book_id = sample_hymns[0].hymn_book_id
        # Numerados primero, en orden numérico
        assert [h.title for h in db.get_hymns_by_book(book_id)] == ["Amazing Grace", "Blessed Assurance"]
        assert [h.title for h in db.get_favorite_hymns()] == ["Amazing Grace"]
        assert [h.title for h in db.get_hymns_by_language("Swahili")] == ["Yesu Ni Bwana"]
        assert [h.title for h in db.get_hymns_by_tag("praise")] == ["Yesu Ni Bwana"]
        assert db.get_available_languages() == ["English", "Swahili"]
        assert db.get_available_tags() == ["classic", "grace", "praise"]

    def test_recent_hymns(self, db, sample_hymns):
        assert len(db.get_recent_hymns(2)) == 2
        assert db.get_recent_hymns()[0].title == "Blessed Assurance"

    def test_toggle_favorite_and_views(self, db, sample_hymns):
        hymn = sample_hymns[1]
        assert db.toggle_favorite(hymn.id)
        assert db.get_hymn(hymn.id).is_favorite
        assert db.get_favorite_hymns_count() == 2
        assert not db.toggle_favorite(9999)

        db.update_view_count(hymn.id)
        db.update_view_count(hymn.id)
        stored = db.get_hymn(hymn.id)
        assert stored.view_count == 2
        assert stored.last_viewed_date is not None

    def test_delete_removes_memberships(self, db, sample_hymns):
        hymn = sample_hymns[0]
        collection = db.get_collections()[0]
        db.add_hymn_to_collection(hymn.id, collection.id)
        assert db.delete_hymn(hymn.id)
        assert db.get_hymn(hymn.id) is None
        assert db.get_hymns_in_collection(collection.id) == []
        assert not db.delete_hymn(hymn.id)


class TestHymnBooks:

    def test_delete_unreferenced(self, db):
        book_id = db.save_hymn_book(HymnBook(name="Temporal"))
        assert db.delete_hymn_book(book_id)
        assert db.get_hymn_book(book_id) is None

    def test_delete_referenced_is_soft(self, db, sample_hymns):
        book_id = sample_hymns[0].hymn_book_id
        assert db.delete_hymn_book(book_id)
        book = db.get_hymn_book(book_id)
        assert book is not None and not book.is_active
        assert book_id not in [b.id for b in db.get_hymn_books()]
        assert book_id in [b.id for b in db.get_all_hymn_books()]
        # Los himnos conservan la referencia
        assert db.get_hymn(sample_hymns[0].id).hymn_book_id == book_id

    def test_counts(self, db, sample_hymns):
        counts = {b.name: b.hymn_count for b in db.get_hymn_books_with_counts()}
        assert counts["Cantiques Chrétiens"] + counts["Church of God Hymnal"] + counts["Nyimbo za Kristo"] == 2
        assert [b.name for b in db.get_hymn_books_by_language("Swahili")] == ["Nyimbo za Kristo"]


class TestCollections:

    def test_membership(self, db, sample_hymns):
        collection_id = db.save_collection(Collection(name="Navidad"))
        a, b, c = sample_hymns

        assert db.add_hymn_to_collection(b.id, collection_id)
        assert db.add_hymn_to_collection(a.id, collection_id)
        assert not db.add_hymn_to_collection(a.id, collection_id)

        assert [h.id for h in db.get_hymns_in_collection(collection_id)] == [b.id, a.id]
        assert [hc.sort_order for hc in db.get_hymn_collections(collection_id)] == [0, 1]
        assert db.is_hymn_in_collection(a.id, collection_id)
        assert not db.is_hymn_in_collection(c.id, collection_id)
        assert [col.name for col in db.get_collections_for_hymn(a.id)] == ["Navidad"]

        counts = {col.name: col.hymn_count for col in db.get_collections_with_counts()}
        assert counts["Navidad"] == 2
        assert counts["Favorites"] == 0

    def test_remove_and_reorder(self, db, sample_hymns):
        collection_id = db.save_collection(Collection(name="Orden"))
        ids = [h.id for h in sample_hymns]
        for hymn_id in ids:
            db.add_hymn_to_collection(hymn_id, collection_id)

        db.reorder_collection(collection_id, list(reversed(ids)))
        assert [h.id for h in db.get_hymns_in_collection(collection_id)] == list(reversed(ids))

        assert db.remove_hymn_from_collection(ids[0], collection_id)
        assert not db.remove_hymn_from_collection(ids[0], collection_id)
        membership = db.get_hymn_collections(collection_id)[0]
        assert db.delete_hymn_collection(membership.id)
        assert len(db.get_hymns_in_collection(collection_id)) == 1

    def test_delete_collection_keeps_hymns(self, db, sample_hymns):
        collection_id = db.save_collection(Collection(name="Borrar"))
        db.add_hymn_to_collection(sample_hymns[0].id, collection_id)
        assert db.delete_collection(collection_id)
        assert db.get_collection(collection_id) is None
        assert db.get_hymn(sample_hymns[0].id) is not None

    def test_unique_constraint(self, db, sample_hymns):
        collection_id = db.get_collections()[0].id
        db.add_hymn_to_collection(sample_hymns[0].id, collection_id)
        with pytest.raises(sqlite3.IntegrityError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO hymn_collections (hymn_id, collection_id, sort_order, added_date) "
                    "VALUES (?, ?, 5, '2024-01-01T00:00:00')",
                    (sample_hymns[0].id, collection_id),
                )


class TestBackupAndExport:

    def test_export_json(self, db, sample_hymns):
        data = json.loads(db.export_database())
        assert data["version"] == "1.0"
        assert len(data["hymns"]) == 3
        assert len(data["hymn_books"]) == 3
        assert "export_date" in data

    def test_import_merges_into_other_database(self, db, sample_hymns, tmp_path):
        collection = db.get_collections()[1]
        db.add_hymn_to_collection(sample_hymns[0].id, collection.id)
        db.save_hymn_book(HymnBook(name="Solo en origen", language="Spanish"))
        export_file = tmp_path / "export.json"
        export_file.write_text(db.export_database(), encoding="utf-8")

        other = DatabaseManager(tmp_path / "other.db3")
        other.initialize()
        assert other.import_database(export_file)

        assert other.get_total_hymns_count() == 3
        # Los himnarios con el mismo nombre se reutilizan
        assert other.get_total_books_count() == 4
        imported = [h for h in other.get_hymns() if h.title == "Amazing Grace"][0]
        assert other.get_hymn_book(imported.hymn_book_id).name == db.get_hymn_book(sample_hymns[0].hymn_book_id).name
        target = [c for c in other.get_collections() if c.name == collection.name][0]
        assert [h.title for h in other.get_hymns_in_collection(target.id)] == ["Amazing Grace"]
        other.close()

    def test_import_keeps_original_dates(self, db, tmp_path):
        old = Hymn(title="Antiguo", lyrics="x")
        db.save_hymn(old)
        with db.transaction() as conn:
            conn.execute("UPDATE hymns SET created_date = ?, modified_date = ? WHERE id = ?",
                         ("2001-01-01T00:00:00", "2002-02-02T00:00:00", old.id))
        export_file = tmp_path / "export.json"
        export_file.write_text(db.export_database(), encoding="utf-8")

        other = DatabaseManager(tmp_path / "other.db3")
        other.initialize()
        assert other.import_database(export_file)
        imported = other.get_hymns()[0]
        assert imported.created_date == datetime(2001, 1, 1)
        assert imported.modified_date == datetime(2002, 2, 2)
        other.close()

    def test_import_is_all_or_nothing(self, db, sample_hymns, tmp_path):
        data = json.loads(db.export_database())
        data["hymns"][1]["created_date"] = "not-a-date"
        data["hymn_books"].append({"id": 99, "name": "Nuevo himnario", "language": "Spanish"})
        export_file = tmp_path / "broken.json"
        export_file.write_text(json.dumps(data), encoding="utf-8")

        other = DatabaseManager(tmp_path / "other.db3")
        other.initialize()
        assert not other.import_database(export_file)
        assert other.get_total_hymns_count() == 0
        assert other.get_total_books_count() == 3
        other.close()

    def test_import_invalid_file(self, db, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        assert not db.import_database(bad)
        assert not db.import_database(tmp_path / "missing.json")

    def test_backup_and_restore(self, db, sample_hymns, tmp_path):
        backup = tmp_path / "Backups" / "copy.db3"
        assert db.backup_database(backup)
        assert backup.exists()

        db.delete_hymn(sample_hymns[0].id)
        assert db.get_total_hymns_count() == 2

        assert db.restore_database(backup)
        assert db.get_total_hymns_count() == 3
        assert db.is_initialized()

    def test_restore_missing_file(self, db, tmp_path):
        assert not db.restore_database(tmp_path / "nope.db3")

    def test_restore_rejects_non_database_file(self, db, sample_hymns, tmp_path):
        bogus = tmp_path / "bogus.db3"
        bogus.write_bytes(b"this is not sqlite" * 100)

        assert not db.restore_database(bogus)
        assert db.db_path.read_bytes()[:16] == b"SQLite format 3\x00"
        assert db.get_total_hymns_count() == 3
        assert not (tmp_path / "test.db3.restore").exists()

    def test_restore_rejects_foreign_database(self, db, sample_hymns, tmp_path):
        foreign = tmp_path / "foreign.db3"
        conn = sqlite3.connect(str(foreign))
        conn.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY)")
        conn.commit()
        conn.close()

        assert not db.restore_database(foreign)
        assert db.get_total_hymns_count() == 3

    def test_maintenance(self, db, sample_hymns):
        db.optimize_database()
        db.vacuum_database()
        assert db.get_database_size() > 0
