# test_export_service.py
import json
import os
import sys
from datetime import datetime
from urllib.parse import unquote

import pytest
from docx import Document

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.export_service import (
    CSV_HEADER, HYMN_SEPARATOR, NO_HYMNS_ERROR, SEPARATOR, ExportService
)
from core.models import Collection, Hymn


@pytest.fixture
def service(db, settings, tmp_path):
    return ExportService(db, settings, export_directory=tmp_path / "Exports",
                         shares_directory=tmp_path / "cache" / "Shares")


def hymn(**kwargs):
    values = dict(title="Amazing Grace", number="12", lyrics="Amazing grace\nhow sweet the sound",
                  language="English", tags="grace", created_date=datetime(2024, 5, 1, 9, 30),
                  modified_date=datetime(2024, 5, 2, 10, 0), id=1)
    values.update(kwargs)
    return Hymn(**values)


class TestExportHymns:

    def test_txt_with_metadata(self, service, tmp_path):
        path = tmp_path / "out" / "hymn.txt"
        result = service.export_hymn(hymn(), "txt", path)

        assert result['success'] is True
        assert result['format'] == "TXT"
        assert result['items_exported'] == 1
        content = path.read_text(encoding="utf-8")
        assert content == (
            "Título: Amazing Grace\n"
            "Número: 12\n"
            "Idioma: English\n"
            "Etiquetas: grace\n"
            "Creado: 2024-05-01 09:30\n"
            f"{SEPARATOR}\n"
            "Amazing grace\nhow sweet the sound"
        )

    def test_txt_multiple_hymns_without_metadata(self, service, tmp_path):
        path = tmp_path / "many.txt"
        hymns = [hymn(lyrics="uno"), hymn(id=2, lyrics="dos")]
        service.export_hymns(hymns, "TXT", path, include_metadata=False)
        assert path.read_text(encoding="utf-8") == f"uno\n\n{HYMN_SEPARATOR}\n\ndos"

    def test_empty_list_fails(self, service, tmp_path, settings):
        result = service.export_hymns([], "TXT", tmp_path / "x.txt")
        assert result['success'] is False
        assert result['error'] == NO_HYMNS_ERROR
        assert settings.get_export_count() == 0

    def test_unknown_format(self, service, tmp_path):
        result = service.export_hymn(hymn(), "RTF", tmp_path / "x.rtf")
        assert result['success'] is False
        assert "RTF" in result['error']

    def test_export_count_and_callbacks(self, service, tmp_path, settings):
        progress = []
        completed = []
        service.set_progress_callback(lambda percent, status, current, total: progress.append(percent))
        service.set_completed_callback(completed.append)

        service.export_hymns([hymn(), hymn(id=2)], "TXT", tmp_path / "a.txt")
        assert progress[0] == 0
        assert progress[-1] == 100
        assert completed[0]['success'] is True
        assert settings.get_export_count() == 1

    def test_json(self, service, tmp_path):
        path = tmp_path / "hymn.json"
        service.export_hymn(hymn(is_favorite=True, view_count=3), "JSON", path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert data[0]['title'] == "Amazing Grace"
        assert data[0]['isFavorite'] is True
        assert data[0]['viewCount'] == 3
        assert data[0]['createdDate'] == "2024-05-01T09:30:00"

    def test_csv_escaping(self, service, tmp_path):
        path = tmp_path / "hymns.csv"
        service.export_hymn(hymn(title='Holy, "Holy"', tags=None), "CSV", path)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == CSV_HEADER
        assert lines[1] == (
            '1,"Holy, ""Holy""",12,English,,2024-05-01T09:30:00,2024-05-02T10:00:00,'
            'False,0,Amazing grace how sweet the sound'
        )

    def test_docx(self, service, tmp_path):
        path = tmp_path / "hymns.docx"
        result = service.export_hymns([hymn(), hymn(id=2, title="Second", number=None)], "DOCX", path)
        assert result['success'] is True
        texts = [p.text for p in Document(str(path)).paragraphs]
        assert "12. Amazing Grace" in texts
        assert "Second" in texts
        assert "how sweet the sound" in texts

    def test_pdf(self, service, tmp_path):
        path = tmp_path / "hymn.pdf"
        result = service.export_hymn(hymn(title="Cristo <Rey> & Señor"), "PDF", path)
        assert result['success'] is True
        assert path.read_bytes().startswith(b"%PDF")


class TestCollections:

    def _collection(self, db, sample_hymns):
        collection = Collection(name="Domingo", description="Culto")
        db.save_collection(collection)
        for h in sample_hymns[:2]:
            db.add_hymn_to_collection(h.id, collection.id)
        return collection

    def test_txt_has_header(self, service, db, sample_hymns, tmp_path):
        collection = self._collection(db, sample_hymns)
        path = tmp_path / "col.txt"
        result = service.export_collection(collection, "TXT", path)
        assert result['items_exported'] == 2
        content = path.read_text(encoding="utf-8")
        assert content.startswith("Colección: Domingo\nDescripción: Culto\n")
        assert "Himnos: 2\n" in content

    def test_json_is_wrapped(self, service, db, sample_hymns, tmp_path):
        collection = self._collection(db, sample_hymns)
        path = tmp_path / "col.json"
        service.export_collection(collection, "JSON", path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data['collection']['name'] == "Domingo"
        assert data['collection']['hymnCount'] == 2
        assert [h['title'] for h in data['hymns']] == ["Amazing Grace", "Yesu Ni Bwana"]

    def test_default_path(self, service, db, sample_hymns, tmp_path):
        collection = self._collection(db, sample_hymns)
        result = service.export_collection(collection, "CSV")
        assert result['file_path'] == str(tmp_path / "Exports" / "Domingo.csv")
        assert os.path.exists(result['file_path'])

    def test_empty_collection(self, service, db):
        collection = Collection(name="Vacía")
        db.save_collection(collection)
        result = service.export_collection(collection, "TXT")
        assert result['error'] == NO_HYMNS_ERROR


class TestSharing:

    def test_share_hymn_writes_to_shares_dir(self, service, tmp_path):
        path = service.share_hymn(hymn(title="A/B"), "TXT")
        assert path == str(tmp_path / "cache" / "Shares" / "12_A_B.txt")
        assert os.path.exists(path)

    def test_mailto_link(self):
        link = ExportService.build_mailto_link(hymn())
        assert link.startswith("mailto:?subject=")
        subject, body = link[len("mailto:?subject="):].split("&body=")
        assert unquote(subject) == "12. Amazing Grace"
        assert unquote(body) == "Amazing grace\nhow sweet the sound"

    def test_default_file_name(self, service):
        assert service.default_file_name(hymn(), "pdf") == "12_Amazing Grace.pdf"
        assert service.default_file_name(hymn(number=None, title=""), "TXT") == "himno.txt"


class TestBackup:

    def test_create_backup_records_date(self, service, settings, tmp_path):
        path = tmp_path / "Backups" / "b.db3"
        assert service.create_backup(path)
        assert settings.get_last_backup_date() is not None

    def test_restore_missing(self, service, tmp_path):
        assert not service.restore_backup(str(tmp_path / "nada.db3"))
