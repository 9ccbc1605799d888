# test_models.py
import os
import sys
from datetime import datetime

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.models import Hymn, HymnBook, Collection, NO_LYRICS_TEXT, from_iso, to_iso


class TestHymn:

    def test_display_title(self):
        assert Hymn(title="Amazing Grace", number="12").display_title == "12. Amazing Grace"
        assert Hymn(title="Amazing Grace").display_title == "Amazing Grace"

    def test_preview_text(self):
        hymn = Hymn(title="x", lyrics="\n\n  \nFirst line\nSecond line")
        assert hymn.preview_text == "First line"
        assert Hymn(title="x").preview_text == NO_LYRICS_TEXT
        assert Hymn(title="x", lyrics="\n  \n").preview_text == NO_LYRICS_TEXT

    def test_word_and_line_count(self):
        hymn = Hymn(title="x", lyrics="one two  three\n\nfour")
        # Se separan palabras solo por espacios, no por saltos de línea
        assert hymn.word_count == 3
        assert hymn.line_count == 2
        assert Hymn(title="x").word_count == 0
        assert Hymn(title="x").line_count == 0

    def test_tag_list(self):
        hymn = Hymn(title="x", tags=" grace , classic,, ")
        assert hymn.tag_list == ["grace", "classic"]
        hymn.tag_list = ["a", "b"]
        assert hymn.tags == "a, b"
        assert Hymn(title="x").tag_list == []

    def test_dict_roundtrip_keeps_dates(self):
        created = datetime(2024, 1, 2, 3, 4, 5)
        hymn = Hymn(title="T", lyrics="L", created_date=created, modified_date=created, id=7)
        restored = Hymn.from_dict(hymn.to_dict())
        assert restored.id == 7
        assert restored.created_date == created
        assert restored.last_viewed_date is None


class TestHymnBook:

    def test_display_name(self):
        assert HymnBook(name="Book", publisher="Pub", year=2020).display_name == "Book (Pub, 2020)"
        assert HymnBook(name="Book", publisher="Pub").display_name == "Book"

    def test_summary(self):
        book = HymnBook(name="Book", language="French", hymn_count=4)
        assert book.summary == "4 himnos • French"
        assert Collection(name="C", hymn_count=2).summary == "2 himnos"

    def test_from_dict_defaults_active(self):
        assert HymnBook.from_dict({"name": "B"}).is_active is True


def test_iso_helpers():
    assert to_iso(None) is None
    assert from_iso("") is None
    value = datetime(2023, 5, 6, 7, 8, 9)
    assert from_iso(to_iso(value)) == value
