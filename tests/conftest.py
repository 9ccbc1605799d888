# conftest.py
import os
import sys

import pytest

# Agregar la raíz del proyecto al path para importar core/ y utils/
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from core.database import DatabaseManager
from core.models import Hymn
from core.settings import SettingsManager


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "test.db3")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def settings(tmp_path):
    return SettingsManager(tmp_path / "settings.json", default_export_directory=tmp_path / "Exports")


@pytest.fixture
def sample_hymns(db):
    """Tres himnos guardados: uno favorito, uno en suajili y uno sin número"""
    book_id = db.get_hymn_books()[0].id
    hymns = [
        Hymn(title="Amazing Grace", number="12", lyrics="Amazing grace how sweet the sound\nThat saved a wretch like me",
             language="English", hymn_book_id=book_id, tags="grace, classic", is_favorite=True),
        Hymn(title="Yesu Ni Bwana", number="3", lyrics="Yesu ni Bwana\nNi Bwana wa wote",
             language="Swahili", tags="praise"),
        Hymn(title="Blessed Assurance", lyrics="Blessed assurance Jesus is mine",
             language="English", hymn_book_id=book_id),
    ]
    for hymn in hymns:
        db.save_hymn(hymn)
    return hymns
