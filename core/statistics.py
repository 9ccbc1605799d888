"""Estadísticas de la biblioteca de himnos."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from utils.helpers import format_bytes

NO_BOOK_LABEL = "Sin himnario"
NONE_LABEL = "Ninguno"
RECENT_DAYS = 7


def _distribution(counter: Counter, total: int) -> List[Dict]:
    items = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        {
            'name': name,
            'count': count,
            'percentage': round(count * 100.0 / total, 1) if total else 0.0,
        }
        for name, count in items
    ]


def compute_statistics(db, settings=None, now: Optional[datetime] = None) -> Dict:
    """
    Calcular las estadísticas que muestra la pantalla de estadísticas

    Args:
        db: DatabaseManager
        settings: SettingsManager opcional (para el contador de exportaciones)
        now: fecha de referencia (por defecto datetime.now())
    """
    now = now or datetime.now()
    since = now - timedelta(days=RECENT_DAYS)
    hymns = db.get_hymns()
    total = len(hymns)

    recently_added = sum(1 for h in hymns if h.created_date >= since)
    recently_modified = sum(
        1 for h in hymns
        if h.modified_date >= since and h.modified_date != h.created_date
    )

    most_viewed = NONE_LABEL
    viewed = [h for h in hymns if h.view_count > 0]
    if viewed:
        top = max(viewed, key=lambda h: h.view_count)
        most_viewed = f"{top.title} ({top.view_count} vistas)"

    languages = Counter(h.language or "?" for h in hymns)

    book_names = {b.id: b.name for b in db.get_all_hymn_books()}
    books = Counter(
        book_names.get(h.hymn_book_id, NO_BOOK_LABEL) if h.hymn_book_id else NO_BOOK_LABEL
        for h in hymns
    )

    size = db.get_database_size()
    return {
        'total_hymns': total,
        'favorite_hymns': sum(1 for h in hymns if h.is_favorite),
        'total_views': sum(h.view_count for h in hymns),
        'total_collections': db.get_total_collections_count(),
        'total_hymn_books': db.get_total_books_count(),
        'recently_added': recently_added,
        'recently_modified': recently_modified,
        'most_viewed': most_viewed,
        'language_distribution': _distribution(languages, total),
        'hymn_book_distribution': _distribution(books, total),
        'total_exports': settings.get_export_count() if settings else 0,
        'database_size': size,
        'database_size_text': format_bytes(size),
    }
