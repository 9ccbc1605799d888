"""
Filtrado y ordenamiento en memoria de listas de himnos, y un debouncer
para la búsqueda mientras se escribe.
"""

import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from .models import Hymn

ALL_OPTION = "Todos"

SORT_KEYS = ("title", "number", "created", "modified", "views")

_LEADING_DIGITS_RE = re.compile(r"\s*(\d+)")


def _is_all(value) -> bool:
    return value is None or value == 0 or value == "" or value == ALL_OPTION


def filter_hymns(hymns: Iterable[Hymn], hymn_book_id=None, language=None,
                 favorites_only: bool = False,
                 hymn_ids: Optional[Iterable[int]] = None) -> List[Hymn]:
    """Aplicar filtros; None, 0 o "Todos" significan sin filtro"""
    result = list(hymns)
    if not _is_all(hymn_book_id):
        result = [h for h in result if h.hymn_book_id == hymn_book_id]
    if not _is_all(language):
        result = [h for h in result if h.language == language]
    if favorites_only:
        result = [h for h in result if h.is_favorite]
    if hymn_ids is not None:
        allowed = set(hymn_ids)
        result = [h for h in result if h.id in allowed]
    return result


def _number_key(hymn: Hymn):
    match = _LEADING_DIGITS_RE.match(hymn.number or "")
    if not match:
        return (1, 0, (hymn.number or "").lower(), hymn.title.lower())
    return (0, int(match.group(1)), (hymn.number or "").lower(), hymn.title.lower())


def sort_hymns(hymns: Iterable[Hymn], sort_by: str = "title", ascending: bool = True) -> List[Hymn]:
    """Ordenar por título, número, creación, modificación o vistas"""
    hymns = list(hymns)
    if sort_by == "number":
        numbered = sorted((h for h in hymns if _number_key(h)[0] == 0), key=_number_key,
                          reverse=not ascending)
        others = sorted((h for h in hymns if _number_key(h)[0] == 1), key=_number_key)
        # Los himnos sin número van siempre al final
        return numbered + others
    if sort_by == "created":
        key = lambda h: h.created_date or datetime.min
    elif sort_by == "modified":
        key = lambda h: h.modified_date or datetime.min
    elif sort_by == "views":
        key = lambda h: h.view_count
    else:
        key = lambda h: h.title.lower()
    return sorted(hymns, key=key, reverse=not ascending)


def filter_by_text(hymns: Iterable[Hymn], text: Optional[str]) -> List[Hymn]:
    """Coincidencia sin distinguir mayúsculas en título, número, letra o etiquetas"""
    hymns = list(hymns)
    if not text or not text.strip():
        return hymns
    needle = text.strip().lower()
    return [
        h for h in hymns
        if needle in (h.title or "").lower()
        or needle in (h.number or "").lower()
        or needle in (h.lyrics or "").lower()
        or needle in (h.tags or "").lower()
    ]


class Debouncer:
    """Retrasa una llamada hasta que pasen `delay_ms` sin nuevas llamadas.

    Usa after/after_cancel de un widget Tk, así el callback corre en el hilo
    de la interfaz.
    """

    def __init__(self, widget, delay_ms: int, callback: Callable[[], None]):
        self.widget = widget
        self.delay_ms = delay_ms
        self.callback = callback
        self._after_id = None

    def trigger(self, *_args) -> None:
        self.cancel()
        self._after_id = self.widget.after(self.delay_ms, self._fire)

    def cancel(self) -> None:
        if self._after_id is not None:
            self.widget.after_cancel(self._after_id)
            self._after_id = None

    def _fire(self) -> None:
        self._after_id = None
        self.callback()
