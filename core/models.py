"""
Modelos de datos: Hymn, HymnBook, Collection y HymnCollection.

Cada modelo sabe construirse desde una fila de sqlite3 (from_row) y
convertirse a un diccionario serializable (to_dict) para backups y exportación.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.helpers import split_tags

DEFAULT_LANGUAGE = "English"
NO_LYRICS_TEXT = "Sin letra disponible"


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Convertir datetime a texto ISO (o None)"""
    return value.isoformat(timespec="seconds") if value else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Convertir texto ISO a datetime; tolera None y cadenas vacías"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _row_get(row, key: str, default=None):
    """sqlite3.Row no tiene .get()"""
    try:
        value = row[key]
    except (IndexError, KeyError):
        return default
    return default if value is None else value


@dataclass
class Hymn:
    """Himno con su letra y metadatos"""

    title: str = ""
    lyrics: str = ""
    number: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    hymn_book_id: Optional[int] = None
    is_favorite: bool = False
    tags: Optional[str] = None
    notes: Optional[str] = None
    view_count: int = 0
    last_viewed_date: Optional[datetime] = None
    created_date: datetime = field(default_factory=datetime.now)
    modified_date: datetime = field(default_factory=datetime.now)
    id: int = 0

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)

    @tag_list.setter
    def tag_list(self, values: List[str]):
        self.tags = ", ".join(values)

    @property
    def display_title(self) -> str:
        return f"{self.number}. {self.title}" if self.number else self.title

    @property
    def preview_text(self) -> str:
        if not self.lyrics:
            return NO_LYRICS_TEXT
        lines = [l for l in self.lyrics.split("\n") if l.strip()]
        return lines[0] if lines else NO_LYRICS_TEXT

    @property
    def word_count(self) -> int:
        if not self.lyrics:
            return 0
        return len([w for w in self.lyrics.split(" ") if w])

    @property
    def line_count(self) -> int:
        if not self.lyrics:
            return 0
        return len([l for l in self.lyrics.split("\n") if l])

    @classmethod
    def from_row(cls, row) -> "Hymn":
        return cls(
            id=row["id"],
            title=row["title"],
            number=row["number"],
            lyrics=row["lyrics"] or "",
            language=row["language"] or DEFAULT_LANGUAGE,
            hymn_book_id=row["hymn_book_id"],
            is_favorite=bool(row["is_favorite"]),
            tags=row["tags"],
            notes=row["notes"],
            view_count=row["view_count"] or 0,
            last_viewed_date=from_iso(row["last_viewed_date"]),
            created_date=from_iso(row["created_date"]) or datetime.now(),
            modified_date=from_iso(row["modified_date"]) or datetime.now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "number": self.number,
            "lyrics": self.lyrics,
            "language": self.language,
            "hymn_book_id": self.hymn_book_id,
            "is_favorite": self.is_favorite,
            "tags": self.tags,
            "notes": self.notes,
            "view_count": self.view_count,
            "last_viewed_date": to_iso(self.last_viewed_date),
            "created_date": to_iso(self.created_date),
            "modified_date": to_iso(self.modified_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hymn":
        return cls(
            id=data.get("id") or 0,
            title=data.get("title") or "",
            number=data.get("number"),
            lyrics=data.get("lyrics") or "",
            language=data.get("language") or DEFAULT_LANGUAGE,
            hymn_book_id=data.get("hymn_book_id"),
            is_favorite=bool(data.get("is_favorite")),
            tags=data.get("tags"),
            notes=data.get("notes"),
            view_count=data.get("view_count") or 0,
            last_viewed_date=from_iso(data.get("last_viewed_date")),
            created_date=from_iso(data.get("created_date")) or datetime.now(),
            modified_date=from_iso(data.get("modified_date")) or datetime.now(),
        )


@dataclass
class HymnBook:
    """Himnario (fuente/agrupación de himnos)"""

    name: str = ""
    language: str = DEFAULT_LANGUAGE
    publisher: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True
    created_date: datetime = field(default_factory=datetime.now)
    modified_date: datetime = field(default_factory=datetime.now)
    id: int = 0
    # Calculado por las consultas, no se guarda
    hymn_count: int = 0

    @property
    def display_name(self) -> str:
        if self.publisher and self.year:
            return f"{self.name} ({self.publisher}, {self.year})"
        return self.name

    @property
    def summary(self) -> str:
        return f"{self.hymn_count} himnos • {self.language}"

    @classmethod
    def from_row(cls, row) -> "HymnBook":
        return cls(
            id=row["id"],
            name=row["name"],
            language=row["language"] or DEFAULT_LANGUAGE,
            publisher=row["publisher"],
            year=row["year"],
            description=row["description"],
            color=row["color"],
            is_active=bool(row["is_active"]),
            created_date=from_iso(row["created_date"]) or datetime.now(),
            modified_date=from_iso(row["modified_date"]) or datetime.now(),
            hymn_count=_row_get(row, "hymn_count", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "language": self.language,
            "publisher": self.publisher,
            "year": self.year,
            "description": self.description,
            "color": self.color,
            "is_active": self.is_active,
            "created_date": to_iso(self.created_date),
            "modified_date": to_iso(self.modified_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HymnBook":
        return cls(
            id=data.get("id") or 0,
            name=data.get("name") or "",
            language=data.get("language") or DEFAULT_LANGUAGE,
            publisher=data.get("publisher"),
            year=data.get("year"),
            description=data.get("description"),
            color=data.get("color"),
            is_active=bool(data.get("is_active", True)),
            created_date=from_iso(data.get("created_date")) or datetime.now(),
            modified_date=from_iso(data.get("modified_date")) or datetime.now(),
        )


@dataclass
class Collection:
    """Colección definida por el usuario (tipo lista de reproducción)"""

    name: str = ""
    description: Optional[str] = None
    color: Optional[str] = None
    is_default: bool = False
    sort_order: int = 0
    created_date: datetime = field(default_factory=datetime.now)
    modified_date: datetime = field(default_factory=datetime.now)
    id: int = 0
    hymn_count: int = 0

    @property
    def summary(self) -> str:
        return f"{self.hymn_count} himnos"

    @classmethod
    def from_row(cls, row) -> "Collection":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            color=row["color"],
            is_default=bool(row["is_default"]),
            sort_order=row["sort_order"] or 0,
            created_date=from_iso(row["created_date"]) or datetime.now(),
            modified_date=from_iso(row["modified_date"]) or datetime.now(),
            hymn_count=_row_get(row, "hymn_count", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "is_default": self.is_default,
            "sort_order": self.sort_order,
            "created_date": to_iso(self.created_date),
            "modified_date": to_iso(self.modified_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        return cls(
            id=data.get("id") or 0,
            name=data.get("name") or "",
            description=data.get("description"),
            color=data.get("color"),
            is_default=bool(data.get("is_default")),
            sort_order=data.get("sort_order") or 0,
            created_date=from_iso(data.get("created_date")) or datetime.now(),
            modified_date=from_iso(data.get("modified_date")) or datetime.now(),
        )


@dataclass
class HymnCollection:
    """Fila de la tabla de unión himno <-> colección"""

    hymn_id: int
    collection_id: int
    sort_order: int = 0
    added_date: datetime = field(default_factory=datetime.now)
    id: int = 0

    @classmethod
    def from_row(cls, row) -> "HymnCollection":
        return cls(
            id=row["id"],
            hymn_id=row["hymn_id"],
            collection_id=row["collection_id"],
            sort_order=row["sort_order"] or 0,
            added_date=from_iso(row["added_date"]) or datetime.now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hymn_id": self.hymn_id,
            "collection_id": self.collection_id,
            "sort_order": self.sort_order,
            "added_date": to_iso(self.added_date),
        }
