import json
import logging
import shutil
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Generator, List, Optional

from utils.helpers import split_tags

from .models import Collection, Hymn, HymnBook, HymnCollection, from_iso, to_iso

EXPORT_VERSION = "1.0"

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS hymn_books (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        language TEXT NOT NULL DEFAULT 'English',
        publisher TEXT,
        year INTEGER,
        description TEXT,
        color TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_date TEXT NOT NULL,
        modified_date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS hymns (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        number TEXT,
        lyrics TEXT NOT NULL DEFAULT '',
        language TEXT NOT NULL DEFAULT 'English',
        hymn_book_id INTEGER REFERENCES hymn_books(id),
        is_favorite INTEGER NOT NULL DEFAULT 0,
        tags TEXT,
        notes TEXT,
        view_count INTEGER NOT NULL DEFAULT 0,
        last_viewed_date TEXT,
        created_date TEXT NOT NULL,
        modified_date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS collections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT,
        color TEXT,
        is_default INTEGER NOT NULL DEFAULT 0,
        sort_order INTEGER NOT NULL DEFAULT 0,
        created_date TEXT NOT NULL,
        modified_date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS hymn_collections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        hymn_id INTEGER NOT NULL REFERENCES hymns(id) ON DELETE CASCADE,
        collection_id INTEGER NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
        sort_order INTEGER NOT NULL DEFAULT 0,
        added_date TEXT NOT NULL,
        UNIQUE (hymn_id, collection_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_hymns_title ON hymns(title)",
    "CREATE INDEX IF NOT EXISTS idx_hymns_language ON hymns(language)",
    "CREATE INDEX IF NOT EXISTS idx_hymns_book ON hymns(hymn_book_id)",
    "CREATE INDEX IF NOT EXISTS idx_hymns_favorite ON hymns(is_favorite)",
    "CREATE INDEX IF NOT EXISTS idx_hymns_created ON hymns(created_date)",
    "CREATE INDEX IF NOT EXISTS idx_hymn_books_language ON hymn_books(language)",
]

DEFAULT_HYMN_BOOKS = [
    HymnBook(name="Church of God Hymnal", language="English", publisher="Church of God",
             year=2023, description="Himnario oficial de la Iglesia de Dios", color="#2E7D32"),
    HymnBook(name="Nyimbo za Kristo", language="Swahili", year=2020,
             description="Himnos en suajili", color="#1976D2"),
    HymnBook(name="Cantiques Chrétiens", language="French", year=2021,
             description="Himnos en francés", color="#4CAF50"),
]

DEFAULT_COLLECTIONS = [
    Collection(name="Favorites", description="Himnos favoritos", color="#F44336",
               is_default=True, sort_order=0),
    Collection(name="Sunday Service", description="Himnos para el culto dominical",
               color="#2E7D32", sort_order=1),
    Collection(name="Communion", description="Himnos para la Santa Cena",
               color="#9C27B0", sort_order=2),
]

# Orden numérico para números de himno guardados como texto ("12", "12a", "")
NUMBER_ORDER = (
    "CASE WHEN number IS NULL OR number = '' THEN 1 ELSE 0 END, "
    "CAST(number AS INTEGER), number"
)


class DatabaseManager:
    """Acceso a la base SQLite local de himnos, himnarios y colecciones.

    La conexión se comparte entre el hilo de Tk y los hilos de OCR
    (check_same_thread=False); todas las operaciones pasan por un RLock.
    """

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.logger = logging.getLogger(__name__)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._initialized = False

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def close(self) -> None:
        """Cerrar la conexión"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
            self._initialized = False

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Transacción con commit/rollback automático"""
        with self._lock:
            conn = self.connection
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _query(self, sql: str, params=()) -> List[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchall()

    def _query_one(self, sql: str, params=()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchone()

    def _scalar(self, sql: str, params=()):
        row = self._query_one(sql, params)
        return row[0] if row else None

    # ===== INICIALIZACIÓN =====
    def initialize(self) -> None:
        """Crear tablas e índices (idempotente) y cargar datos por defecto"""
        if self._initialized:
            return
        with self.transaction() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        self._initialized = True
        self._seed_default_data()
        self.logger.info(f"Base de datos inicializada en {self.db_path}")

    def is_initialized(self) -> bool:
        return self._initialized

    def _seed_default_data(self) -> None:
        if self._scalar("SELECT COUNT(*) FROM hymn_books"):
            return
        self.logger.info("Cargando himnarios y colecciones por defecto")
        for book in DEFAULT_HYMN_BOOKS:
            self.save_hymn_book(replace(book, id=0))
        if not self._scalar("SELECT COUNT(*) FROM collections"):
            for collection in DEFAULT_COLLECTIONS:
                self.save_collection(replace(collection, id=0))

    # ===== HIMNOS =====
    def get_hymns(self) -> List[Hymn]:
        """Todos los himnos ordenados por título"""
        return [Hymn.from_row(r) for r in self._query("SELECT * FROM hymns ORDER BY title")]

    def get_hymns_by_book(self, hymn_book_id: int) -> List[Hymn]:
        rows = self._query(
            f"SELECT * FROM hymns WHERE hymn_book_id = ? ORDER BY {NUMBER_ORDER}, title",
            (hymn_book_id,),
        )
        return [Hymn.from_row(r) for r in rows]

    def get_favorite_hymns(self) -> List[Hymn]:
        rows = self._query("SELECT * FROM hymns WHERE is_favorite = 1 ORDER BY title")
        return [Hymn.from_row(r) for r in rows]

    def get_recent_hymns(self, count: int = 10) -> List[Hymn]:
        rows = self._query(
            "SELECT * FROM hymns ORDER BY modified_date DESC, id DESC LIMIT ?", (count,)
        )
        return [Hymn.from_row(r) for r in rows]

    def get_hymns_by_language(self, language: str) -> List[Hymn]:
        rows = self._query("SELECT * FROM hymns WHERE language = ? ORDER BY title", (language,))
        return [Hymn.from_row(r) for r in rows]

    def get_hymns_by_tag(self, tag: str) -> List[Hymn]:
        rows = self._query(
            "SELECT * FROM hymns WHERE tags LIKE ? ORDER BY title", (f"%{tag.strip()}%",)
        )
        return [Hymn.from_row(r) for r in rows]

    def search_hymns(self, search_term: str, case_sensitive: bool = False) -> List[Hymn]:
        """Buscar en título, letra, número y etiquetas.

        Un término vacío devuelve todos los himnos. Sin distinción de
        mayúsculas se usa LIKE; con distinción, instr().
        """
        if not search_term or not search_term.strip():
            return self.get_hymns()

        term = search_term.strip()
        fields = ("title", "lyrics", "number", "tags")
        if case_sensitive:
            where = " OR ".join(f"instr(IFNULL({f}, ''), ?) > 0" for f in fields)
            params = (term,) * len(fields)
        else:
            where = " OR ".join(f"{f} LIKE ?" for f in fields)
            params = (f"%{term}%",) * len(fields)

        rows = self._query(f"SELECT * FROM hymns WHERE {where} ORDER BY title", params)
        return [Hymn.from_row(r) for r in rows]

    def get_hymn(self, hymn_id: int) -> Optional[Hymn]:
        row = self._query_one("SELECT * FROM hymns WHERE id = ?", (hymn_id,))
        return Hymn.from_row(row) if row else None

    def save_hymn(self, hymn: Hymn) -> int:
        """Insertar o actualizar un himno; devuelve el id"""
        now = datetime.now()
        hymn.modified_date = now
        with self.transaction() as conn:
            if hymn.id:
                conn.execute(
                    """
                    UPDATE hymns SET title = ?, number = ?, lyrics = ?, language = ?,
                        hymn_book_id = ?, is_favorite = ?, tags = ?, notes = ?,
                        view_count = ?, last_viewed_date = ?, modified_date = ?
                    WHERE id = ?
                    """,
                    (hymn.title, hymn.number, hymn.lyrics, hymn.language,
                     hymn.hymn_book_id or None, int(hymn.is_favorite), hymn.tags, hymn.notes,
                     hymn.view_count, to_iso(hymn.last_viewed_date), to_iso(now), hymn.id),
                )
            else:
                hymn.created_date = now
                self._insert_hymn(conn, hymn)
        return hymn.id

    @staticmethod
    def _insert_hymn(conn: sqlite3.Connection, hymn: Hymn) -> int:
        """INSERT con las fechas que ya trae el himno"""
        cursor = conn.execute(
            """
            INSERT INTO hymns (title, number, lyrics, language, hymn_book_id,
                is_favorite, tags, notes, view_count, last_viewed_date,
                created_date, modified_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (hymn.title, hymn.number, hymn.lyrics, hymn.language,
             hymn.hymn_book_id or None, int(hymn.is_favorite), hymn.tags, hymn.notes,
             hymn.view_count, to_iso(hymn.last_viewed_date), to_iso(hymn.created_date),
             to_iso(hymn.modified_date)),
        )
        hymn.id = cursor.lastrowid
        return hymn.id

    def add_hymn(self, hymn: Hymn) -> int:
        hymn.id = 0
        return self.save_hymn(hymn)

    def update_hymn(self, hymn: Hymn) -> int:
        if not hymn.id:
            raise ValueError("No se puede actualizar un himno sin id")
        return self.save_hymn(hymn)

    def delete_hymn(self, hymn_id: int) -> bool:
        """Eliminar himno y sus pertenencias a colecciones"""
        with self.transaction() as conn:
            conn.execute("DELETE FROM hymn_collections WHERE hymn_id = ?", (hymn_id,))
            cursor = conn.execute("DELETE FROM hymns WHERE id = ?", (hymn_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            self.logger.info(f"Himno {hymn_id} eliminado")
        return deleted

    def toggle_favorite(self, hymn_id: int) -> bool:
        hymn = self.get_hymn(hymn_id)
        if hymn is None:
            return False
        hymn.is_favorite = not hymn.is_favorite
        self.save_hymn(hymn)
        return True

    def update_view_count(self, hymn_id: int) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE hymns SET view_count = view_count + 1, last_viewed_date = ? WHERE id = ?",
                (to_iso(datetime.now()), hymn_id),
            )

    # ===== HIMNARIOS =====
    def get_hymn_books(self) -> List[HymnBook]:
        """Himnarios activos ordenados por nombre"""
        rows = self._query("SELECT * FROM hymn_books WHERE is_active = 1 ORDER BY name")
        return [HymnBook.from_row(r) for r in rows]

    def get_all_hymn_books(self) -> List[HymnBook]:
        rows = self._query("SELECT * FROM hymn_books ORDER BY name")
        return [HymnBook.from_row(r) for r in rows]

    def get_hymn_books_by_language(self, language: str) -> List[HymnBook]:
        rows = self._query(
            "SELECT * FROM hymn_books WHERE is_active = 1 AND language = ? ORDER BY name",
            (language,),
        )
        return [HymnBook.from_row(r) for r in rows]

    def get_hymn_book(self, hymn_book_id: int) -> Optional[HymnBook]:
        row = self._query_one("SELECT * FROM hymn_books WHERE id = ?", (hymn_book_id,))
        return HymnBook.from_row(row) if row else None

    def save_hymn_book(self, book: HymnBook) -> int:
        now = datetime.now()
        book.modified_date = now
        with self.transaction() as conn:
            if book.id:
                conn.execute(
                    """
                    UPDATE hymn_books SET name = ?, language = ?, publisher = ?, year = ?,
                        description = ?, color = ?, is_active = ?, modified_date = ?
                    WHERE id = ?
                    """,
                    (book.name, book.language, book.publisher, book.year, book.description,
                     book.color, int(book.is_active), to_iso(now), book.id),
                )
            else:
                book.created_date = now
                self._insert_hymn_book(conn, book)
        return book.id

    @staticmethod
    def _insert_hymn_book(conn: sqlite3.Connection, book: HymnBook) -> int:
        cursor = conn.execute(
            """
            INSERT INTO hymn_books (name, language, publisher, year, description,
                color, is_active, created_date, modified_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (book.name, book.language, book.publisher, book.year, book.description,
             book.color, int(book.is_active), to_iso(book.created_date),
             to_iso(book.modified_date)),
        )
        book.id = cursor.lastrowid
        return book.id

    def delete_hymn_book(self, hymn_book_id: int) -> bool:
        """Eliminar himnario.

        Si algún himno lo referencia se desactiva (is_active = 0) en lugar
        de borrarse.
        """
        with self.transaction() as conn:
            in_use = conn.execute(
                "SELECT COUNT(*) FROM hymns WHERE hymn_book_id = ?", (hymn_book_id,)
            ).fetchone()[0]
            if in_use:
                cursor = conn.execute(
                    "UPDATE hymn_books SET is_active = 0, modified_date = ? WHERE id = ?",
                    (to_iso(datetime.now()), hymn_book_id),
                )
                if cursor.rowcount:
                    self.logger.info(
                        f"Himnario {hymn_book_id} desactivado ({in_use} himnos lo usan)"
                    )
            else:
                cursor = conn.execute("DELETE FROM hymn_books WHERE id = ?", (hymn_book_id,))
            return cursor.rowcount > 0

    def get_hymn_books_with_counts(self) -> List[HymnBook]:
        rows = self._query(
            """
            SELECT hb.*, COUNT(h.id) AS hymn_count
            FROM hymn_books hb
            LEFT JOIN hymns h ON h.hymn_book_id = hb.id
            WHERE hb.is_active = 1
            GROUP BY hb.id
            ORDER BY hb.name
            """
        )
        return [HymnBook.from_row(r) for r in rows]

    # ===== COLECCIONES =====
    def get_collections(self) -> List[Collection]:
        rows = self._query("SELECT * FROM collections ORDER BY sort_order, name")
        return [Collection.from_row(r) for r in rows]

    def get_collection(self, collection_id: int) -> Optional[Collection]:
        row = self._query_one("SELECT * FROM collections WHERE id = ?", (collection_id,))
        return Collection.from_row(row) if row else None

    def save_collection(self, collection: Collection) -> int:
        now = datetime.now()
        collection.modified_date = now
        with self.transaction() as conn:
            if collection.id:
                conn.execute(
                    """
                    UPDATE collections SET name = ?, description = ?, color = ?,
                        is_default = ?, sort_order = ?, modified_date = ?
                    WHERE id = ?
                    """,
                    (collection.name, collection.description, collection.color,
                     int(collection.is_default), collection.sort_order, to_iso(now),
                     collection.id),
                )
            else:
                collection.created_date = now
                self._insert_collection(conn, collection)
        return collection.id

    @staticmethod
    def _insert_collection(conn: sqlite3.Connection, collection: Collection) -> int:
        cursor = conn.execute(
            """
            INSERT INTO collections (name, description, color, is_default,
                sort_order, created_date, modified_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (collection.name, collection.description, collection.color,
             int(collection.is_default), collection.sort_order,
             to_iso(collection.created_date), to_iso(collection.modified_date)),
        )
        collection.id = cursor.lastrowid
        return collection.id

    def delete_collection(self, collection_id: int) -> bool:
        with self.transaction() as conn:
            conn.execute("DELETE FROM hymn_collections WHERE collection_id = ?", (collection_id,))
            cursor = conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
            return cursor.rowcount > 0

    def get_collections_with_counts(self) -> List[Collection]:
        rows = self._query(
            """
            SELECT c.*, COUNT(hc.id) AS hymn_count
            FROM collections c
            LEFT JOIN hymn_collections hc ON hc.collection_id = c.id
            GROUP BY c.id
            ORDER BY c.sort_order, c.name
            """
        )
        return [Collection.from_row(r) for r in rows]

    # ===== HIMNOS EN COLECCIONES =====
    def get_hymns_in_collection(self, collection_id: int) -> List[Hymn]:
        rows = self._query(
            """
            SELECT h.* FROM hymns h
            INNER JOIN hymn_collections hc ON hc.hymn_id = h.id
            WHERE hc.collection_id = ?
            ORDER BY hc.sort_order, h.title
            """,
            (collection_id,),
        )
        return [Hymn.from_row(r) for r in rows]

    def add_hymn_to_collection(self, hymn_id: int, collection_id: int) -> bool:
        """Agregar himno al final de la colección; False si ya estaba"""
        with self.transaction() as conn:
            return self._link_hymn(conn, hymn_id, collection_id)

    @staticmethod
    def _link_hymn(conn: sqlite3.Connection, hymn_id: int, collection_id: int,
                   added_date: Optional[datetime] = None) -> bool:
        exists = conn.execute(
            "SELECT 1 FROM hymn_collections WHERE hymn_id = ? AND collection_id = ?",
            (hymn_id, collection_id),
        ).fetchone()
        if exists:
            return False
        max_order = conn.execute(
            "SELECT MAX(sort_order) FROM hymn_collections WHERE collection_id = ?",
            (collection_id,),
        ).fetchone()[0]
        next_order = 0 if max_order is None else max_order + 1
        conn.execute(
            """
            INSERT INTO hymn_collections (hymn_id, collection_id, sort_order, added_date)
            VALUES (?, ?, ?, ?)
            """,
            (hymn_id, collection_id, next_order, to_iso(added_date or datetime.now())),
        )
        return True

    def remove_hymn_from_collection(self, hymn_id: int, collection_id: int) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM hymn_collections WHERE hymn_id = ? AND collection_id = ?",
                (hymn_id, collection_id),
            )
            return cursor.rowcount > 0

    def is_hymn_in_collection(self, hymn_id: int, collection_id: int) -> bool:
        row = self._query_one(
            "SELECT 1 FROM hymn_collections WHERE hymn_id = ? AND collection_id = ?",
            (hymn_id, collection_id),
        )
        return row is not None

    def get_collections_for_hymn(self, hymn_id: int) -> List[Collection]:
        rows = self._query(
            """
            SELECT c.* FROM collections c
            INNER JOIN hymn_collections hc ON hc.collection_id = c.id
            WHERE hc.hymn_id = ?
            ORDER BY c.name
            """,
            (hymn_id,),
        )
        return [Collection.from_row(r) for r in rows]

    def get_hymn_collections(self, collection_id: int) -> List[HymnCollection]:
        rows = self._query(
            "SELECT * FROM hymn_collections WHERE collection_id = ? ORDER BY sort_order",
            (collection_id,),
        )
        return [HymnCollection.from_row(r) for r in rows]

    def delete_hymn_collection(self, hymn_collection_id: int) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM hymn_collections WHERE id = ?", (hymn_collection_id,))
            return cursor.rowcount > 0

    def reorder_collection(self, collection_id: int, hymn_ids: List[int]) -> None:
        """Reescribir el orden de la colección según la lista recibida"""
        with self.transaction() as conn:
            for position, hymn_id in enumerate(hymn_ids):
                conn.execute(
                    "UPDATE hymn_collections SET sort_order = ? WHERE collection_id = ? AND hymn_id = ?",
                    (position, collection_id, hymn_id),
                )

    # ===== ESTADÍSTICAS =====
    def get_total_hymns_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM hymns") or 0

    def get_total_books_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM hymn_books WHERE is_active = 1") or 0

    def get_total_collections_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM collections") or 0

    def get_favorite_hymns_count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM hymns WHERE is_favorite = 1") or 0

    def get_available_languages(self) -> List[str]:
        rows = self._query(
            "SELECT DISTINCT language FROM hymns WHERE language IS NOT NULL AND language != '' ORDER BY language"
        )
        return [r["language"] for r in rows]

    def get_available_tags(self) -> List[str]:
        rows = self._query("SELECT tags FROM hymns WHERE tags IS NOT NULL AND tags != ''")
        tags = set()
        for row in rows:
            tags.update(split_tags(row["tags"]))
        return sorted(tags)

    # ===== BACKUP / RESTORE =====
    def export_database(self) -> str:
        """Volcar todas las tablas a JSON indentado"""
        data = {
            "hymns": [h.to_dict() for h in self.get_hymns()],
            "hymn_books": [b.to_dict() for b in self.get_all_hymn_books()],
            "collections": [c.to_dict() for c in self.get_collections()],
            "hymn_collections": [
                HymnCollection.from_row(r).to_dict()
                for r in self._query("SELECT * FROM hymn_collections ORDER BY id")
            ],
            "export_date": to_iso(datetime.now()),
            "version": EXPORT_VERSION,
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_database(self, file_path) -> bool:
        """Fusionar un archivo generado por export_database().

        Himnarios y colecciones con el mismo nombre se reutilizan; el resto
        se inserta con ids nuevos y las pertenencias se re-enlazan. Las
        fechas del archivo se conservan. Todo ocurre en una sola
        transacción: si un registro falla no se importa nada.
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"No se pudo leer el archivo de importación {file_path}: {e}")
            return False

        if not isinstance(data, dict) or "hymns" not in data:
            self.logger.error(f"Formato de importación inválido: {file_path}")
            return False

        try:
            with self.transaction() as conn:
                book_ids = self._merge_hymn_books(conn, data.get("hymn_books", []))
                collection_ids = self._merge_collections(conn, data.get("collections", []))

                hymn_ids: Dict[int, int] = {}
                for item in data.get("hymns", []):
                    hymn = Hymn.from_dict(item)
                    if not hymn.title.strip():
                        raise ValueError(f"Himno sin título en la importación (id {hymn.id})")
                    old_id = hymn.id
                    hymn.hymn_book_id = book_ids.get(hymn.hymn_book_id) if hymn.hymn_book_id else None
                    hymn_ids[old_id] = self._insert_hymn(conn, hymn)

                linked = 0
                memberships = sorted(data.get("hymn_collections", []),
                                     key=lambda m: (m.get("collection_id") or 0, m.get("sort_order") or 0))
                for item in memberships:
                    hymn_id = hymn_ids.get(item.get("hymn_id"))
                    collection_id = collection_ids.get(item.get("collection_id"))
                    if hymn_id and collection_id and self._link_hymn(
                            conn, hymn_id, collection_id, from_iso(item.get("added_date"))):
                        linked += 1
        except (sqlite3.Error, AttributeError, KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Error importando base de datos: {e}")
            return False

        self.logger.info(
            f"Importación completada: {len(hymn_ids)} himnos, {linked} pertenencias"
        )
        return True

    def _merge_hymn_books(self, conn: sqlite3.Connection, items: List[Dict]) -> Dict[int, int]:
        existing = {r["name"]: r["id"] for r in conn.execute("SELECT id, name FROM hymn_books")}
        mapping = {}
        for item in items:
            book = HymnBook.from_dict(item)
            old_id = book.id
            if book.name not in existing:
                existing[book.name] = self._insert_hymn_book(conn, book)
            mapping[old_id] = existing[book.name]
        return mapping

    def _merge_collections(self, conn: sqlite3.Connection, items: List[Dict]) -> Dict[int, int]:
        existing = {r["name"]: r["id"] for r in conn.execute("SELECT id, name FROM collections")}
        mapping = {}
        for item in items:
            collection = Collection.from_dict(item)
            old_id = collection.id
            if collection.name not in existing:
                existing[collection.name] = self._insert_collection(conn, collection)
            mapping[old_id] = existing[collection.name]
        return mapping

    def backup_database(self, backup_path) -> bool:
        """Copia en caliente con la API de backup de sqlite3"""
        backup_path = Path(backup_path)
        try:
            backup_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                target = sqlite3.connect(str(backup_path))
                try:
                    self.connection.backup(target)
                finally:
                    target.close()
            self.logger.info(f"Backup creado en {backup_path}")
            return True
        except (OSError, sqlite3.Error) as e:
            self.logger.error(f"Error creando backup en {backup_path}: {e}")
            return False

    def restore_database(self, backup_path) -> bool:
        """Reemplazar la base actual por el archivo de backup.

        El archivo se valida antes de tocar la base actual, y si la base
        restaurada no se puede inicializar se vuelve a la copia anterior.
        """
        backup_path = Path(backup_path)
        if not backup_path.exists():
            self.logger.warning(f"El backup no existe: {backup_path}")
            return False
        if not self._is_valid_backup(backup_path):
            return False

        with self._lock:
            previous = self.db_path.with_name(self.db_path.name + ".restore")
            self.close()
            try:
                if self.db_path.exists():
                    shutil.copyfile(self.db_path, previous)
                shutil.copyfile(backup_path, self.db_path)
                self.initialize()
            except (OSError, sqlite3.Error) as e:
                self.logger.error(f"Error restaurando backup {backup_path}: {e}")
                self.close()
                if previous.exists():
                    shutil.copyfile(previous, self.db_path)
                self.initialize()
                return False
            finally:
                if previous.exists():
                    previous.unlink()
        self.logger.info(f"Base de datos restaurada desde {backup_path}")
        return True

    def _is_valid_backup(self, backup_path: Path) -> bool:
        """PRAGMA quick_check sobre el archivo sin modificar la base actual"""
        try:
            conn = sqlite3.connect(f"{backup_path.resolve().as_uri()}?mode=ro", uri=True)
            try:
                result = conn.execute("PRAGMA quick_check").fetchone()
                tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
            finally:
                conn.close()
        except sqlite3.Error as e:
            self.logger.error(f"El backup {backup_path} no es una base SQLite válida: {e}")
            return False
        if not result or result[0] != "ok" or "hymns" not in tables:
            self.logger.error(f"El backup {backup_path} no contiene una base de himnos válida")
            return False
        return True

    # ===== MANTENIMIENTO =====
    def optimize_database(self) -> None:
        with self.transaction() as conn:
            conn.execute("ANALYZE")

    def vacuum_database(self) -> None:
        with self._lock:
            self.connection.commit()
            self.connection.execute("VACUUM")

    def get_database_size(self) -> int:
        try:
            return self.db_path.stat().st_size
        except OSError:
            return 0
