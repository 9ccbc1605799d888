"""
Preferencias del usuario persistidas en settings.json.

Cada setter guarda inmediatamente. Un archivo corrupto se registra en el log
y se trata como vacío (se usan los valores por defecto).
"""

import json
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import from_iso, to_iso

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")
EXPORT_FORMATS = ("TXT", "DOCX", "PDF", "JSON", "CSV")

DEFAULTS: Dict[str, Any] = {
    "theme": "system",
    "default_ocr_language": "en",
    "auto_save_after_ocr": True,
    "font_size": 16.0,
    "show_line_numbers": False,
    "default_export_format": "TXT",
    "export_directory": None,
    "case_sensitive_search": False,
    "search_history_limit": 20,
    "auto_backup": False,
    "backup_interval_days": 7,
    "last_backup_date": None,
    "collect_analytics": False,
    "export_count": 0,
    "search_history": [],
}

# Tipo esperado de cada clave al importar
KEY_TYPES: Dict[str, type] = {
    "theme": str,
    "default_ocr_language": str,
    "auto_save_after_ocr": bool,
    "font_size": float,
    "show_line_numbers": bool,
    "default_export_format": str,
    "export_directory": str,
    "case_sensitive_search": bool,
    "search_history_limit": int,
    "auto_backup": bool,
    "backup_interval_days": int,
    "last_backup_date": datetime,
    "collect_analytics": bool,
}

# Límites (mínimo, máximo) aplicados por los setters y al importar
RANGES: Dict[str, tuple] = {
    "font_size": (8.0, 48.0),
    "search_history_limit": (0, None),
    "backup_interval_days": (1, None),
}

# No se exportan ni importan
_RUNTIME_KEYS = ("export_count", "search_history")


def _clamp(key: str, value: Any) -> Any:
    if key not in RANGES or value is None:
        return value
    low, high = RANGES[key]
    value = max(low, value)
    return value if high is None else min(high, value)


def _coerce(value: Any, expected: type) -> Any:
    """Convertir un valor importado al tipo de la clave; ValueError si no se puede"""
    if value is None:
        return None
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "si", "sí"):
            return True
        if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
            return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"No es booleano: {value!r}")
    if expected is int:
        if isinstance(value, bool):
            raise ValueError(f"No es entero: {value!r}")
        return int(value)
    if expected is float:
        if isinstance(value, bool):
            raise ValueError(f"No es número: {value!r}")
        return float(value)
    if expected is datetime:
        return to_iso(from_iso(str(value)))
    return str(value)


class SettingsManager:
    def __init__(self, settings_path, default_export_directory=None):
        self.settings_path = Path(settings_path)
        self.default_export_directory = str(default_export_directory) if default_export_directory else None
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = self._load()

    # ===== PERSISTENCIA =====
    def _load(self) -> Dict[str, Any]:
        if not self.settings_path.exists():
            return {}
        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("el contenido no es un objeto JSON")
            return data
        except (OSError, ValueError) as e:
            logger.error(f"No se pudieron leer las preferencias {self.settings_path}: {e}")
            return {}

    def _save(self) -> None:
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._values, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"No se pudieron guardar las preferencias: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            return self._values[key]
        if default is not None:
            return default
        value = DEFAULTS.get(key)
        return list(value) if isinstance(value, list) else value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._save()

    # ===== APARIENCIA =====
    def get_theme(self) -> str:
        theme = self.get("theme")
        return theme if theme in THEMES else "system"

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise ValueError(f"Tema desconocido: {theme}")
        self.set("theme", theme)

    def get_font_size(self) -> float:
        return float(self.get("font_size"))

    def set_font_size(self, size: float):
        self.set("font_size", _clamp("font_size", float(size)))

    def get_show_line_numbers(self) -> bool:
        return bool(self.get("show_line_numbers"))

    def set_show_line_numbers(self, value: bool):
        self.set("show_line_numbers", bool(value))

    # ===== OCR =====
    def get_default_ocr_language(self) -> str:
        return self.get("default_ocr_language")

    def set_default_ocr_language(self, language: str):
        self.set("default_ocr_language", language)

    def get_auto_save_after_ocr(self) -> bool:
        return bool(self.get("auto_save_after_ocr"))

    def set_auto_save_after_ocr(self, value: bool):
        self.set("auto_save_after_ocr", bool(value))

    # ===== EXPORTACIÓN =====
    def get_default_export_format(self) -> str:
        fmt = str(self.get("default_export_format")).upper()
        return fmt if fmt in EXPORT_FORMATS else "TXT"

    def set_default_export_format(self, fmt: str):
        if fmt.upper() not in EXPORT_FORMATS:
            raise ValueError(f"Formato desconocido: {fmt}")
        self.set("default_export_format", fmt.upper())

    def get_export_directory(self) -> Optional[str]:
        return self.get("export_directory") or self.default_export_directory

    def set_export_directory(self, path: str):
        self.set("export_directory", str(path))

    def get_export_count(self) -> int:
        return int(self.get("export_count"))

    def increment_export_count(self) -> int:
        count = self.get_export_count() + 1
        self.set("export_count", count)
        return count

    # ===== BÚSQUEDA =====
    def get_case_sensitive_search(self) -> bool:
        return bool(self.get("case_sensitive_search"))

    def set_case_sensitive_search(self, value: bool):
        self.set("case_sensitive_search", bool(value))

    def get_search_history_limit(self) -> int:
        return int(self.get("search_history_limit"))

    def set_search_history_limit(self, limit: int):
        self.set("search_history_limit", _clamp("search_history_limit", int(limit)))
        self.set("search_history", self.get_search_history()[: self.get_search_history_limit()])

    def get_search_history(self) -> List[str]:
        return list(self.get("search_history") or [])

    def add_search_history(self, term: str) -> None:
        """Agregar término al inicio del historial (sin duplicados)"""
        term = (term or "").strip()
        if not term:
            return
        history = [t for t in self.get_search_history() if t != term]
        history.insert(0, term)
        self.set("search_history", history[: self.get_search_history_limit()])

    def clear_search_history(self):
        self.set("search_history", [])

    # ===== BACKUP =====
    def get_auto_backup(self) -> bool:
        return bool(self.get("auto_backup"))

    def set_auto_backup(self, value: bool):
        self.set("auto_backup", bool(value))

    def get_backup_interval_days(self) -> int:
        return int(self.get("backup_interval_days"))

    def set_backup_interval_days(self, days: int):
        self.set("backup_interval_days", _clamp("backup_interval_days", int(days)))

    def get_last_backup_date(self) -> Optional[datetime]:
        return from_iso(self.get("last_backup_date"))

    def set_last_backup_date(self, value: Optional[datetime] = None):
        self.set("last_backup_date", to_iso(value or datetime.now()))

    def is_backup_due(self, now: Optional[datetime] = None) -> bool:
        if not self.get_auto_backup():
            return False
        last = self.get_last_backup_date()
        if last is None:
            return True
        now = now or datetime.now()
        return now - last >= timedelta(days=self.get_backup_interval_days())

    # ===== PRIVACIDAD =====
    def get_collect_analytics(self) -> bool:
        return bool(self.get("collect_analytics"))

    def set_collect_analytics(self, value: bool):
        self.set("collect_analytics", bool(value))

    # ===== GENERAL =====
    def reset_all(self) -> None:
        with self._lock:
            self._values = {}
            self._save()
        logger.info("Preferencias restablecidas")

    def export_settings(self) -> Dict[str, Any]:
        """Preferencias actuales sin contadores ni historial"""
        return {key: self.get(key) for key in DEFAULTS if key not in _RUNTIME_KEYS}

    def import_settings(self, data: Dict[str, Any]) -> int:
        """Importar preferencias; devuelve cuántas claves se aplicaron"""
        applied = 0
        with self._lock:
            for key, value in data.items():
                expected = KEY_TYPES.get(key)
                if expected is None:
                    logger.warning(f"Preferencia desconocida ignorada: {key}")
                    continue
                try:
                    coerced = _coerce(value, expected)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Valor inválido para {key}: {e}")
                    continue
                if key == "theme" and coerced not in THEMES:
                    logger.warning(f"Tema inválido ignorado: {coerced}")
                    continue
                self._values[key] = _clamp(key, coerced)
                applied += 1
            limit = self._values.get("search_history_limit")
            if limit is not None and "search_history" in self._values:
                self._values["search_history"] = self._values["search_history"][:limit]
            self._save()
        return applied
