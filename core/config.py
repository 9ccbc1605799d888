"""
Configuración de rutas de la aplicación.

Los directorios se resuelven con platformdirs; la variable de entorno
LYRICS_SCANNER_HOME permite redirigir todo a una carpeta propia
(útil para instalaciones portables y para los tests).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_cache_dir, user_data_dir, user_log_dir

APP_NAME = "LyricsScanner"
APP_AUTHOR = "LyricsScanner"
APP_VERSION = "1.0.0"
HOME_ENV_VAR = "LYRICS_SCANNER_HOME"


def get_data_dir() -> Path:
    """Directorio de datos (base de datos, preferencias, exportaciones)"""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def get_cache_dir() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override) / "cache"
    return Path(user_cache_dir(APP_NAME, APP_AUTHOR))


def get_log_dir() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override) / "logs"
    return Path(user_log_dir(APP_NAME, APP_AUTHOR))


@dataclass
class AppConfig:
    """Rutas y constantes de la aplicación.

    Attributes:
        data_dir: carpeta con la base de datos y settings.json
        cache_dir: carpeta temporal (archivos compartidos)
        log_dir: carpeta de logs
    """

    data_dir: Path = field(default_factory=get_data_dir)
    cache_dir: Path = field(default_factory=get_cache_dir)
    log_dir: Path = field(default_factory=get_log_dir)
    database_name: str = "lyrics_scanner.db3"
    settings_name: str = "settings.json"
    version: str = APP_VERSION

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_name

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.settings_name

    @property
    def export_dir(self) -> Path:
        return self.data_dir / "Exports"

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "Backups"

    @property
    def shares_dir(self) -> Path:
        return self.cache_dir / "Shares"

    def ensure_directories(self) -> None:
        """Crear las carpetas que la aplicación necesita"""
        for path in (self.data_dir, self.cache_dir, self.log_dir, self.export_dir):
            path.mkdir(parents=True, exist_ok=True)

    @classmethod
    def for_directory(cls, base: Path) -> "AppConfig":
        """Configuración con todo bajo una sola carpeta"""
        base = Path(base)
        return cls(data_dir=base, cache_dir=base / "cache", log_dir=base / "logs")
