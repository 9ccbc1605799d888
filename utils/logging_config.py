"""
Configuración de logging de la aplicación.

Escribe un archivo rotativo en la carpeta de logs y replica los mensajes
por consola. Los módulos usan logging.getLogger(__name__).
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "lyrics_scanner.log"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3


def setup_logging(log_dir: Path, level: int = logging.INFO, console: bool = True) -> logging.Logger:
    """Configurar el logger raíz con archivo rotativo y consola.

    Args:
        log_dir: carpeta donde se guarda el log
        level: nivel mínimo para la consola (el archivo guarda DEBUG)
        console: replicar en stderr

    Returns:
        El logger raíz configurado
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Evitar handlers duplicados si se llama dos veces
    for handler in list(root.handlers):
        if getattr(handler, "_lyrics_scanner", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(
        log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    file_handler._lyrics_scanner = True
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        console_handler._lyrics_scanner = True
        root.addHandler(console_handler)

    # PIL y matplotlib son muy verbosos en DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("pdfminer").setLevel(logging.WARNING)

    root.info("=" * 60)
    root.info("Sesión iniciada - log: %s", log_file)
    return root
