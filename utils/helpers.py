"""Funciones auxiliares compartidas por los servicios y la interfaz."""

import re
from typing import List, Optional

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_file_name(name: str, default: str = "export") -> str:
    """Quitar caracteres no válidos en nombres de archivo"""
    cleaned = _INVALID_FILENAME_CHARS.sub("_", name or "").strip().strip(".")
    return cleaned or default


def escape_csv(value: Optional[str]) -> str:
    """Escapar un valor para CSV: comillas dobles y saltos de línea aplanados"""
    if value is None:
        return ""
    text = str(value).replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if any(ch in text for ch in (",", '"')):
        text = '"' + text.replace('"', '""') + '"'
    return text


def format_bytes(size: int) -> str:
    """1536 -> '1.5 KB'"""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def split_tags(text: Optional[str]) -> List[str]:
    """'a, ,b ' -> ['a', 'b']"""
    if not text:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]
