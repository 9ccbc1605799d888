"""
Exportación de himnos y colecciones a TXT, DOCX, PDF, JSON y CSV.

Todas las operaciones devuelven un dict de resultado:
    {'success', 'file_path', 'format', 'items_exported', 'processing_time', 'error'}
"""

import json
import logging
import os
import time
import webbrowser
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import quote
from xml.sax.saxutils import escape

from docx import Document
from docx.enum.text import WD_BREAK
from docx.shared import Pt
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import HRFlowable, PageBreak, Paragraph, SimpleDocTemplate, Spacer

from .models import Collection, Hymn, to_iso
from utils.helpers import escape_csv, sanitize_file_name

EXPORT_FORMATS = ("TXT", "DOCX", "PDF", "JSON", "CSV")
FILE_EXTENSIONS = {"TXT": ".txt", "DOCX": ".docx", "PDF": ".pdf", "JSON": ".json", "CSV": ".csv"}
CSV_HEADER = "Id,Title,Number,Language,Tags,CreatedDate,ModifiedDate,IsFavorite,ViewCount,Lyrics"
NO_HYMNS_ERROR = "No hay himnos para exportar"

DATE_FORMAT = "%Y-%m-%d %H:%M"
SEPARATOR = "-" * 50
HYMN_SEPARATOR = "=" * 50


def _metadata_lines(hymn: Hymn) -> List[str]:
    lines = [f"Título: {hymn.title}"]
    if hymn.number:
        lines.append(f"Número: {hymn.number}")
    lines.append(f"Idioma: {hymn.language}")
    if hymn.tags:
        lines.append(f"Etiquetas: {hymn.tags}")
    lines.append(f"Creado: {hymn.created_date.strftime(DATE_FORMAT)}")
    return lines


def collection_header_lines(collection: Collection, hymn_count: int) -> List[str]:
    """Encabezado de colección para TXT/DOCX/PDF"""
    lines = [f"Colección: {collection.name}"]
    if collection.description:
        lines.append(f"Descripción: {collection.description}")
    lines.append(f"Creada: {collection.created_date.strftime(DATE_FORMAT)}")
    lines.append(f"Himnos: {hymn_count}")
    return lines


def hymn_to_export_dict(hymn: Hymn) -> Dict:
    return {
        "id": hymn.id,
        "title": hymn.title,
        "number": hymn.number,
        "lyrics": hymn.lyrics,
        "language": hymn.language,
        "tags": hymn.tags,
        "notes": hymn.notes,
        "createdDate": to_iso(hymn.created_date),
        "modifiedDate": to_iso(hymn.modified_date),
        "isFavorite": hymn.is_favorite,
        "viewCount": hymn.view_count,
    }


class ExportService:
    def __init__(self, db_manager=None, settings=None, export_directory=None, shares_directory=None):
        self.db_manager = db_manager
        self.settings = settings
        self.export_directory = Path(export_directory) if export_directory else Path.home() / "Documents"
        self.shares_directory = Path(shares_directory) if shares_directory else self.export_directory / "Shares"
        self.logger = logging.getLogger(__name__)
        self.progress_callback: Optional[Callable] = None
        self.completed_callback: Optional[Callable] = None

    def set_progress_callback(self, callback):
        """callback(porcentaje, estado, actual, total)"""
        self.progress_callback = callback

    def set_completed_callback(self, callback):
        self.completed_callback = callback

    def _update_progress(self, percent, status, current=0, total=0):
        if self.progress_callback:
            self.progress_callback(percent, status, current, total)

    # ===== INFORMACIÓN =====
    def get_available_formats(self) -> List[str]:
        return list(EXPORT_FORMATS)

    def get_default_export_directory(self) -> str:
        if self.settings and self.settings.get_export_directory():
            return self.settings.get_export_directory()
        return str(self.export_directory)

    def default_file_name(self, hymn: Hymn, fmt: str) -> str:
        base = f"{hymn.number}_{hymn.title}" if hymn.number else hymn.title
        return sanitize_file_name(base, "himno") + FILE_EXTENSIONS[fmt.upper()]

    # ===== EXPORTACIÓN =====
    def export_hymn(self, hymn: Hymn, fmt: str, file_path) -> Dict:
        return self.export_hymns([hymn], fmt, file_path)

    def export_hymns(self, hymns: List[Hymn], fmt: str, file_path,
                     include_metadata: bool = True,
                     header_lines: Optional[List[str]] = None,
                     collection: Optional[Collection] = None) -> Dict:
        """
        Exportar una lista de himnos al formato indicado

        Args:
            hymns: himnos a exportar
            fmt: TXT, DOCX, PDF, JSON o CSV
            file_path: archivo de destino (se crean las carpetas que falten)
            include_metadata: agregar título, número, idioma, etiquetas y fecha
            header_lines: encabezado opcional (TXT/DOCX/PDF)
            collection: si se indica, el JSON se envuelve como {collection, hymns}
        """
        start = time.perf_counter()
        fmt = (fmt or "").upper()
        result = {
            'success': False,
            'file_path': str(file_path),
            'format': fmt,
            'items_exported': 0,
            'processing_time': 0.0,
            'error': None,
        }

        if not hymns:
            result['error'] = NO_HYMNS_ERROR
            return self._finish(result, start)
        if fmt not in EXPORT_FORMATS:
            result['error'] = f"Formato no soportado: {fmt}"
            return self._finish(result, start)

        try:
            Path(file_path).parent.mkdir(parents=True, exist_ok=True)
            self._update_progress(0, f"Exportando {len(hymns)} himnos a {fmt}...", 0, len(hymns))

            if fmt == "TXT":
                self._write_txt(hymns, file_path, include_metadata, header_lines)
            elif fmt == "DOCX":
                self._write_docx(hymns, file_path, include_metadata, header_lines)
            elif fmt == "PDF":
                self._write_pdf(hymns, file_path, include_metadata, header_lines)
            elif fmt == "JSON":
                self._write_json(hymns, file_path, collection)
            else:
                self._write_csv(hymns, file_path)

            result['success'] = True
            result['items_exported'] = len(hymns)
            self._update_progress(100, "Exportación completada", len(hymns), len(hymns))
            if self.settings:
                self.settings.increment_export_count()
            self.logger.info(f"Exportados {len(hymns)} himnos a {file_path}")
        except Exception as e:
            self.logger.error(f"Error exportando a {fmt}: {e}")
            result['error'] = str(e)

        return self._finish(result, start)

    def _finish(self, result: Dict, start: float) -> Dict:
        result['processing_time'] = time.perf_counter() - start
        if self.completed_callback:
            self.completed_callback(result)
        return result

    def _step(self, index: int, total: int):
        self._update_progress(int((index + 1) * 100 / total), f"Himno {index + 1}/{total}", index + 1, total)

    def _write_txt(self, hymns, file_path, include_metadata, header_lines):
        blocks = []
        for i, hymn in enumerate(hymns):
            lines = []
            if include_metadata:
                lines.extend(_metadata_lines(hymn))
                lines.append(SEPARATOR)
            lines.append(hymn.lyrics)
            blocks.append("\n".join(lines))
            self._step(i, len(hymns))

        content = f"\n\n{HYMN_SEPARATOR}\n\n".join(blocks)
        if header_lines:
            content = "\n".join(header_lines) + f"\n{HYMN_SEPARATOR}\n\n" + content

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)

    def _write_docx(self, hymns, file_path, include_metadata, header_lines):
        doc = Document()

        if header_lines:
            heading = doc.add_paragraph()
            run = heading.add_run(header_lines[0])
            run.bold = True
            run.font.size = Pt(16)
            for line in header_lines[1:]:
                doc.add_paragraph(line)
            doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)

        for i, hymn in enumerate(hymns):
            title = doc.add_paragraph()
            run = title.add_run(hymn.display_title)
            run.bold = True
            run.font.size = Pt(12)

            if include_metadata:
                for line in _metadata_lines(hymn)[1:]:
                    meta = doc.add_paragraph()
                    meta_run = meta.add_run(line)
                    meta_run.font.size = Pt(10)
                doc.add_paragraph(SEPARATOR)

            for line in hymn.lyrics.split("\n"):
                doc.add_paragraph(line)

            if i < len(hymns) - 1:
                doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)
            self._step(i, len(hymns))

        doc.save(str(file_path))

    def _pdf_styles(self):
        styles = getSampleStyleSheet()
        return {
            'title': ParagraphStyle('HymnTitle', parent=styles['Heading1'],
                                    fontName='Helvetica-Bold', fontSize=18, leading=22,
                                    spaceAfter=0.3 * cm),
            'meta': ParagraphStyle('HymnMeta', parent=styles['Normal'],
                                   fontSize=10, leading=13),
            'lyrics': ParagraphStyle('HymnLyrics', parent=styles['Normal'],
                                     fontSize=12, leading=16),
        }

    def _write_pdf(self, hymns, file_path, include_metadata, header_lines):
        styles = self._pdf_styles()
        doc = SimpleDocTemplate(str(file_path), pagesize=A4,
                                leftMargin=2 * cm, rightMargin=2 * cm,
                                topMargin=2 * cm, bottomMargin=2 * cm)
        story = []

        if header_lines:
            story.append(Paragraph(escape(header_lines[0]), styles['title']))
            for line in header_lines[1:]:
                story.append(Paragraph(escape(line), styles['meta']))
            story.append(PageBreak())

        for i, hymn in enumerate(hymns):
            story.append(Paragraph(escape(hymn.display_title), styles['title']))
            if include_metadata:
                for line in _metadata_lines(hymn)[1:]:
                    story.append(Paragraph(escape(line), styles['meta']))
            story.append(Spacer(1, 0.2 * cm))
            story.append(HRFlowable(width="100%", thickness=0.5))
            story.append(Spacer(1, 0.3 * cm))

            for line in hymn.lyrics.split("\n"):
                if line.strip():
                    story.append(Paragraph(escape(line), styles['lyrics']))
                else:
                    story.append(Spacer(1, 0.4 * cm))

            if i < len(hymns) - 1:
                story.append(PageBreak())
            self._step(i, len(hymns))

        doc.build(story)

    def _write_json(self, hymns, file_path, collection: Optional[Collection] = None):
        items = [hymn_to_export_dict(h) for h in hymns]
        if collection is not None:
            data = {
                "collection": {
                    "id": collection.id,
                    "name": collection.name,
                    "description": collection.description,
                    "color": collection.color,
                    "createdDate": to_iso(collection.created_date),
                    "hymnCount": len(hymns),
                },
                "hymns": items,
            }
        else:
            data = items
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def _write_csv(self, hymns, file_path):
        rows = [CSV_HEADER]
        for i, hymn in enumerate(hymns):
            values = [
                str(hymn.id),
                escape_csv(hymn.title),
                escape_csv(hymn.number),
                escape_csv(hymn.language),
                escape_csv(hymn.tags),
                to_iso(hymn.created_date),
                to_iso(hymn.modified_date),
                str(hymn.is_favorite),
                str(hymn.view_count),
                escape_csv(hymn.lyrics),
            ]
            rows.append(",".join(values))
            self._step(i, len(hymns))
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write("\n".join(rows) + "\n")

    # ===== COLECCIONES =====
    def export_collection(self, collection: Collection, fmt: str, file_path=None) -> Dict:
        hymns = self.db_manager.get_hymns_in_collection(collection.id)
        fmt = (fmt or "").upper()
        if file_path is None:
            file_path = Path(self.get_default_export_directory()) / (
                sanitize_file_name(collection.name, "coleccion") + FILE_EXTENSIONS.get(fmt, ".txt")
            )
        header = collection_header_lines(collection, len(hymns)) if fmt in ("TXT", "DOCX", "PDF") else None
        return self.export_hymns(hymns, fmt, file_path, header_lines=header, collection=collection)

    # ===== COMPARTIR =====
    def share_hymn(self, hymn: Hymn, fmt: str = "TXT") -> Optional[str]:
        """Exportar a la carpeta temporal de compartidos y devolver la ruta"""
        path = self.shares_directory / self.default_file_name(hymn, fmt)
        result = self.export_hymn(hymn, fmt, path)
        if not result['success']:
            self.logger.error(f"No se pudo compartir '{hymn.title}': {result['error']}")
            return None
        return str(path)

    def share_collection(self, collection: Collection, fmt: str = "TXT") -> Optional[str]:
        path = self.shares_directory / (sanitize_file_name(collection.name, "coleccion") + FILE_EXTENSIONS[fmt.upper()])
        result = self.export_collection(collection, fmt, path)
        return str(path) if result['success'] else None

    @staticmethod
    def build_mailto_link(hymn: Hymn) -> str:
        return f"mailto:?subject={quote(hymn.display_title)}&body={quote(hymn.lyrics)}"

    def open_email(self, hymn: Hymn) -> bool:
        return webbrowser.open(self.build_mailto_link(hymn))

    def open_file(self, path: str) -> bool:
        """Abrir un archivo exportado con la aplicación del sistema"""
        return webbrowser.open(Path(path).resolve().as_uri())

    # ===== BACKUP =====
    def create_backup(self, backup_path) -> bool:
        ok = self.db_manager.backup_database(backup_path)
        if ok and self.settings:
            self.settings.set_last_backup_date(datetime.now())
        return ok

    def restore_backup(self, backup_path) -> bool:
        if not os.path.exists(backup_path):
            self.logger.warning(f"El backup no existe: {backup_path}")
            return False
        return self.db_manager.restore_database(backup_path)
