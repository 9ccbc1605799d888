# ==============================================================================
# Procesamiento de archivos de entrada -> himnos borrador
# ==============================================================================

import os
import logging
import re
from typing import Dict, List, Optional

import pdfplumber
from docx import Document as DocxDocument

from .models import Hymn, DEFAULT_LANGUAGE
from .ocr_engine import OcrEngine, OcrError, LANGUAGE_NAMES, calculate_confidence_score

# ==============================================================================
# CONSTANTES
# ==============================================================================

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff', '.gif', '.webp')
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS + ('.pdf', '.docx', '.txt')

# Marcadores de sección que nunca son título
SECTION_MARKERS = (
    'verse', 'chorus', 'refrain', 'bridge', 'coda', 'intro',
    'coro', 'estrofa', 'estribillo', 'puente', 'couplet', 'refrão',
    'kiitikio', 'ubeti',
)
SECTION_RE = re.compile(
    r'^\s*[\[(]?\s*(?:' + '|'.join(SECTION_MARKERS) + r')\b[\s\d.:)\]]*$',
    re.IGNORECASE
)

# "123", "No. 123", "#123", "Hymn 123", "Himno 123"
HYMN_NUMBER_RE = re.compile(
    r'^\s*(?:(?:no\.?|n[º°]\.?|#|hymn|himno|wimbo)\s*)?(\d{1,4}[a-z]?)\b[.:)]?',
    re.IGNORECASE
)

PDF_RENDER_RESOLUTION = 300


class FileProcessor:
    def __init__(self, db_manager=None, ocr_engine: Optional[OcrEngine] = None, *args, **kwargs):
        """
        db_manager opcional para facilitar testing. En producción pasá el manager real.
        """
        self.db_manager = db_manager
        self.ocr_engine = ocr_engine or OcrEngine()
        self.logger = kwargs.get('logger') or logging.getLogger(__name__)
        self.progress_callback = None

    def set_progress_callback(self, callback):
        """Callback de progreso (mensaje, porcentaje)"""
        self.progress_callback = callback

    def _update_progress(self, message, percent=None):
        if self.progress_callback:
            self.progress_callback(message, percent)

    @staticmethod
    def is_supported(file_path: str) -> bool:
        return os.path.splitext(file_path)[1].lower() in SUPPORTED_EXTENSIONS

    # ==========================================================================
    # PROCESAMIENTO POR TIPO
    # ==========================================================================

    def process_file(self, file_path: str, options: Dict = None) -> Dict:
        """
        Procesar un archivo y extraer su texto como himno borrador

        Args:
            file_path: Ruta al archivo (imagen, PDF, DOCX o TXT)
            options: 'language' (código OCR, por defecto 'en')

        Returns:
            Dict con success, file_type, total_pages, extracted_text,
            hymns_found, confidence, processed_with y error
        """
        options = options or {}
        if not os.path.exists(file_path):
            return {'success': False, 'error': f'No se encontró el archivo: {file_path}'}

        self.logger.info(f"Procesando archivo: {file_path}")
        file_ext = os.path.splitext(file_path)[1].lower()

        if file_ext in IMAGE_EXTENSIONS:
            return self._process_image_file(file_path, options)
        elif file_ext == '.pdf':
            return self._process_pdf_file(file_path, options)
        elif file_ext == '.docx':
            return self._process_docx_file(file_path, options)
        elif file_ext == '.txt':
            return self._process_txt_file(file_path, options)
        else:
            return {
                'success': False,
                'error': f'Tipo de archivo no soportado: {file_ext}'
            }

    def _build_result(self, file_type: str, text: str, file_path: str, options: Dict,
                      processed_with: str, total_pages: int = 1,
                      confidence: Optional[float] = None) -> Dict:
        language = options.get('language', 'en')
        hymn = self.create_hymn_from_text(text, file_path, language) if text.strip() else None
        return {
            'success': True,
            'file_type': file_type,
            'total_pages': total_pages,
            'extracted_text': text,
            'hymns_found': [hymn] if hymn else [],
            'confidence': confidence if confidence is not None else calculate_confidence_score(text),
            'processed_with': processed_with,
            'error': None,
        }

    def _process_image_file(self, file_path: str, options: Dict) -> Dict:
        """Imagen -> OCR"""
        self._update_progress(f"Reconociendo imagen: {os.path.basename(file_path)}", 10)
        try:
            text = self.ocr_engine.recognize_file(file_path, options.get('language', 'en'))
        except (OcrError, OSError) as e:
            self.logger.error(f"Error procesando imagen {file_path}: {e}")
            return {'success': False, 'error': str(e)}

        self._update_progress("Reconocimiento completado", 100)
        return self._build_result('image', text, file_path, options, 'tesseract',
                                  confidence=self.ocr_engine.get_last_confidence_score())

    def _process_pdf_file(self, file_path: str, options: Dict) -> Dict:
        """PDF -> capa de texto con pdfplumber; las páginas sin texto pasan por OCR"""
        self._update_progress(f"Procesando PDF: {os.path.basename(file_path)}", 10)
        language = options.get('language', 'en')
        used_ocr = False
        page_texts = []

        try:
            with pdfplumber.open(file_path) as pdf:
                total_pages = len(pdf.pages)
                for page_num, page in enumerate(pdf.pages):
                    text = page.extract_text() or ""
                    if not text.strip():
                        image = page.to_image(resolution=PDF_RENDER_RESOLUTION).original
                        text = self.ocr_engine.recognize_image(image, language)
                        used_ocr = True
                    page_texts.append(text.strip())

                    progress = 10 + ((page_num + 1) / max(total_pages, 1)) * 80
                    self._update_progress(f"Página {page_num + 1}/{total_pages}", progress)
        except OcrError as e:
            self.logger.error(f"Error de OCR en PDF {file_path}: {e}")
            return {'success': False, 'error': str(e)}
        except Exception as e:
            self.logger.error(f"Error con pdfplumber: {e}")
            return {'success': False, 'error': f'Error pdfplumber: {str(e)}'}

        full_text = "\n\n".join(t for t in page_texts if t)
        self._update_progress("PDF procesado", 100)
        return self._build_result('pdf', full_text, file_path, options,
                                  'pdfplumber+tesseract' if used_ocr else 'pdfplumber',
                                  total_pages=total_pages)

    def _process_docx_file(self, file_path: str, options: Dict) -> Dict:
        """Procesar archivo Word (.docx) extrayendo párrafos como texto"""
        try:
            self._update_progress("Extrayendo texto desde Word...", 10)
            doc = DocxDocument(file_path)
            paragraphs = [p.text for p in doc.paragraphs if p.text is not None]
            full_text = "\n".join(paragraphs).strip()
        except Exception as e:
            self.logger.error(f"Error procesando DOCX {file_path}: {e}")
            return {'success': False, 'error': f'Error docx: {str(e)}'}

        self._update_progress("Documento procesado", 100)
        return self._build_result('docx', full_text, file_path, options, 'docx')

    def _process_txt_file(self, file_path: str, options: Dict) -> Dict:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                text = f.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Error leyendo {file_path}: {e}")
            return {'success': False, 'error': str(e)}
        return self._build_result('txt', text, file_path, options, 'txt')

    # ==========================================================================
    # HIMNOS
    # ==========================================================================

    def create_hymn_from_text(self, text: str, file_path: str, language: str = 'en') -> Hymn:
        """Crear un himno borrador desde el texto completo"""
        lines = text.split('\n')
        file_name = os.path.splitext(os.path.basename(file_path))[0]

        number = self._extract_hymn_number(lines)
        title = self._extract_title_from_text(lines, file_name)

        return Hymn(
            title=title[:200],
            number=number,
            lyrics=text.strip(),
            language=LANGUAGE_NAMES.get(language, DEFAULT_LANGUAGE),
            notes=f"Importado desde: {os.path.basename(file_path)}",
        )

    def _is_section_line(self, line: str) -> bool:
        return bool(SECTION_RE.match(line))

    def _extract_hymn_number(self, lines: List[str]) -> Optional[str]:
        """Número de himno en la primera línea no vacía"""
        first = next((l for l in lines if l.strip()), "")
        match = HYMN_NUMBER_RE.match(first)
        return match.group(1) if match else None

    def _extract_title_from_text(self, lines: List[str], default_title: str) -> str:
        """Extraer título de las primeras líneas del texto"""
        for line in lines[:10]:
            line = line.strip()
            if not line:
                continue

            # Quitar número de himno al inicio ("12. Amazing Grace")
            match = HYMN_NUMBER_RE.match(line)
            if match:
                line = line[match.end():].strip(" .-:")
            if not line:
                continue

            if line.isdigit() or self._is_section_line(line):
                continue

            if 3 <= len(line) <= 80:
                # Si está entre comillas (formato explícito) devolver sin comillas
                if (line.startswith('"') and line.endswith('"')) or \
                   (line.startswith('«') and line.endswith('»')) or \
                   (line.startswith("'") and line.endswith("'")):
                    return line[1:-1].strip()
                return line

        return default_title

    def save_hymns_to_database(self, hymns: List[Hymn]) -> Dict:
        """
        Guardar himnos procesados en la base de datos

        Args:
            hymns: Lista de himnos a guardar

        Returns:
            Dict con resultados del guardado
        """
        results = {
            'total_hymns': len(hymns),
            'saved_hymns': 0,
            'failed_hymns': 0,
            'errors': []
        }

        for i, hymn in enumerate(hymns):
            try:
                self._update_progress(f"Guardando himno {i+1}/{len(hymns)}",
                                      (i / len(hymns)) * 100)
                if not hymn.title.strip():
                    raise ValueError("El himno no tiene título")
                self.db_manager.save_hymn(hymn)
                results['saved_hymns'] += 1
            except Exception as e:
                self.logger.error(f"Error guardando himno '{hymn.title}': {e}")
                results['failed_hymns'] += 1
                results['errors'].append({
                    'hymn': hymn.title or 'Desconocido',
                    'error': str(e)
                })

        self._update_progress("Guardado completado", 100)
        return results

    def process_files_batch(self, file_paths: List[str], options: Dict = None) -> Dict:
        """
        Procesar múltiples archivos de forma secuencial
        """
        options = options or {}
        results = {
            'total_files': len(file_paths),
            'processed_files': 0,
            'successful_files': 0,
            'failed_files': 0,
            'total_hymns_found': 0,
            'file_results': []
        }

        for i, file_path in enumerate(file_paths):
            self._update_progress(f"Procesando archivo {i+1}/{len(file_paths)}",
                                  (i / len(file_paths)) * 100)

            file_result = self.process_file(file_path, options)
            file_result['file_path'] = file_path
            results['file_results'].append(file_result)
            results['processed_files'] += 1

            if file_result['success']:
                results['successful_files'] += 1
                results['total_hymns_found'] += len(file_result.get('hymns_found', []))
            else:
                results['failed_files'] += 1

        self._update_progress("Procesamiento completado", 100)
        return results
