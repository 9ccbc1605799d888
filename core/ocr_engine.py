"""
Motor OCR sobre Tesseract (pytesseract + Pillow).

Incluye las dos heurísticas centrales del escaneo:
  - post_process_text: limpieza del texto reconocido
  - calculate_confidence_score: puntaje 0-100 calculado sobre el texto crudo
"""

import io
import logging
import os
import re
import time
from typing import BinaryIO, Callable, Dict, List, Optional

import pytesseract
from PIL import Image, ImageFilter, ImageOps

logger = logging.getLogger(__name__)

# Código de la app -> código de Tesseract
SUPPORTED_LANGUAGES: Dict[str, str] = {
    "en": "eng",
    "es": "spa",
    "fr": "fra",
    "de": "deu",
    "it": "ita",
    "pt": "por",
    "ru": "rus",
    "zh": "chi_sim",
    "ja": "jpn",
    "ko": "kor",
    "ar": "ara",
    "hi": "hin",
    "th": "tha",
    "vi": "vie",
    "nl": "nld",
    "sv": "swe",
    "da": "dan",
    "no": "nor",
    "fi": "fin",
    "pl": "pol",
    "sw": "swa",
}

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
    "hi": "Hindi",
    "th": "Thai",
    "vi": "Vietnamese",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "pl": "Polish",
    "sw": "Swahili",
}

# Confusiones típicas de OCR entre dígitos y letras
DIGIT_CORRECTIONS = {"0": "O", "1": "I", "5": "S", "8": "B"}
_DIGIT_IN_WORD_RE = re.compile(r"(?<=[A-Za-z])[0158](?=[A-Za-z])")


class OcrError(Exception):
    """Error de reconocimiento OCR"""


def post_process_text(text: Optional[str]) -> str:
    """Limpiar el texto devuelto por Tesseract.

    Normaliza saltos de línea, colapsa líneas en blanco repetidas y espacios,
    y corrige dígitos confundidos con letras entre letras ASCII
    ("G0d" -> "GOd"). Los números sueltos (p. ej. números de estrofa) no se
    tocan.
    """
    if not text or not text.strip():
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    text = re.sub(r"\n\s*\n", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = _DIGIT_IN_WORD_RE.sub(lambda m: DIGIT_CORRECTIONS[m.group(0)], text)
    return text


def calculate_confidence_score(text: Optional[str]) -> float:
    """Puntaje heurístico de calidad del texto reconocido (0 a 100)"""
    if not text or not text.strip():
        return 0.0

    score = 50.0

    if len(text) > 10:
        score += 10
    if len(text) > 50:
        score += 10

    words = [w for w in text.split(" ") if w]
    if words:
        valid = sum(1 for w in words if len(w) > 1 and w.isascii() and w.isalpha())
        score += (valid / len(words)) * 20

    special = sum(1 for ch in text if not ch.isalnum() and not ch.isspace())
    special_ratio = special / len(text)
    if special_ratio > 0.1:
        score -= (special_ratio - 0.1) * 30

    return max(0.0, min(100.0, score))


class OcrEngine:
    """Reconocimiento de texto en imágenes con progreso y evento de fin"""

    def __init__(self, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.progress_callback: Optional[Callable[[int, str], None]] = None
        self.completed_callback: Optional[Callable[[Dict], None]] = None
        self.last_confidence_score = 0.0

    def set_progress_callback(self, callback):
        self.progress_callback = callback

    def set_completed_callback(self, callback):
        self.completed_callback = callback

    def _update_progress(self, percent: int, message: str):
        if self.progress_callback:
            self.progress_callback(percent, message)

    def _notify_completed(self, **result):
        if self.completed_callback:
            self.completed_callback(result)

    # ===== ENTRADAS =====
    def recognize_file(self, image_path: str, language: str = "en") -> str:
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"No se encontró la imagen: {image_path}")

        self._update_progress(10, "Cargando imagen...")
        with Image.open(image_path) as image:
            image.load()
            self._update_progress(30, "Preprocesando imagen...")
            return self.recognize_image(image, language)

    def recognize_bytes(self, data: bytes, language: str = "en") -> str:
        if not data:
            raise ValueError("Los datos de la imagen están vacíos")
        return self.recognize_stream(io.BytesIO(data), language)

    def recognize_stream(self, stream: BinaryIO, language: str = "en") -> str:
        self._update_progress(10, "Cargando imagen...")
        with Image.open(stream) as image:
            image.load()
            self._update_progress(30, "Preprocesando imagen...")
            return self.recognize_image(image, language)

    def recognize_image(self, image: Image.Image, language: str = "en") -> str:
        """Ejecutar Tesseract sobre una imagen ya cargada"""
        start = time.perf_counter()
        try:
            prepared = self.preprocess_image(image)
            self._update_progress(60, "Reconociendo texto...")

            raw_text = pytesseract.image_to_string(prepared, lang=self.tesseract_language(language))
            self.last_confidence_score = calculate_confidence_score(raw_text)

            self._update_progress(90, "Procesando resultados...")
            text = post_process_text(raw_text)
            elapsed = time.perf_counter() - start

            self._update_progress(100, "Reconocimiento completado")
            logger.info(
                f"OCR completado en {elapsed:.2f}s ({len(text)} caracteres, "
                f"confianza {self.last_confidence_score:.1f})"
            )
            self._notify_completed(
                text=text,
                confidence=self.last_confidence_score,
                processing_time=elapsed,
                success=True,
                error=None,
            )
            return text
        except Exception as e:
            elapsed = time.perf_counter() - start
            logger.error(f"Falló el reconocimiento OCR: {e}")
            self._notify_completed(
                text="",
                confidence=0.0,
                processing_time=elapsed,
                success=False,
                error=str(e),
            )
            raise OcrError(f"Falló el reconocimiento OCR: {e}") from e

    def preprocess_image(self, image: Image.Image) -> Image.Image:
        """Orientación EXIF, escala de grises, autocontraste y enfoque suave"""
        try:
            processed = ImageOps.exif_transpose(image)
            processed = processed.convert("L")
            processed = ImageOps.autocontrast(processed)
            return processed.filter(ImageFilter.SHARPEN)
        except Exception as e:
            logger.warning(f"Preprocesamiento falló, se usa la imagen original: {e}")
            return image

    # ===== INFORMACIÓN =====
    def get_last_confidence_score(self) -> float:
        return self.last_confidence_score

    def get_available_languages(self) -> List[str]:
        return list(SUPPORTED_LANGUAGES.keys())

    @staticmethod
    def tesseract_language(language: str) -> str:
        """'es' -> 'spa'; códigos desconocidos se pasan tal cual"""
        return SUPPORTED_LANGUAGES.get(language, language or "eng")

    def is_available(self) -> bool:
        """True si el binario de Tesseract responde"""
        try:
            pytesseract.get_tesseract_version()
            return True
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.warning(f"Tesseract no disponible: {e}")
            return False
