# test_ocr_engine.py
import os
import sys

import pytest
import pytesseract
from PIL import Image

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.ocr_engine import (
    OcrEngine, OcrError, SUPPORTED_LANGUAGES, calculate_confidence_score, post_process_text
)


class TestPostProcessText:

    def test_empty_input(self):
        assert post_process_text(None) == ""
        assert post_process_text("   \n\t ") == ""

    def test_collapses_blank_lines_and_spaces(self):
        raw = "\r\n  Amazing   grace\r\n\r\n\r\n   \nhow  sweet\t\tthe sound  \n"
        assert post_process_text(raw) == "Amazing grace\n\nhow sweet the sound"

    def test_digit_corrections_inside_words(self):
        assert post_process_text("G0d is good") == "GOd is good"
        assert post_process_text("Je5us") == "JeSus"
        assert post_process_text("he1p") == "heIp"
        assert post_process_text("a8c") == "aBc"

    def test_digit_corrections_only_between_ascii_letters(self):
        assert post_process_text("é1a") == "é1a"
        assert post_process_text("Ñ0ñ") == "Ñ0ñ"
        assert post_process_text("mañ0na") == "mañ0na"
        assert post_process_text("ma0na") == "maOna"

    def test_standalone_numbers_untouched(self):
        assert post_process_text("1\nVerse 10\n2023") == "1\nVerse 10\n2023"
        # Solo se corrige con letras a ambos lados
        assert post_process_text("G0 10x") == "G0 10x"

    def test_idempotent(self):
        once = post_process_text("Line  one \n\n\nL1ne two")
        assert post_process_text(once) == once


class TestConfidenceScore:

    def test_empty_is_zero(self):
        assert calculate_confidence_score("") == 0.0
        assert calculate_confidence_score("   ") == 0.0
        assert calculate_confidence_score(None) == 0.0

    def test_short_valid_text(self):
        # 50 base + 20 * (2/2) palabras válidas; sin bonus de longitud (<= 10)
        assert calculate_confidence_score("Hi there") == pytest.approx(70.0)

    def test_long_clean_text(self):
        text = "Amazing grace how sweet the sound that saved a wretch like me"
        # 50 + 10 + 10 + 20 * (11/12): "a" no cuenta como palabra válida
        assert calculate_confidence_score(text) == pytest.approx(70 + 20 * 11 / 12)

    def test_special_characters_penalty(self):
        text = "@@@@ ####"
        special_ratio = 8 / 9
        expected = 50 - (special_ratio - 0.1) * 30
        assert calculate_confidence_score(text) == pytest.approx(expected)

    def test_bounds(self):
        for text in ["!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!", "word " * 100, "a"]:
            assert 0.0 <= calculate_confidence_score(text) <= 100.0


class TestOcrEngine:

    @pytest.fixture
    def image_path(self, tmp_path):
        path = tmp_path / "hymn.png"
        Image.new("RGB", (60, 30), "white").save(path)
        return str(path)

    def test_recognize_file_with_progress_and_completion(self, monkeypatch, image_path):
        calls = {}

        def fake_image_to_string(image, lang=None):
            calls['lang'] = lang
            calls['mode'] = image.mode
            return "Amazing  gr4ce\n\n\nH0ly"

        monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)

        engine = OcrEngine()
        progress = []
        completed = []
        engine.set_progress_callback(lambda percent, message: progress.append(percent))
        engine.set_completed_callback(completed.append)

        text = engine.recognize_file(image_path, "es")

        assert text == "Amazing gr4ce\n\nHOly"
        assert calls['lang'] == "spa"
        assert calls['mode'] == "L"
        assert progress == [10, 30, 60, 90, 100]
        assert completed[0]['success'] is True
        assert completed[0]['text'] == text
        assert engine.get_last_confidence_score() == pytest.approx(
            calculate_confidence_score("Amazing  gr4ce\n\n\nH0ly"))

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            OcrEngine().recognize_file("/no/existe.png")

    def test_empty_bytes(self):
        with pytest.raises(ValueError):
            OcrEngine().recognize_bytes(b"")

    def test_recognize_bytes(self, monkeypatch, image_path):
        monkeypatch.setattr(pytesseract, "image_to_string", lambda image, lang=None: "Hello")
        with open(image_path, "rb") as f:
            assert OcrEngine().recognize_bytes(f.read()) == "Hello"

    def test_tesseract_failure_raises_ocr_error(self, monkeypatch, image_path):
        def boom(image, lang=None):
            raise RuntimeError("tesseract crashed")

        monkeypatch.setattr(pytesseract, "image_to_string", boom)
        engine = OcrEngine()
        completed = []
        engine.set_completed_callback(completed.append)

        with pytest.raises(OcrError, match="tesseract crashed"):
            engine.recognize_file(image_path)
        assert completed[0]['success'] is False
        assert completed[0]['confidence'] == 0.0

    def test_languages(self):
        engine = OcrEngine()
        assert len(engine.get_available_languages()) == len(SUPPORTED_LANGUAGES) == 21
        assert OcrEngine.tesseract_language("sw") == "swa"
        assert OcrEngine.tesseract_language("eng") == "eng"
