# test_file_processor.py
import os
import sys

import pytest
import pytesseract
from docx import Document
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.file_processor import FileProcessor
from core.models import Hymn
from core.ocr_engine import OcrEngine


class TestTitleAndNumber:

    def test_title_skips_number_and_sections(self):
        processor = FileProcessor(None)
        lines = ["", "12", "[Verse 1]", "Amazing Grace", "How sweet the sound"]
        assert processor._extract_title_from_text(lines, "archivo") == "Amazing Grace"

    def test_title_strips_number_prefix_and_quotes(self):
        processor = FileProcessor(None)
        assert processor._extract_title_from_text(["12. Amazing Grace"], "x") == "Amazing Grace"
        assert processor._extract_title_from_text(['"Santo, Santo, Santo"'], "x") == "Santo, Santo, Santo"
        assert processor._extract_title_from_text(["Himno 45: Cuán grande es Él"], "x") == "Cuán grande es Él"

    def test_title_length_limits(self):
        processor = FileProcessor(None)
        long_line = "a" * 81
        assert processor._extract_title_from_text(["Oh", long_line, "Good Title"], "x") == "Good Title"
        assert processor._extract_title_from_text(["Coro", "1", ""], "archivo") == "archivo"

    def test_number_only_from_first_line(self):
        processor = FileProcessor(None)
        assert processor._extract_hymn_number(["", "No. 123", "text"]) == "123"
        assert processor._extract_hymn_number(["#45b Title"]) == "45b"
        assert processor._extract_hymn_number(["Amazing Grace", "2 Through many dangers"]) is None

    def test_section_lines(self):
        processor = FileProcessor(None)
        for line in ["Chorus", "[Verse 2]", "Coro:", "(Estribillo)", "Kiitikio"]:
            assert processor._is_section_line(line), line
        assert not processor._is_section_line("Chorus of angels sing")


class TestCreateHymn:

    def test_create_hymn_from_text(self):
        processor = FileProcessor(None)
        text = "23\nCristo Vive\n\nCristo vive, fuera el llanto\n"
        hymn = processor.create_hymn_from_text(text, "/tmp/scans/pagina_1.png", "es")
        assert hymn.title == "Cristo Vive"
        assert hymn.number == "23"
        assert hymn.language == "Spanish"
        assert hymn.lyrics == text.strip()
        assert hymn.notes == "Importado desde: pagina_1.png"
        assert hymn.id == 0

    def test_falls_back_to_file_name(self):
        processor = FileProcessor(None)
        hymn = processor.create_hymn_from_text("1\n2\n", "/tmp/mi_himno.txt", "xx")
        assert hymn.title == "mi_himno"
        assert hymn.language == "English"


class TestProcessFile:

    def test_missing_file(self, tmp_path):
        result = FileProcessor(None).process_file(str(tmp_path / "no.txt"))
        assert result['success'] is False

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "song.mp3"
        path.write_bytes(b"ID3")
        result = FileProcessor(None).process_file(str(path))
        assert result['success'] is False
        assert ".mp3" in result['error']
        assert not FileProcessor.is_supported(str(path))
        assert FileProcessor.is_supported("scan.JPG")

    def test_txt(self, tmp_path):
        path = tmp_path / "himno.txt"
        path.write_text("Blessed Assurance\nJesus is mine\n", encoding="utf-8")
        result = FileProcessor(None).process_file(str(path), {'language': 'en'})
        assert result['success'] is True
        assert result['file_type'] == 'txt'
        assert result['extracted_text'] == "Blessed Assurance\nJesus is mine"
        assert result['hymns_found'][0].title == "Blessed Assurance"
        assert 0 <= result['confidence'] <= 100

    def test_empty_txt_has_no_hymns(self, tmp_path):
        path = tmp_path / "vacio.txt"
        path.write_text("   \n", encoding="utf-8")
        result = FileProcessor(None).process_file(str(path))
        assert result['success'] is True
        assert result['hymns_found'] == []

    def test_docx(self, tmp_path):
        path = tmp_path / "himno.docx"
        doc = Document()
        doc.add_paragraph("Santo, Santo, Santo")
        doc.add_paragraph("Señor omnipotente")
        doc.save(str(path))

        processor = FileProcessor(None)
        progress = []
        processor.set_progress_callback(lambda message, percent: progress.append(percent))
        result = processor.process_file(str(path), {'language': 'es'})

        assert result['success'] is True
        assert result['processed_with'] == 'docx'
        assert result['extracted_text'] == "Santo, Santo, Santo\nSeñor omnipotente"
        assert result['hymns_found'][0].language == "Spanish"
        assert progress[-1] == 100

    def test_image_uses_ocr(self, tmp_path, monkeypatch):
        path = tmp_path / "scan.png"
        Image.new("RGB", (40, 20), "white").save(path)
        monkeypatch.setattr(pytesseract, "image_to_string",
                            lambda image, lang=None: "5\nH0ly Night\n\nO holy night")

        result = FileProcessor(None, OcrEngine()).process_file(str(path), {'language': 'en'})
        assert result['success'] is True
        assert result['processed_with'] == 'tesseract'
        hymn = result['hymns_found'][0]
        assert hymn.number == "5"
        assert hymn.title == "HOly Night"

    def test_image_ocr_failure(self, tmp_path, monkeypatch):
        path = tmp_path / "scan.png"
        Image.new("RGB", (40, 20), "white").save(path)

        def boom(image, lang=None):
            raise RuntimeError("sin tesseract")

        monkeypatch.setattr(pytesseract, "image_to_string", boom)
        result = FileProcessor(None).process_file(str(path))
        assert result['success'] is False
        assert "sin tesseract" in result['error']


def write_pdf(path, pages):
    """PDF con una página por elemento; None deja la página en blanco"""
    pdf = canvas.Canvas(str(path), pagesize=letter)
    for lines in pages:
        y = 700
        for line in lines or []:
            pdf.drawString(72, y, line)
            y -= 20
        pdf.showPage()
    pdf.save()


class TestProcessPdf:

    def test_text_layer(self, tmp_path):
        path = tmp_path / "himno.pdf"
        write_pdf(path, [["Holy Holy Holy", "Lord God Almighty"]])

        result = FileProcessor(None).process_file(str(path), {'language': 'en'})
        assert result['success'] is True
        assert result['file_type'] == 'pdf'
        assert result['processed_with'] == 'pdfplumber'
        assert result['total_pages'] == 1
        assert "Holy Holy Holy" in result['extracted_text']
        assert result['hymns_found'][0].title == "Holy Holy Holy"

    def test_blank_page_falls_back_to_ocr(self, tmp_path, monkeypatch):
        path = tmp_path / "escaneado.pdf"
        write_pdf(path, [["Amazing Grace", "how sweet the sound"], None])

        engine = OcrEngine()
        rendered = []

        def fake_recognize(image, language="en"):
            rendered.append((image.size, language))
            return "that saved a wretch like me"

        monkeypatch.setattr(engine, "recognize_image", fake_recognize)
        result = FileProcessor(None, engine).process_file(str(path), {'language': 'en'})

        assert result['success'] is True
        assert result['processed_with'] == 'pdfplumber+tesseract'
        assert result['total_pages'] == 2
        assert len(rendered) == 1
        # Carta a 300 dpi
        width, height = rendered[0][0]
        assert abs(width - 2550) <= 2 and abs(height - 3300) <= 2
        assert result['extracted_text'].endswith("\n\nthat saved a wretch like me")
        assert result['extracted_text'].startswith("Amazing Grace")

    def test_corrupt_pdf(self, tmp_path):
        path = tmp_path / "roto.pdf"
        path.write_bytes(b"%PDF-1.4 nada")
        result = FileProcessor(None).process_file(str(path))
        assert result['success'] is False


class TestBatchAndSave:

    def test_batch(self, tmp_path):
        good = tmp_path / "a.txt"
        good.write_text("Himno Uno\nletra", encoding="utf-8")
        bad = tmp_path / "b.xyz"
        bad.write_text("?", encoding="utf-8")

        results = FileProcessor(None).process_files_batch([str(good), str(bad)])
        assert results['total_files'] == 2
        assert results['processed_files'] == 2
        assert results['successful_files'] == 1
        assert results['failed_files'] == 1
        assert results['total_hymns_found'] == 1
        assert results['file_results'][1]['file_path'] == str(bad)

    def test_save_hymns(self, db):
        processor = FileProcessor(db)
        results = processor.save_hymns_to_database([
            Hymn(title="Uno", lyrics="a"),
            Hymn(title="   ", lyrics="b"),
            Hymn(title="Dos", lyrics="c"),
        ])
        assert results['total_hymns'] == 3
        assert results['saved_hymns'] == 2
        assert results['failed_hymns'] == 1
        assert results['errors'][0]['hymn'] == "   "
        assert db.get_total_hymns_count() == 2
