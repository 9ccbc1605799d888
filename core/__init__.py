"""Paquete core: modelos, base de datos, OCR, exportación y preferencias."""
