"""
PDF Processor: text extraction cascade.

Strategies, cheapest first:
1. Fast parse (PyPDF2): whole-document text, no layout awareness
2. Layout reconstruction (PyMuPDF text spans)
3. OCR (Tesseract), only for documents that look scanned

The first strategy producing enough text wins; otherwise the longest of
the fast and layout results is returned.
"""

import asyncio
import io
import logging
import time
from typing import Callable, Optional

from PyPDF2 import PdfReader

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.engine.layout_extractor import LayoutExtractor
from pdf_ingest.engine.ocr_engine import OCREngine
from pdf_ingest.engine.page_analyzer import DocumentProfile, PageAnalyzer

logger = logging.getLogger(__name__)


def fast_parse(pdf_bytes: bytes) -> str:
    """Extract all text with PyPDF2, pages separated by blank lines."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return "\n\n".join(page.extract_text() or "" for page in reader.pages)


class PDFProcessor:
    """
    Extracts plain text from PDF bytes using the cheapest sufficient method.

    extract_text() never raises for recoverable failures; it returns "" only
    when every strategy fails.
    """

    def __init__(
        self,
        config: Optional[PDFProcessingConfig] = None,
        page_analyzer: Optional[PageAnalyzer] = None,
        layout_extractor: Optional[LayoutExtractor] = None,
        ocr_engine: Optional[OCREngine] = None,
        fast_parser: Callable[[bytes], str] = fast_parse
    ):
        self.config = config or PDFProcessingConfig()
        self.page_analyzer = page_analyzer or PageAnalyzer(self.config)
        self.layout_extractor = layout_extractor or LayoutExtractor(self.config, self.page_analyzer)
        self.ocr_engine = ocr_engine or OCREngine(self.config, self.page_analyzer)
        self.fast_parser = fast_parser

    async def extract_text(self, pdf_bytes: bytes) -> str:
        start_time = time.monotonic()
        try:
            fast_text = await asyncio.to_thread(self._fast_parse, pdf_bytes)
            logger.info(f"Fast parse completed in {time.monotonic() - start_time:.1f}s")
            if len(fast_text) > self.config.sufficient_text_length:
                logger.info(f"Text successfully extracted using fast parse: {len(fast_text)} characters")
                return fast_text

            profile = await asyncio.to_thread(self._profile, pdf_bytes)
            settings = self.page_analyzer.settings_for(profile) if profile else None

            logger.info("Attempting text extraction with layout preservation")
            layout_text = await asyncio.to_thread(
                self.layout_extractor.extract_with_layout, pdf_bytes, settings
            )
            if len(layout_text) > self.config.sufficient_text_length:
                logger.info(
                    f"Text successfully extracted with layout preservation: {len(layout_text)} characters"
                )
                return layout_text

            is_scanned = await asyncio.to_thread(
                self.page_analyzer.is_scanned_pdf, pdf_bytes, fast_text or layout_text
            )
            if is_scanned:
                logger.info("Detected scanned PDF, attempting OCR")
                logger.warning("OCR is resource-intensive and may take significant time")
                ocr_start = time.monotonic()
                ocr_text = await self.ocr_engine.perform_ocr(pdf_bytes, profile)
                logger.info(f"OCR completed in {time.monotonic() - ocr_start:.1f}s")
                if len(ocr_text) > self.config.min_text_length:
                    logger.info(f"Text successfully extracted with OCR: {len(ocr_text)} characters")
                    return ocr_text

            logger.info(
                f"Extraction results: fast parse={len(fast_text)} chars, layout={len(layout_text)} chars"
            )
            return fast_text if len(fast_text) > len(layout_text) else layout_text

        except Exception as e:
            logger.error(f"Error extracting text from PDF: {e}")
            return ""

    def _fast_parse(self, pdf_bytes: bytes) -> str:
        try:
            return self.fast_parser(pdf_bytes) or ""
        except Exception as e:
            logger.error(f"Fast parse error: {e}")
            return ""

    def _profile(self, pdf_bytes: bytes) -> Optional[DocumentProfile]:
        try:
            return self.page_analyzer.profile(pdf_bytes)
        except Exception as e:
            logger.warning(f"Could not profile PDF: {e}")
            return None
