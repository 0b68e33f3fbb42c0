"""
Unit tests for the text extraction cascade.

Strategy components are mocked so each test can observe which strategies
ran; real PDFs from conftest drive the page analysis.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.engine.page_analyzer import DocumentProfile, PageAnalyzer
from pdf_ingest.engine.pdf_processor import PDFProcessor, fast_parse

LONG_TEXT = "Fire doors on passenger ships shall be self-closing. " * 10


def make_processor(fast_text="", layout_text="", ocr_text=""):
    config = PDFProcessingConfig()
    layout_extractor = MagicMock()
    layout_extractor.extract_with_layout.return_value = layout_text
    ocr_engine = MagicMock()
    ocr_engine.perform_ocr = AsyncMock(return_value=ocr_text)

    processor = PDFProcessor(
        config=config,
        page_analyzer=PageAnalyzer(config),
        layout_extractor=layout_extractor,
        ocr_engine=ocr_engine,
        fast_parser=lambda pdf_bytes: fast_text,
    )
    return processor, layout_extractor, ocr_engine


class TestFastParse:

    def test_reads_text_pdf(self, text_pdf_bytes):
        text = fast_parse(text_pdf_bytes)
        assert "Ballast water" in text
        assert len(text) > 300

    def test_invalid_pdf_raises(self):
        with pytest.raises(Exception):
            fast_parse(b"not a pdf")


class TestExtractionCascade:

    @pytest.mark.asyncio
    async def test_sufficient_fast_parse_short_circuits(self, text_pdf_bytes):
        processor, layout_extractor, ocr_engine = make_processor(fast_text=LONG_TEXT)

        text = await processor.extract_text(text_pdf_bytes)

        assert text == LONG_TEXT
        layout_extractor.extract_with_layout.assert_not_called()
        ocr_engine.perform_ocr.assert_not_called()

    @pytest.mark.asyncio
    async def test_layout_used_when_fast_parse_is_short(self, text_pdf_bytes):
        processor, layout_extractor, ocr_engine = make_processor(fast_text="too short", layout_text=LONG_TEXT)

        text = await processor.extract_text(text_pdf_bytes)

        assert text == LONG_TEXT
        layout_extractor.extract_with_layout.assert_called_once()
        pdf_bytes, settings = layout_extractor.extract_with_layout.call_args.args
        assert pdf_bytes == text_pdf_bytes
        assert settings is not None
        ocr_engine.perform_ocr.assert_not_called()

    @pytest.mark.asyncio
    async def test_scanned_pdf_goes_to_ocr(self, image_pdf_bytes):
        processor, _, ocr_engine = make_processor(ocr_text=LONG_TEXT)

        text = await processor.extract_text(image_pdf_bytes)

        assert text == LONG_TEXT
        ocr_engine.perform_ocr.assert_awaited_once()
        pdf_bytes, profile = ocr_engine.perform_ocr.await_args.args
        assert pdf_bytes == image_pdf_bytes
        assert isinstance(profile, DocumentProfile)
        assert profile.page_count == 2

    @pytest.mark.asyncio
    async def test_short_ocr_falls_back_to_longest_result(self, image_pdf_bytes):
        processor, _, ocr_engine = make_processor(
            fast_text="fast result", layout_text="a longer layout result", ocr_text="tiny"
        )

        text = await processor.extract_text(image_pdf_bytes)

        assert text == "a longer layout result"
        ocr_engine.perform_ocr.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fast_result_preferred_when_longer(self, image_pdf_bytes):
        processor, _, _ = make_processor(fast_text="the fast parse result", layout_text="layout")

        assert await processor.extract_text(image_pdf_bytes) == "the fast parse result"

    @pytest.mark.asyncio
    async def test_text_pdf_with_short_text_is_not_ocred(self, pdf_builder):
        # 30 short lines on one page: not sufficient, but clearly not scanned
        pdf_bytes = pdf_builder([[f"item {i}" for i in range(30)]])
        processor, _, ocr_engine = make_processor(fast_text="item 0", layout_text="item 0 item 1")

        text = await processor.extract_text(pdf_bytes)

        assert text == "item 0 item 1"
        ocr_engine.perform_ocr.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_pdf_returns_empty(self):
        processor, _, _ = make_processor()

        assert await processor.extract_text(b"definitely not a pdf") == ""

    @pytest.mark.asyncio
    async def test_fast_parser_error_is_recovered(self, text_pdf_bytes):
        processor, _, _ = make_processor(layout_text=LONG_TEXT)

        def broken_parser(pdf_bytes):
            raise ValueError("broken xref table")

        processor.fast_parser = broken_parser

        assert await processor.extract_text(text_pdf_bytes) == LONG_TEXT

    @pytest.mark.asyncio
    async def test_real_components_extract_text_pdf(self, text_pdf_bytes):
        processor = PDFProcessor(PDFProcessingConfig())

        text = await processor.extract_text(text_pdf_bytes)

        assert "Ballast water" in text
