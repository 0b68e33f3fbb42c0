"""
Layout-aware PDF text reconstruction.

Rebuilds lines, paragraphs and column wraps from positioned text items,
page by page, within an overall wall-clock budget. Very dense documents
use a simplified single-pass mode.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Optional

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.engine.page_analyzer import (
    ExtractionSettings,
    PageAnalyzer,
    TextItem,
    extract_page_items,
    open_pdf,
)

logger = logging.getLogger(__name__)

# Page complexity gates
SORT_MIN_ITEMS = 100
COLUMN_MIN_ITEMS = 50
HEADING_MIN_ITEMS = 200
HEADING_FONT_RATIO = 1.5

# Column clustering
COLUMN_FREQUENCY_RATIO = 0.08
COLUMN_SEPARATION_BUCKETS = 3
MIN_BUCKET_SIZE = 5

SIMPLIFIED_LINE_GAP = 10


@dataclass
class LayoutResult:
    """Outcome of a layout extraction run."""
    text: str = ""
    page_columns: List[List[int]] = field(default_factory=list)
    pages_processed: int = 0
    timed_out: bool = False


def detect_columns(items: List[TextItem]) -> List[int]:
    """
    Detect column start positions from the x distribution of text items.

    x positions are clustered into buckets sized from the page width; buckets
    holding more than 8% of the items are column candidates, and candidates
    closer than three bucket widths to the previously kept one are dropped.
    Returns positions in ascending order, or [] for pages under 50 items.
    """
    if len(items) < COLUMN_MIN_ITEMS:
        return []

    x_positions = [item.x for item in items]
    page_width = max(x_positions) - min(x_positions)
    bucket_size = max(MIN_BUCKET_SIZE, math.floor(page_width / 100))

    frequency: dict[int, int] = {}
    for x in x_positions:
        # Half-up rounding into the nearest bucket
        bucket = math.floor(x / bucket_size + 0.5) * bucket_size
        frequency[bucket] = frequency.get(bucket, 0) + 1

    threshold = len(items) * COLUMN_FREQUENCY_RATIO
    candidates = sorted(pos for pos, count in frequency.items() if count > threshold)

    min_separation = bucket_size * COLUMN_SEPARATION_BUCKETS
    columns: List[int] = []
    for position in candidates:
        if not columns or position - columns[-1] >= min_separation:
            columns.append(position)
    return columns


def _append_word(line: str, word: str) -> str:
    if line and not line[-1].isspace():
        line += " "
    return line + word


def sort_reading_order(items: List[TextItem], line_tolerance: float) -> List[TextItem]:
    """Top-to-bottom, then left-to-right for items on roughly the same line."""
    def compare(a: TextItem, b: TextItem) -> float:
        if abs(a.y - b.y) > line_tolerance:
            return b.y - a.y
        return a.x - b.x

    return sorted(items, key=cmp_to_key(compare))


def build_page_text(items: List[TextItem], config: PDFProcessingConfig) -> str:
    """
    Reconstruct one page of text with line, paragraph and column breaks.

    Returns the page text with each flushed line terminated, without the
    trailing page separator.
    """
    if len(items) > SORT_MIN_ITEMS:
        items = sort_reading_order(items, config.line_threshold)

    check_headings = len(items) > HEADING_MIN_ITEMS
    text = ""
    line = ""
    last_y: Optional[float] = None
    last_x: Optional[float] = None
    last_font_size: Optional[float] = None

    for item in items:
        current_y = item.y
        current_x = item.x
        font_size = item.font_size or 0.0

        if last_y is not None and abs(last_y - current_y) > config.para_threshold:
            if line.strip():
                text += line.strip() + "\n\n"
                line = ""
        elif last_y is not None and abs(last_y - current_y) > config.line_threshold:
            if line.strip():
                text += line.strip() + "\n"
                line = ""
        elif (
            last_x is not None
            and last_y is not None
            and abs(last_y - current_y) < config.line_threshold
            and (last_x - current_x) > config.column_threshold
        ):
            # Jumped back to the left edge on the same baseline: column wrap
            if line.strip():
                text += line.strip() + "\n"
                line = ""
        elif check_headings and last_font_size is not None and font_size > last_font_size * HEADING_FONT_RATIO:
            if line.strip():
                text += line.strip() + "\n\n"
                line = ""

        line = _append_word(line, item.text)
        last_y = current_y
        last_x = current_x
        last_font_size = font_size

    if line.strip():
        text += line.strip() + "\n"
    return text


def build_simplified_page_text(items: List[TextItem]) -> str:
    """Single-pass line gathering for pages too dense for layout analysis."""
    items = sort_reading_order(items, SIMPLIFIED_LINE_GAP)
    text = ""
    line = ""
    last_y: Optional[float] = None

    for item in items:
        if last_y is not None and abs(last_y - item.y) > SIMPLIFIED_LINE_GAP:
            text += line.strip() + "\n"
            line = ""
        line = _append_word(line, item.text)
        last_y = item.y

    if line.strip():
        text += line.strip() + "\n"
    return text


class LayoutExtractor:
    """
    Page-by-page layout reconstruction over PyMuPDF text spans.

    Usage:
        extractor = LayoutExtractor(config)
        text = extractor.extract_with_layout(pdf_bytes)
    """

    def __init__(
        self,
        config: Optional[PDFProcessingConfig] = None,
        page_analyzer: Optional[PageAnalyzer] = None
    ):
        self.config = config or PDFProcessingConfig()
        self.page_analyzer = page_analyzer or PageAnalyzer(self.config)

    def extract_with_layout(
        self,
        pdf_bytes: bytes,
        settings: Optional[ExtractionSettings] = None
    ) -> str:
        return self.analyze(pdf_bytes, settings).text

    def analyze(
        self,
        pdf_bytes: bytes,
        settings: Optional[ExtractionSettings] = None
    ) -> LayoutResult:
        """
        Extract text with layout preserved.

        Stops at the processing timeout and returns the text gathered so far.
        Returns an empty result if the document cannot be read.
        """
        start_time = time.monotonic()
        result = LayoutResult()

        try:
            with open_pdf(pdf_bytes) as doc:
                if settings is None:
                    settings = self.page_analyzer.settings_for(
                        self.page_analyzer.profile_document(doc)
                    )
                self._extract_pages(doc, settings, start_time, result)
        except Exception as e:
            logger.error(f"Error extracting text with layout: {e}")
            return LayoutResult()

        result.text = result.text.strip()
        logger.info(
            f"Layout extraction completed in {time.monotonic() - start_time:.1f}s "
            f"({result.pages_processed} pages, {len(result.text)} chars)"
        )
        return result

    def _extract_pages(self, doc, settings: ExtractionSettings, start_time: float, result: LayoutResult) -> None:
        config = self.config
        page_count = doc.page_count
        use_simplified = config.enable_dynamic_scaling and not settings.enable_layout
        if use_simplified:
            logger.info("Using simplified layout extraction for complex document")

        for page_index in range(page_count):
            page_number = page_index + 1
            if time.monotonic() - start_time > config.processing_timeout:
                logger.warning(f"Layout extraction timeout reached after {page_index} pages")
                result.timed_out = True
                break

            try:
                items = extract_page_items(doc.load_page(page_index))
            except Exception as e:
                logger.warning(f"Layout extraction skipped page {page_number}: {e}")
                continue

            if len(items) > config.max_items_per_page and config.enable_dynamic_scaling:
                logger.info(
                    f"Page {page_number} has {len(items)} items, limiting to {config.max_items_per_page}"
                )
                items = items[:config.max_items_per_page]

            if use_simplified:
                result.text += build_simplified_page_text(items) + "\n"
                result.pages_processed += 1
                continue

            if not items:
                continue

            columns = detect_columns(items) if len(items) > COLUMN_MIN_ITEMS else []
            result.page_columns.append(columns)
            if len(columns) > 1:
                logger.debug(f"Page {page_number}: detected columns at {columns}")

            result.text += build_page_text(items, config) + "\n"
            result.pages_processed += 1

            if page_count > 10 and page_number % 10 == 0:
                logger.info(f"Layout extraction progress: {page_number}/{page_count} pages processed")
