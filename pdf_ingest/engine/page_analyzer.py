"""
Page Analyzer for adaptive PDF extraction

Samples the first pages of a document to estimate its complexity and decide:
- how the layout reconstructor and OCR engine should be tuned
  (ExtractionSettings)
- whether the document is likely scanned and worth sending to OCR

Text items are PyMuPDF text spans positioned in PDF user space (y grows
upward), so "top of page" means larger y.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import fitz  # PyMuPDF

from pdf_ingest.core.config import PDFProcessingConfig

logger = logging.getLogger(__name__)

SAMPLE_PAGES = 3
NOT_SCANNED_ITEMS_PER_PAGE = 20
SCANNED_AVG_ITEMS_PER_PAGE = 5


@dataclass(frozen=True)
class TextItem:
    """A positioned run of text on a page."""
    text: str
    x: float
    y: float
    font_size: float = 0.0


@dataclass(frozen=True)
class ExtractionSettings:
    """
    Per-document tuning derived from sampled page statistics.

    Created fresh for each extraction attempt and never mutated.
    """
    ocr_scale: float
    max_pages: int
    page_seg_mode: int
    enable_layout: bool = True


@dataclass
class DocumentProfile:
    """Page count and sampled text item counts of a document."""
    page_count: int
    sampled_item_counts: List[int] = field(default_factory=list)

    @property
    def avg_items_per_page(self) -> float:
        if not self.sampled_item_counts:
            return 0.0
        return sum(self.sampled_item_counts) / len(self.sampled_item_counts)


def get_optimal_processing_settings(
    page_count: int,
    avg_items_per_page: float,
    config: PDFProcessingConfig
) -> ExtractionSettings:
    """
    Derive extraction settings from document size and text density.

    Large documents get fewer OCR pages at a lower scale; very dense pages
    skip layout preservation; sparse pages get a higher OCR scale and the
    faster segmentation mode without orientation detection.
    """
    ocr_scale = config.ocr_scale
    max_pages = config.ocr_max_pages
    page_seg_mode = config.ocr_page_seg_mode
    enable_layout = True

    if page_count > 50:
        max_pages = min(5, config.ocr_max_pages)
        ocr_scale = 1.0
    elif page_count > 20:
        max_pages = min(8, config.ocr_max_pages)
        ocr_scale = 1.1

    if avg_items_per_page > 2000:
        enable_layout = False
    elif avg_items_per_page < 100:
        ocr_scale = min(1.5, config.ocr_scale)
        page_seg_mode = 3

    return ExtractionSettings(
        ocr_scale=ocr_scale,
        max_pages=max_pages,
        page_seg_mode=page_seg_mode,
        enable_layout=enable_layout,
    )


def extract_page_items(page: "fitz.Page") -> List[TextItem]:
    """
    Collect the text spans of a page as TextItems.

    PyMuPDF reports span origins top-down; they are flipped into PDF user
    space so that larger y is higher on the page.
    """
    height = page.rect.height
    items: List[TextItem] = []
    page_dict = page.get_text("dict")
    for block in page_dict.get("blocks", []):
        # Image blocks carry no lines
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text:
                    continue
                x, y = span.get("origin", span["bbox"][:2])
                items.append(TextItem(
                    text=text,
                    x=float(x),
                    y=float(height - y),
                    font_size=float(span.get("size") or 0.0),
                ))
    return items


def open_pdf(pdf_bytes: bytes) -> "fitz.Document":
    """Open a PDF held in memory."""
    return fitz.open(stream=pdf_bytes, filetype="pdf")


class PageAnalyzer:
    """
    Analyzes sampled pages of a PDF to tune extraction.

    Usage:
        analyzer = PageAnalyzer(config)
        profile = analyzer.profile(pdf_bytes)
        settings = analyzer.settings_for(profile)
        if analyzer.is_scanned_pdf(pdf_bytes, text_so_far):
            ...
    """

    def __init__(self, config: Optional[PDFProcessingConfig] = None):
        self.config = config or PDFProcessingConfig()

    def profile_document(self, doc: "fitz.Document") -> DocumentProfile:
        """Count text items on up to the first three pages."""
        page_count = doc.page_count
        counts = []
        for page_index in range(min(SAMPLE_PAGES, page_count)):
            counts.append(len(extract_page_items(doc.load_page(page_index))))
        return DocumentProfile(page_count=page_count, sampled_item_counts=counts)

    def profile(self, pdf_bytes: bytes) -> DocumentProfile:
        with open_pdf(pdf_bytes) as doc:
            return self.profile_document(doc)

    def settings_for(self, profile: DocumentProfile) -> ExtractionSettings:
        settings = get_optimal_processing_settings(
            profile.page_count, profile.avg_items_per_page, self.config
        )
        logger.info(
            f"Document analysis: {profile.page_count} pages, "
            f"~{round(profile.avg_items_per_page)} items/page -> "
            f"scale={settings.ocr_scale}, maxPages={settings.max_pages}, "
            f"segMode={settings.page_seg_mode}, layout={settings.enable_layout}"
        )
        return settings

    def is_scanned_pdf(self, pdf_bytes: bytes, text: Optional[str] = None) -> bool:
        """
        Decide whether a PDF is likely image-based.

        Text already longer than min_text_length means not scanned. Otherwise
        any sampled page with more than 20 items means not scanned, and an
        average below 5 items per sampled page means scanned. A document that
        cannot be opened is treated as scanned.
        """
        if text and len(text) > self.config.min_text_length:
            return False

        try:
            with open_pdf(pdf_bytes) as doc:
                page_count = min(SAMPLE_PAGES, doc.page_count)
                if page_count == 0:
                    return False

                total_items = 0
                for page_index in range(page_count):
                    item_count = len(extract_page_items(doc.load_page(page_index)))
                    total_items += item_count
                    if item_count > NOT_SCANNED_ITEMS_PER_PAGE:
                        return False

                return (total_items / page_count) < SCANNED_AVG_ITEMS_PER_PAGE
        except Exception as e:
            logger.error(f"Error checking if PDF is scanned: {e}")
            return True
