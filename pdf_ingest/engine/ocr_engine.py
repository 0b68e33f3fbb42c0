"""
OCR Engine for scanned PDFs

Pipeline per page: PyMuPDF rasterization -> PIL Image -> Tesseract.

Resource bounds:
- at most ExtractionSettings.max_pages pages, 2 pages in flight at a time
- overall budget of ocr_max_time_seconds, one third of it per page
- the run stops early once failed pages exceed a third of the planned pages
"""
import asyncio
import io
import logging
import time
from typing import Callable, List, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.engine.page_analyzer import DocumentProfile, PageAnalyzer, open_pdf

logger = logging.getLogger(__name__)

PARALLEL_PAGES = 2


class TesseractWorker:
    """
    Recognition worker bound to one language and segmentation mode.

    Scoped to a single OCR run; recognize() is refused after terminate().
    """

    def __init__(self, language: str = "eng", page_seg_mode: int = 1):
        self.language = language
        self.page_seg_mode = page_seg_mode
        self._active = False

    @property
    def tesseract_config(self) -> str:
        return f"--psm {self.page_seg_mode}"

    def start(self) -> None:
        """Verify the tesseract binary is available."""
        version = pytesseract.get_tesseract_version()
        self._active = True
        logger.info(
            f"Tesseract {version} worker started (lang={self.language}, psm={self.page_seg_mode})"
        )

    def recognize(self, image: Image.Image, timeout: float = 0) -> str:
        if not self._active:
            raise RuntimeError("Tesseract worker is not running")
        return pytesseract.image_to_string(
            image,
            lang=self.language,
            config=self.tesseract_config,
            timeout=timeout,
        )

    def terminate(self) -> None:
        self._active = False


def render_page(pdf_bytes: bytes, page_index: int, scale: float) -> Image.Image:
    """
    Rasterize one page to a PIL image.

    Opens its own document handle so that pages can render concurrently.
    """
    with open_pdf(pdf_bytes) as doc:
        page = doc.load_page(page_index)
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        image = Image.open(io.BytesIO(pix.tobytes("png")))
        image.load()
        del pix
    return image


class OCREngine:
    """
    Optical character recognition over rasterized PDF pages.

    Usage:
        engine = OCREngine(config)
        text = await engine.perform_ocr(pdf_bytes)
    """

    def __init__(
        self,
        config: Optional[PDFProcessingConfig] = None,
        page_analyzer: Optional[PageAnalyzer] = None,
        worker_factory: Optional[Callable[[str, int], TesseractWorker]] = None,
        renderer: Callable[[bytes, int, float], Image.Image] = render_page
    ):
        self.config = config or PDFProcessingConfig()
        self.page_analyzer = page_analyzer or PageAnalyzer(self.config)
        self.worker_factory = worker_factory or TesseractWorker
        self.renderer = renderer

    @property
    def page_timeout(self) -> float:
        return self.config.ocr_max_time_seconds / 3

    async def perform_ocr(
        self,
        pdf_bytes: bytes,
        profile: Optional[DocumentProfile] = None
    ) -> str:
        """
        Run OCR over the first pages of the document.

        Returns the text of the pages recognized so far when the time budget
        runs out or too many pages fail; returns "" on any setup error.
        """
        start_time = time.monotonic()
        worker: Optional[TesseractWorker] = None

        try:
            logger.info("Performing OCR on PDF with optimized settings")
            if profile is None:
                profile = await asyncio.to_thread(self.page_analyzer.profile, pdf_bytes)
            settings = self.page_analyzer.settings_for(profile)
            page_count = min(settings.max_pages, profile.page_count)

            worker = self.worker_factory(self.config.ocr_language, settings.page_seg_mode)
            await asyncio.to_thread(worker.start)

            texts: List[str] = []
            processed_pages = 0
            failed_pages = 0

            for batch_start in range(0, page_count, PARALLEL_PAGES):
                if time.monotonic() - start_time > self.config.ocr_max_time_seconds:
                    logger.warning(f"OCR timeout reached after {processed_pages} pages")
                    break

                if failed_pages > page_count / 3:
                    logger.error(
                        f"Too many OCR page failures ({failed_pages}/{processed_pages + failed_pages}), "
                        f"aborting OCR"
                    )
                    break

                batch = range(batch_start, min(batch_start + PARALLEL_PAGES, page_count))
                results = await asyncio.gather(
                    *(self._process_page(pdf_bytes, index, worker, settings.ocr_scale) for index in batch),
                    return_exceptions=True,
                )

                for page_index, page_result in zip(batch, results):
                    if isinstance(page_result, BaseException):
                        logger.error(f"OCR page {page_index + 1} processing rejected: {page_result}")
                        failed_pages += 1
                    elif page_result.strip():
                        texts.append(page_result.strip())
                        processed_pages += 1
                    else:
                        failed_pages += 1

                logger.info(
                    f"OCR progress: {processed_pages}/{page_count} pages processed, {failed_pages} failed"
                )

            logger.info(
                f"OCR completed in {time.monotonic() - start_time:.1f}s for {processed_pages} pages "
                f"({failed_pages} failed)"
            )
            return "\n\n".join(texts).strip()

        except Exception as e:
            logger.error(f"Error performing OCR: {e}")
            return ""
        finally:
            if worker is not None:
                try:
                    logger.info("Terminating Tesseract worker...")
                    worker.terminate()
                except Exception as terminate_error:
                    logger.error(f"Error terminating Tesseract worker: {terminate_error}")

    async def _process_page(
        self,
        pdf_bytes: bytes,
        page_index: int,
        worker: TesseractWorker,
        scale: float
    ) -> str:
        """OCR a single page; any failure or timeout yields ""."""
        page_number = page_index + 1
        try:
            logger.info(f"OCR processing page {page_number}")
            return await asyncio.wait_for(
                asyncio.to_thread(self._recognize_page, pdf_bytes, page_index, worker, scale),
                timeout=self.page_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"OCR page {page_number} processing timed out")
            return ""
        except Exception as e:
            logger.error(f"Error processing page {page_number} for OCR: {e}")
            return ""

    def _recognize_page(
        self,
        pdf_bytes: bytes,
        page_index: int,
        worker: TesseractWorker,
        scale: float
    ) -> str:
        image = self.renderer(pdf_bytes, page_index, scale)
        try:
            return worker.recognize(image, timeout=self.page_timeout)
        finally:
            image.close()
