"""
Per-page text acquisition with OCR fallback for image-only pages.
"""
import io
from typing import Callable, Dict, List, Optional

import fitz  # PyMuPDF
import pdfplumber
from PIL import Image
from loguru import logger
from pydantic import BaseModel, Field

from ..exceptions import ExtractionError, OCREngineUnavailable, OCRTimeout
from .ocr import OCREngine


class PageExtractionResult(BaseModel):
    """Text of every page, in page order"""
    pages: List[str] = Field(default_factory=list)
    ocr_pages: List[int] = Field(default_factory=list)
    # page number (1-based) -> "timeout" | "erro"
    ocr_failures: Dict[int, str] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return "\n\n".join(self.pages)

    def warnings(self) -> List[str]:
        return [
            f"página {page}: OCR sem texto ({reason})"
            for page, reason in sorted(self.ocr_failures.items())
        ]


class PageExtractor:
    """
    Reads the native text layer of each page; pages with less than
    ``min_text_length`` characters are rasterized and sent to OCR.
    """

    def __init__(self,
                 ocr_engine: OCREngine,
                 min_text_length: int = 20,
                 raster_scale: float = 2.0,
                 ocr_timeout_seconds: float = 30.0,
                 page_limit: int = 0):
        self.ocr_engine = ocr_engine
        self.min_text_length = min_text_length
        self.raster_scale = raster_scale
        self.ocr_timeout_seconds = ocr_timeout_seconds
        self.page_limit = page_limit

    def extract(self,
                pdf_bytes: bytes,
                filename: str = "",
                progress_callback: Optional[Callable[[int], None]] = None) -> PageExtractionResult:
        """
        Extract text for every page.

        Raises:
            ExtractionError: the PDF cannot be opened or read
            OCREngineUnavailable: OCR was needed but Tesseract cannot start
        """
        result = PageExtractionResult()
        raster_doc = None

        try:
            pdf = pdfplumber.open(io.BytesIO(pdf_bytes))
        except Exception as e:
            raise ExtractionError(f"Não foi possível abrir o PDF {filename}: {e}") from e

        try:
            total = len(pdf.pages)
            if self.page_limit:
                total = min(total, self.page_limit)
            logger.debug(f"{filename}: {total} page(s)")

            for index in range(total):
                page_number = index + 1
                try:
                    text = (pdf.pages[index].extract_text() or "").strip()
                except Exception as e:
                    raise ExtractionError(f"Falha ao ler a página {page_number} de {filename}: {e}") from e

                if len(text) < self.min_text_length:
                    logger.info(f"{filename} p.{page_number}: sparse text layer ({len(text)} chars), using OCR")
                    if raster_doc is None:
                        raster_doc = fitz.open(stream=pdf_bytes, filetype="pdf")
                    result.ocr_pages.append(page_number)
                    text = self._ocr_page(raster_doc, index, filename, result)

                result.pages.append(text)
                if progress_callback:
                    progress_callback(round(page_number / total * 100))
        finally:
            pdf.close()
            if raster_doc is not None:
                raster_doc.close()

        return result

    def _ocr_page(self, raster_doc, index: int, filename: str, result: PageExtractionResult) -> str:
        """OCR one page; a timeout or OCR failure yields empty text"""
        page_number = index + 1
        try:
            image = self._render_page(raster_doc, index)
            text = self.ocr_engine.recognize(image, self.ocr_timeout_seconds)
            logger.debug(f"{filename} p.{page_number}: OCR returned {len(text)} chars")
            return text
        except OCREngineUnavailable:
            raise
        except OCRTimeout as e:
            logger.warning(f"{filename} p.{page_number}: {e}; page left empty")
            result.ocr_failures[page_number] = "timeout"
        except Exception as e:
            logger.warning(f"{filename} p.{page_number}: OCR failed ({e}); page left empty")
            result.ocr_failures[page_number] = "erro"
        return ""

    def _render_page(self, raster_doc, index: int) -> Image.Image:
        page = raster_doc[index]
        pix = page.get_pixmap(matrix=fitz.Matrix(self.raster_scale, self.raster_scale))
        return Image.open(io.BytesIO(pix.tobytes("png")))
