"""
OCR engine used for image-only pages (Tesseract via pytesseract).
"""
import re
from typing import Optional

import pytesseract
from PIL import Image, ImageEnhance, ImageOps
from loguru import logger

from ..exceptions import OCREngineUnavailable, OCRTimeout


class OCREngine:
    """Recognizes text in a rendered page image"""

    def __init__(self,
                 tesseract_cmd: Optional[str] = None,
                 language: str = "por+eng",
                 enable_preprocessing: bool = True):
        """
        Args:
            tesseract_cmd: Path to tesseract executable (if not in PATH)
            language: Tesseract language hint
            enable_preprocessing: Grayscale/contrast/sharpen before OCR
        """
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self.language = language
        self.enable_preprocessing = enable_preprocessing

    def recognize(self, image: Image.Image, timeout_seconds: float) -> str:
        """
        Run OCR on one image.

        pytesseract kills the Tesseract process once ``timeout_seconds``
        elapses; that case is raised as OCRTimeout.
        """
        if self.enable_preprocessing:
            image = self._preprocess_image(image)

        try:
            # PSM 4 = single column of text of variable sizes
            text = pytesseract.image_to_string(
                image,
                lang=self.language,
                config="--psm 4 --oem 3",
                timeout=timeout_seconds,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OCREngineUnavailable(str(e)) from e
        except RuntimeError as e:
            if "timeout" in str(e).lower():
                raise OCRTimeout(f"OCR exceeded {timeout_seconds:g}s") from e
            raise

        return re.sub(r"\s+\n", "\n", text or "").strip()

    def _preprocess_image(self, image: Image.Image) -> Image.Image:
        """Conservative cleanup: grayscale, auto-contrast, moderate sharpening"""
        try:
            image = image.convert("L")
            image = ImageOps.autocontrast(image, cutoff=1)
            image = ImageEnhance.Sharpness(image).enhance(1.5)
        except (OSError, ValueError) as e:
            logger.warning(f"Error in image preprocessing: {e}")
        return image
