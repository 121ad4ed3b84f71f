"""
Core package - Extraction, recognition, validation and job orchestration.
"""
from .limiter import ConcurrencyLimiter
from .ocr import OCREngine
from .page_extractor import PageExtractor, PageExtractionResult
from .recognizer import FieldRecognizer, parse_brl_money
from .validator import RecordValidator
from .orchestrator import JobOrchestrator

__all__ = [
    "ConcurrencyLimiter",
    "OCREngine",
    "PageExtractor",
    "PageExtractionResult",
    "FieldRecognizer",
    "parse_brl_money",
    "RecordValidator",
    "JobOrchestrator",
]
