"""
Exceptions raised by the import pipeline.
"""


class ExtractionError(Exception):
    """A document could not be opened or read (job-fatal)"""


class OCREngineUnavailable(ExtractionError):
    """The OCR engine could not be started (e.g. Tesseract binary not found)"""


class InvalidJobTransition(Exception):
    """A job was moved to a status its current status cannot reach"""


class NoRecordsToExport(ValueError):
    """Export requested with an empty record set"""


class OCRTimeout(Exception):
    """OCR of one page did not finish within its time budget"""
