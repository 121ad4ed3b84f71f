"""
Utilities package.
"""
from .file_handler import FileHandler, FileValidator, ZIPExtractor
from .formatting import (
    build_txt,
    format_field,
    format_money,
    mask_cnpj,
    parse_money_text,
    round_half_even,
)
from .excel_reporter import ExcelReporter
from .exporter import ExportArtifacts, ExportService

__all__ = [
    "FileHandler",
    "FileValidator",
    "ZIPExtractor",
    "build_txt",
    "format_field",
    "format_money",
    "mask_cnpj",
    "parse_money_text",
    "round_half_even",
    "ExcelReporter",
    "ExportArtifacts",
    "ExportService",
]
