"""
File intake: PDFs directly, ZIP archives expanded to their PDFs.
"""
import zipfile
from pathlib import Path
from typing import List, Tuple

from loguru import logger

PDF_MAGIC = b'%PDF'
ZIP_MAGIC = b'PK\x03\x04'


class FileValidator:
    """Validates file types by magic bytes"""

    @staticmethod
    def _header(file_path: Path) -> bytes:
        try:
            with open(file_path, 'rb') as f:
                return f.read(4)
        except OSError as e:
            logger.error(f"Error reading {file_path}: {e}")
            return b""

    @staticmethod
    def is_pdf_bytes(data: bytes) -> bool:
        return data[:4] == PDF_MAGIC

    @classmethod
    def detect(cls, file_path: Path) -> str:
        """'PDF', 'ZIP' or '' for anything unsupported"""
        if not file_path.is_file():
            return ""
        header = cls._header(file_path)
        if header == PDF_MAGIC:
            return "PDF"
        if header == ZIP_MAGIC:
            return "ZIP"
        return ""


class ZIPExtractor:
    """Extracts PDF files from ZIP archives in memory"""

    @staticmethod
    def extract_pdfs(zip_path: Path) -> List[Tuple[str, bytes]]:
        pdfs = []
        try:
            with zipfile.ZipFile(zip_path, 'r') as zip_ref:
                for info in zip_ref.infolist():
                    if info.is_dir() or not info.filename.lower().endswith('.pdf'):
                        continue
                    data = zip_ref.read(info.filename)
                    if FileValidator.is_pdf_bytes(data):
                        pdfs.append((Path(info.filename).name, data))
                    else:
                        logger.warning(f"File has .pdf extension but invalid format: {info.filename}")
        except zipfile.BadZipFile:
            logger.error(f"Invalid ZIP file: {zip_path}")
        logger.info(f"Extracted {len(pdfs)} PDFs from {zip_path.name}")
        return pdfs


class FileHandler:
    """High-level file handling operations"""

    @staticmethod
    def prepare_files_for_processing(file_paths: List[Path]) -> List[Tuple[str, bytes]]:
        """
        Load PDFs (and PDFs inside ZIPs) as (filename, bytes) pairs.
        Unsupported or unreadable files are skipped with a warning.
        """
        files_to_process = []

        for file_path in map(Path, file_paths):
            file_type = FileValidator.detect(file_path)

            if file_type == "PDF":
                try:
                    files_to_process.append((file_path.name, file_path.read_bytes()))
                except OSError as e:
                    logger.error(f"Error reading PDF {file_path}: {e}")
            elif file_type == "ZIP":
                files_to_process.extend(ZIPExtractor.extract_pdfs(file_path))
            else:
                logger.warning(f"Skipping unsupported file: {file_path}")

        logger.info(f"Prepared {len(files_to_process)} files for processing")
        return files_to_process
