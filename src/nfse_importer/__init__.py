"""
NFS-e importer: batch text extraction with OCR fallback, label-proximity
field recognition, schema validation and TXT/XLSX export.
"""
__version__ = "1.0.0"
