"""
Writes the TXT layout and the tax report for a record set.
"""
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel

from ..exceptions import NoRecordsToExport
from ..models import ExportPreferences, Record
from .excel_reporter import ExcelReporter
from .formatting import build_txt

TXT_NAME = "servicos_tomados_{stamp}.txt"
XLSX_NAME = "servicos_tomados_relatorio_tributos_{stamp}.xlsx"
PART_SUFFIX = ".part"


def export_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M")


class ExportArtifacts(BaseModel):
    """Files written by one export"""
    txt_path: Path
    xlsx_path: Path
    record_count: int


class ExportService:
    """Renders both artifacts and saves them in the output directory"""

    def __init__(self,
                 output_dir: Path,
                 excel_reporter: Optional[ExcelReporter] = None,
                 separator: str = ";"):
        self.output_dir = Path(output_dir)
        self.excel_reporter = excel_reporter or ExcelReporter()
        self.separator = separator

    def export(self,
               records: List[Record],
               preferences: ExportPreferences,
               now: Optional[datetime] = None) -> ExportArtifacts:
        """
        Raises:
            NoRecordsToExport: nothing to export; no file is written
        """
        if not records:
            raise NoRecordsToExport("Nenhum registro para exportar")

        stamp = export_timestamp(now)

        # Build both payloads before touching the disk
        txt = build_txt(records, preferences.schema_fields, preferences.decimal_locale, self.separator)
        workbook = self.excel_reporter.build_workbook(records)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        txt_path = self.output_dir / TXT_NAME.format(stamp=stamp)
        xlsx_path = self.output_dir / XLSX_NAME.format(stamp=stamp)
        self._write_pair({
            txt_path: txt.encode("utf-8"),
            xlsx_path: workbook,
        })

        logger.info(f"Exported {len(records)} record(s): {txt_path.name}, {xlsx_path.name}")
        return ExportArtifacts(txt_path=txt_path, xlsx_path=xlsx_path, record_count=len(records))

    @staticmethod
    def _write_pair(payloads: Dict[Path, bytes]):
        """
        Write every payload under a ``.part`` name, then rename into place.

        Either all artifacts appear or none do: on failure the temporary
        files and anything already renamed are removed before re-raising.
        """
        staged = {path: path.with_name(path.name + PART_SUFFIX) for path in payloads}
        placed: List[Path] = []
        try:
            for path, payload in payloads.items():
                staged[path].write_bytes(payload)
            for path, temp in staged.items():
                temp.replace(path)
                placed.append(path)
        except OSError as e:
            logger.error(f"Export failed, removing partial files: {e}")
            for leftover in [*staged.values(), *placed]:
                leftover.unlink(missing_ok=True)
            raise
