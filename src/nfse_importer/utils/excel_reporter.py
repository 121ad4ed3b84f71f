"""
Excel tax report generation.
"""
import io
from typing import List, Optional

import pandas as pd
from loguru import logger
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..models import Record
from .formatting import is_number, parse_money_text, round_half_even


class ExcelReporter:
    """
    Builds the fixed-column tax audit workbook.

    Columns do not follow the user's TXT layout: the report is an audit
    artifact and keeps the same shape across preference changes.
    """

    SHEET_NAME = "Tributos"
    COLUMNS = [
        "Nota", "Prestador", "Municipio", "ISS", "IRRF", "INSS", "PIS",
        "COFINS", "CSLL", "BaseCalculo", "ValorBruto", "ValorLiquido", "ISSRetido",
    ]

    # Style definitions
    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
    BORDER_THIN = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    @staticmethod
    def _money(value) -> Optional[float]:
        if isinstance(value, str) and parse_money_text(value) is not None:
            value = parse_money_text(value)
        if not is_number(value):
            # Unparsed text stays visible for review
            return value if isinstance(value, str) and value else None
        return float(round_half_even(value))

    @staticmethod
    def _iss_retido(value) -> str:
        if value is True:
            return "SIM"
        if value is False:
            return "NÃO"
        return ""

    def build_rows(self, records: List[Record]) -> List[dict]:
        rows = []
        for r in records:
            rows.append({
                'Nota': r.numero_nota or "",
                'Prestador': r.razao_social_prestador or "",
                'Municipio': r.municipio_prestador or "",
                'ISS': self._money(r.valor_iss),
                'IRRF': self._money(r.valor_irrf),
                'INSS': self._money(r.inss),
                'PIS': self._money(r.valor_pis),
                'COFINS': self._money(r.valor_cofins),
                'CSLL': self._money(r.valor_csll),
                'BaseCalculo': self._money(r.base_calculo),
                'ValorBruto': self._money(r.valor_bruto),
                'ValorLiquido': self._money(r.valor_liquido),
                'ISSRetido': self._iss_retido(r.iss_retido_flag),
            })
        return rows

    def build_workbook(self, records: List[Record]) -> bytes:
        """Return the .xlsx payload"""
        df = pd.DataFrame(self.build_rows(records), columns=self.COLUMNS)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name=self.SHEET_NAME, index=False)
            self._apply_formatting(writer.sheets[self.SHEET_NAME])

        logger.debug(f"Built tax report with {len(df)} row(s)")
        return buffer.getvalue()

    def _apply_formatting(self, ws: Worksheet):
        """Header style, column widths, filters and frozen header"""
        for cell in ws[1]:
            cell.font = self.HEADER_FONT
            cell.fill = self.HEADER_FILL
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = self.BORDER_THIN

        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

        ws.auto_filter.ref = ws.dimensions
        ws.freeze_panes = 'A2'
