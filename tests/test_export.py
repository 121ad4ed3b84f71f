"""
Tests for TXT formatting, the tax workbook and the export service.
"""
import io
import tempfile
import unittest
from unittest import mock
from datetime import datetime
from decimal import Decimal
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from openpyxl import load_workbook

from nfse_importer.exceptions import NoRecordsToExport
from nfse_importer.models import ExportPreferences, Origin, Record
from nfse_importer.utils import (
    ExcelReporter,
    ExportService,
    build_txt,
    format_field,
    format_money,
    mask_cnpj,
    parse_money_text,
    round_half_even,
)


def make_record(**fields):
    return Record(file_id="f1", origin=Origin(arquivo="nota.pdf"), **fields)


class TestFormatting(unittest.TestCase):

    def test_round_half_even(self):
        self.assertEqual(round_half_even(2.345), Decimal("2.34"))
        self.assertEqual(round_half_even(2.355), Decimal("2.36"))
        self.assertEqual(round_half_even(1.005), Decimal("1.00"))
        self.assertEqual(round_half_even(10), Decimal("10.00"))

    def test_format_money(self):
        self.assertEqual(format_money(1500, "pt"), "1500,00")
        self.assertEqual(format_money(1500, "en"), "1500.00")
        self.assertEqual(format_money(1234.565, "pt"), "1234,56")
        self.assertEqual(format_money(None), "")
        self.assertEqual(format_money(float("inf")), "")

    def test_mask_cnpj(self):
        self.assertEqual(mask_cnpj("12345678000190"), "12.345.678/0001-90")
        self.assertEqual(mask_cnpj("12.345.678/0001-90"), "12.345.678/0001-90")
        self.assertEqual(mask_cnpj("12345"), "12.345")
        self.assertEqual(mask_cnpj("1234567800019012"), "12.345.678/0001-90")
        self.assertEqual(mask_cnpj(""), "")
        self.assertEqual(mask_cnpj(None), "")

    def test_format_field(self):
        self.assertEqual(format_field("numero_nota", None), "")
        self.assertEqual(format_field("iss_retido_flag", True), "true")
        self.assertEqual(format_field("iss_retido_flag", False), "false")
        self.assertEqual(format_field("cnpj_prestador", "12345678000190"), "12.345.678/0001-90")
        self.assertEqual(format_field("valor_bruto", "abc"), "abc")
        self.assertEqual(format_field("valor_bruto", 2.5, "en"), "2.50")

    def test_money_text_is_normalized(self):
        self.assertEqual(format_field("valor_bruto", "1.500,00"), "1500,00")
        self.assertEqual(format_field("valor_bruto", "1.500,00", "en"), "1500.00")
        self.assertEqual(format_field("valor_iss", "R$ 75,5"), "75,50")
        self.assertEqual(format_field("valor_bruto", "12abc"), "12abc")

    def test_parse_money_text(self):
        self.assertEqual(parse_money_text("1.500,00"), 1500.0)
        self.assertEqual(parse_money_text("R$ 1.234.567,89"), 1234567.89)
        self.assertEqual(parse_money_text("1500"), 1500.0)
        self.assertIsNone(parse_money_text("1O0,00"))
        self.assertIsNone(parse_money_text("12abc"))
        self.assertIsNone(parse_money_text("1.50,00"))
        self.assertIsNone(parse_money_text(""))


class TestBuildTxt(unittest.TestCase):

    def test_single_line(self):
        record = make_record(numero_nota="123", valor_bruto=1500)
        self.assertEqual(build_txt([record], ["numero_nota", "valor_bruto"], "pt"), "123;1500,00")

    def test_column_order_follows_schema(self):
        record = make_record(numero_nota="123", valor_bruto=1500)
        self.assertEqual(build_txt([record], ["valor_bruto", "numero_nota"], "en"), "1500.00;123")

    def test_absent_values_keep_columns(self):
        records = [
            make_record(numero_nota="1", valor_iss=2.345),
            make_record(serie="A", iss_retido_flag=True),
        ]
        schema = ["numero_nota", "serie", "valor_iss", "iss_retido_flag"]
        self.assertEqual(build_txt(records, schema), "1;;2,34;\n;A;;true")

    def test_money_text_value(self):
        record = make_record(numero_nota="123", valor_bruto="1.500,00")
        self.assertEqual(build_txt([record], ["numero_nota", "valor_bruto"], "pt"), "123;1500,00")

    def test_custom_separator(self):
        record = make_record(numero_nota="9", serie="1")
        self.assertEqual(build_txt([record], ["numero_nota", "serie"], separator="|"), "9|1")


class TestExcelReporter(unittest.TestCase):

    def test_workbook_layout(self):
        records = [
            make_record(numero_nota="123", razao_social_prestador="ACME LTDA", municipio_prestador="Campinas",
                        valor_iss=2.345, valor_bruto=1500, iss_retido_flag=True),
            make_record(numero_nota="124", valor_bruto="abc"),
        ]
        payload = ExcelReporter().build_workbook(records)

        wb = load_workbook(io.BytesIO(payload))
        self.assertEqual(wb.sheetnames, ["Tributos"])
        ws = wb["Tributos"]
        rows = list(ws.iter_rows(values_only=True))

        self.assertEqual(list(rows[0]), ExcelReporter.COLUMNS)
        self.assertEqual(len(rows), 3)

        first = dict(zip(ExcelReporter.COLUMNS, rows[1]))
        self.assertEqual(first["Nota"], "123")
        self.assertEqual(first["Prestador"], "ACME LTDA")
        self.assertEqual(first["ISS"], 2.34)
        self.assertEqual(first["ValorBruto"], 1500)
        self.assertEqual(first["ISSRetido"], "SIM")
        self.assertIn(first["IRRF"], (None, ""))

        second = dict(zip(ExcelReporter.COLUMNS, rows[2]))
        self.assertEqual(second["ValorBruto"], "abc")
        self.assertIn(second["ISSRetido"], (None, ""))

        self.assertEqual(ws.freeze_panes, "A2")

    def test_columns_ignore_txt_layout(self):
        rows = ExcelReporter().build_rows([make_record(numero_nota="1")])
        self.assertEqual(list(rows[0]), ExcelReporter.COLUMNS)


class TestExportService(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self.tmp.name) / "saida"

    def tearDown(self):
        self.tmp.cleanup()

    def test_export_writes_both_files(self):
        service = ExportService(self.output_dir)
        preferences = ExportPreferences(schema_fields=["numero_nota", "valor_bruto"], decimal_locale="pt")
        records = [make_record(numero_nota="123", valor_bruto=1500)]

        artifacts = service.export(records, preferences, now=datetime(2024, 3, 5, 14, 7))

        self.assertEqual(artifacts.txt_path.name, "servicos_tomados_20240305_1407.txt")
        self.assertEqual(artifacts.xlsx_path.name, "servicos_tomados_relatorio_tributos_20240305_1407.xlsx")
        self.assertEqual(artifacts.record_count, 1)
        self.assertEqual(artifacts.txt_path.read_text(encoding="utf-8"), "123;1500,00")
        self.assertTrue(artifacts.xlsx_path.read_bytes().startswith(b"PK"))

    def test_failed_workbook_write_leaves_no_files(self):
        service = ExportService(self.output_dir)
        records = [make_record(numero_nota="123", valor_bruto=1500)]
        write_bytes = Path.write_bytes

        def failing_write(path, data):
            if ".xlsx" in path.name:
                raise OSError("disk full")
            return write_bytes(path, data)

        with mock.patch.object(Path, "write_bytes", autospec=True, side_effect=failing_write):
            with self.assertRaises(OSError):
                service.export(records, ExportPreferences())

        self.assertEqual(list(self.output_dir.iterdir()), [])

    def test_failed_rename_removes_placed_artifact(self):
        service = ExportService(self.output_dir)
        records = [make_record(numero_nota="123", valor_bruto=1500)]
        replace = Path.replace

        def failing_replace(path, target):
            if ".xlsx" in path.name:
                raise OSError("rename failed")
            return replace(path, target)

        with mock.patch.object(Path, "replace", autospec=True, side_effect=failing_replace):
            with self.assertRaises(OSError):
                service.export(records, ExportPreferences())

        self.assertEqual(list(self.output_dir.iterdir()), [])

    def test_money_text_exported_normalized(self):
        service = ExportService(self.output_dir)
        preferences = ExportPreferences(schema_fields=["numero_nota", "valor_bruto"], decimal_locale="en")
        artifacts = service.export([make_record(numero_nota="1", valor_bruto="1.500,00")], preferences)
        self.assertEqual(artifacts.txt_path.read_text(encoding="utf-8"), "1;1500.00")

    def test_empty_export_writes_nothing(self):
        service = ExportService(self.output_dir)
        with self.assertRaises(NoRecordsToExport):
            service.export([], ExportPreferences())
        self.assertFalse(self.output_dir.exists())


if __name__ == '__main__':
    unittest.main()
