"""
Tests for label-proximity field recognition.
"""
import unittest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nfse_importer.core import FieldRecognizer, parse_brl_money


SAMPLE_NFSE = """PREFEITURA MUNICIPAL DE SAO PAULO
NOTA FISCAL ELETRONICA DE SERVICOS - NFS-e
Número da Nota: 00004521
Data de Emissão: 15/03/2024 10:32:11
Competência: 03/2024
PRESTADOR DE SERVIÇOS
CNPJ: 12.345.678/0001-90
Razão Social: ACME SERVICOS DE TECNOLOGIA LTDA
Endereço: Rua das Flores, 100 - Centro
Município: São Paulo - SP
Código do Serviço: 01.07
Valor Total do Serviço = R$ 10.000,00
ISS Retido: Sim
"""


class TestParseMoney(unittest.TestCase):

    def test_brazilian_format(self):
        self.assertEqual(parse_brl_money("1.234,56"), 1234.56)
        self.assertEqual(parse_brl_money("R$ 12,00"), 12.0)
        self.assertEqual(parse_brl_money("1.500.000,10"), 1500000.10)

    def test_no_digits(self):
        self.assertIsNone(parse_brl_money("abc"))
        self.assertIsNone(parse_brl_money(""))
        self.assertIsNone(parse_brl_money(None))


class TestFieldRecognizer(unittest.TestCase):

    def setUp(self):
        self.recognizer = FieldRecognizer()

    def recognize_one(self, text):
        records = self.recognizer.recognize([text], "nota.pdf")
        self.assertEqual(len(records), 1)
        return records[0]

    def test_money_near_label(self):
        """Value after the label is found; a partial date is not a date"""
        record = self.recognize_one("Valor do Serviço ... R$ 1.500,00\nCompetência 03/2024")
        self.assertEqual(record.valor_bruto, 1500.0)
        self.assertIsNone(record.data_competencia)

    def test_missing_label_gives_absent_field(self):
        record = self.recognize_one("Nada aqui 1.000,00")
        self.assertIsNone(record.valor_bruto)
        self.assertIsNone(record.valor_iss)

    def test_value_before_label_in_window(self):
        record = self.recognize_one("1.000,00 Valor do Serviço")
        self.assertEqual(record.valor_bruto, 1000.0)

    def test_value_outside_window(self):
        record = self.recognize_one("Valor do Serviço" + " " * 300 + "1.000,00")
        self.assertIsNone(record.valor_bruto)

    def test_value_without_thousand_separator(self):
        record = self.recognize_one("Valor do Serviço 1500,00")
        self.assertEqual(record.valor_bruto, 1500.0)

    def test_second_label_pattern(self):
        record = self.recognize_one("Total do Serviço 2.000,00")
        self.assertEqual(record.valor_bruto, 2000.0)

    def test_tax_labels(self):
        self.assertEqual(self.recognize_one("Valor ISS 500,00").valor_iss, 500.0)
        aliquota = self.recognize_one("Alíquota ISS 5,00")
        self.assertEqual(aliquota.aliquota_iss_percent, 5.0)
        self.assertIsNone(aliquota.valor_iss)
        self.assertEqual(self.recognize_one("COFINS 30,00").valor_cofins, 30.0)

    def test_rate_with_four_decimals(self):
        """A 5,0000 rate reads as 5,00 instead of borrowing the next amount"""
        text = ("Alíquota ISS (%): 5,0000\n"
                "Discriminação: consultoria em sistemas de informação e suporte técnico mensal conforme contrato\n"
                "Valor ISS: 50,00")
        record = self.recognize_one(text)
        self.assertEqual(record.aliquota_iss_percent, 5.0)
        self.assertEqual(record.valor_iss, 50.0)

    def test_date_near_label(self):
        record = self.recognize_one("Data de Emissão: 15/03/2024")
        self.assertEqual(record.data_emissao, "15/03/2024")

    def test_date_outside_window(self):
        record = self.recognize_one("Data de Emissão:" + " " * 130 + "15/03/2024")
        self.assertIsNone(record.data_emissao)

    def test_iss_retido_flag(self):
        self.assertTrue(self.recognize_one("ISS Retido: Sim").iss_retido_flag)
        self.assertTrue(self.recognize_one("Imposto retido pelo tomador").iss_retido_flag)
        self.assertIsNone(self.recognize_one("Valor do Serviço 10,00").iss_retido_flag)

    def test_pages_are_joined(self):
        records = self.recognizer.recognize(["Valor do Serviço", "R$ 99,90"], "nota.pdf")
        self.assertEqual(records[0].valor_bruto, 99.9)

    def test_record_origin_and_warnings(self):
        records = self.recognizer.recognize(
            ["texto"], "nota.pdf", file_id="job-1", warnings=["página 2: OCR sem texto (timeout)"]
        )
        record = records[0]
        self.assertEqual(record.file_id, "job-1")
        self.assertEqual(record.origin.arquivo, "nota.pdf")
        self.assertEqual(record.warnings, ["página 2: OCR sem texto (timeout)"])
        self.assertEqual(record.errors, [])

    def test_full_document(self):
        record = self.recognize_one(SAMPLE_NFSE)
        self.assertEqual(record.numero_nota, "00004521")
        self.assertEqual(record.data_emissao, "15/03/2024")
        self.assertIsNone(record.data_competencia)
        self.assertEqual(record.cnpj_prestador, "12345678000190")
        self.assertEqual(record.razao_social_prestador, "ACME SERVICOS DE TECNOLOGIA LTDA")
        self.assertEqual(record.endereco_prestador, "Rua das Flores, 100 - Centro")
        self.assertEqual(record.municipio_prestador, "São Paulo")
        self.assertEqual(record.uf_prestador, "SP")
        self.assertEqual(record.codigo_servico, "01.07")
        self.assertEqual(record.valor_bruto, 10000.0)
        self.assertTrue(record.iss_retido_flag)


if __name__ == '__main__':
    unittest.main()
