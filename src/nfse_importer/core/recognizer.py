"""
Label-proximity field recognition for NFS-e text.

Municipal layouts vary too much for fixed positions, so each field is
found by locating a label and then searching a bounded window around it.
"""
import re
from typing import Dict, List, Optional, Pattern, Sequence

from loguru import logger

from ..models import Origin, Record


def _compile(*patterns: str) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Money label search window: starts before the label, values often sit
# on the line above or to the left in tabular layouts
MONEY_WINDOW_BEFORE = 80
MONEY_WINDOW_SIZE = 220
DATE_WINDOW_SIZE = 120

BRL_MONEY = re.compile(r"(?:R\$\s*)?(?<![\d.,])(?:\d{1,3}(?:\.\d{3})+|\d+),\d{2}")
FULL_DATE = re.compile(r"\b\d{2}/\d{2}/\d{4}\b")
CNPJ = re.compile(r"(?<!\d)\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}(?!\d)")

ISS_RETIDO_PHRASES = re.compile(r"iss\s*retido|retido\s*pelo\s*tomador", re.IGNORECASE)

BRAZILIAN_STATES = {'AC', 'AL', 'AP', 'AM', 'BA', 'CE', 'DF', 'ES', 'GO', 'MA',
                    'MT', 'MS', 'MG', 'PA', 'PB', 'PR', 'PE', 'PI', 'RJ', 'RN',
                    'RS', 'RO', 'RR', 'SC', 'SP', 'SE', 'TO'}

MONEY_LABELS: Dict[str, List[Pattern]] = {
    "valor_bruto": _compile(r"valor\s*(do\s*)?servi[cç]o?s?", r"total\s*do\s*servi[cç]o"),
    "deducoes": _compile(r"dedu[cç][oõ]es"),
    "base_calculo": _compile(r"base\s*de\s*c[aá]lculo"),
    "aliquota_iss_percent": _compile(r"al[ií]quota\s*iss", r"iss\s*\(%\)", r"aliquota\s*issqn"),
    "valor_iss": _compile(r"valor\s*iss(?!p)", r"iss\s*\(r\$\)", r"issqn\s*valor"),
    "valor_pis": _compile(r"pis(/pasep)?"),
    "valor_cofins": _compile(r"cofins"),
    "valor_csll": _compile(r"csll"),
    "valor_irrf": _compile(r"irrf|ir\s*rf|imposto\s*de\s*renda\s*retido"),
    "inss": _compile(r"inss"),
    "valor_liquido": _compile(r"valor\s*l[ií]quido"),
    "descontos": _compile(r"descontos?\s*(?:incondicionad|condicionad)?"),
}

DATE_LABELS: Dict[str, List[Pattern]] = {
    "data_emissao": _compile(r"data\s*de\s*emiss[aã]o", r"emiss[aã]o"),
    "data_competencia": _compile(r"compet[eê]ncia"),
}

NUMERO_LABELS = _compile(r"n[úu]mero\s*(?:da\s*)?(?:nota|nfs-?e)", r"nfs-?e\s*n[º°o.]")
SERIE_PATTERN = re.compile(r"s[ée]rie[:\s]+(\d{1,5})\b", re.IGNORECASE)
CODIGO_SERVICO_LABELS = _compile(r"c[óo]digo\s*(?:do\s*)?servi[çc]o", r"item\s*da\s*lista")
PRESTADOR_LABELS = _compile(r"prestador\s*(?:de|do)?\s*servi[çc]os?", r"prestador", r"emitente")
RAZAO_SOCIAL_LABELS = _compile(r"raz[ãa]o\s*social", r"nome\s*/?\s*nome\s*empresarial")
ENDERECO_LABELS = _compile(r"endere[çc]o")
MUNICIPIO_LABELS = _compile(r"munic[ií]pio")

NUMERO_VALUE = re.compile(r"(?<![\d/.,])\d{3,10}(?![\d/.,])")
CODIGO_SERVICO_VALUE = re.compile(r"\b\d{1,2}\.\d{2}(?:\.\d{2})?\b")
MUNICIPIO_UF_VALUE = re.compile(r"([A-Za-zÀ-ú][A-Za-zÀ-ú .'-]{1,40}?)\s*[-/]\s*([A-Z]{2})\b")


def find_first_label(text: str, labels: Sequence[Pattern]) -> Optional[re.Match]:
    """First label pattern (in priority order) that matches anywhere"""
    for label in labels:
        match = label.search(text)
        if match:
            return match
    return None


def parse_brl_money(value: Optional[str]) -> Optional[float]:
    """
    Convert a Brazilian currency string to float.

    "1.234,56" -> 1234.56, "R$ 12,00" -> 12.0, no digits -> None.
    """
    if not value:
        return None
    normalized = value.replace(".", "").replace(",", ".")
    normalized = re.sub(r"[^0-9.]", "", normalized)
    if not re.search(r"\d", normalized):
        return None
    try:
        return float(normalized)
    except ValueError:
        return None


def find_money_near(text: str, labels: Sequence[Pattern]) -> Optional[str]:
    """Raw currency text in the window around the first matching label"""
    label = find_first_label(text, labels)
    if not label:
        return None
    start = max(0, label.start() - MONEY_WINDOW_BEFORE)
    window = text[start:start + MONEY_WINDOW_SIZE]
    money = BRL_MONEY.search(window)
    return money.group(0) if money else None


def find_date_near(text: str, labels: Sequence[Pattern]) -> Optional[str]:
    """First complete dd/mm/yyyy within the window after the first matching label"""
    label = find_first_label(text, labels)
    if not label:
        return None
    window = text[label.start():label.start() + DATE_WINDOW_SIZE]
    date = FULL_DATE.search(window)
    return date.group(0) if date else None


def _rest_of_line(text: str, position: int) -> str:
    """Text after ``position`` up to the line end; next non-empty line if blank"""
    end = text.find("\n", position)
    line = text[position:end if end != -1 else len(text)]
    line = line.strip(" \t:-|")
    if line or end == -1:
        return line
    for next_line in text[end + 1:].splitlines():
        next_line = next_line.strip(" \t:-|")
        if next_line:
            return next_line
    return ""


class FieldRecognizer:
    """Turns the text of one document into a candidate record"""

    def recognize(self,
                  pages: List[str],
                  filename: str,
                  file_id: Optional[str] = None,
                  warnings: Optional[List[str]] = None) -> List[Record]:
        """
        Build the records of a document.

        One record per document for now; the list return leaves room for
        documents that carry several invoices.
        """
        text = "\n\n".join(pages)
        fields: Dict[str, object] = {}

        for name, labels in MONEY_LABELS.items():
            fields[name] = parse_brl_money(find_money_near(text, labels))
        for name, labels in DATE_LABELS.items():
            fields[name] = find_date_near(text, labels)

        fields["iss_retido_flag"] = True if ISS_RETIDO_PHRASES.search(text) else None

        fields["cnpj_prestador"] = self._extract_cnpj_prestador(text)
        fields["razao_social_prestador"] = self._extract_line_after(text, RAZAO_SOCIAL_LABELS)
        fields["endereco_prestador"] = self._extract_line_after(text, ENDERECO_LABELS)
        fields["numero_nota"] = self._extract_numero(text)
        fields["serie"] = self._extract_serie(text)
        fields["codigo_servico"] = self._extract_codigo_servico(text)
        municipio, uf = self._extract_municipio_uf(text)
        fields["municipio_prestador"] = municipio
        fields["uf_prestador"] = uf

        found = sorted(k for k, v in fields.items() if v is not None)
        logger.debug(f"{filename}: recognized {len(found)} field(s): {', '.join(found)}")

        record = Record(
            file_id=file_id or filename,
            origin=Origin(arquivo=filename),
            warnings=list(warnings or []),
            **{k: v for k, v in fields.items() if v is not None},
        )
        return [record]

    # ==================== SUPPLEMENTARY FIELDS ====================
    def _extract_cnpj_prestador(self, text: str) -> Optional[str]:
        """CNPJ nearest after the provider label, else the first one in the text"""
        label = find_first_label(text, PRESTADOR_LABELS)
        match = None
        if label:
            match = CNPJ.search(text, label.end(), label.end() + 300)
        if not match:
            match = CNPJ.search(text)
        if not match:
            return None
        return re.sub(r"\D", "", match.group(0))

    def _extract_numero(self, text: str) -> Optional[str]:
        label = find_first_label(text, NUMERO_LABELS)
        if not label:
            return None
        match = NUMERO_VALUE.search(text, label.end(), label.end() + 60)
        return match.group(0) if match else None

    def _extract_serie(self, text: str) -> Optional[str]:
        match = SERIE_PATTERN.search(text)
        return match.group(1) if match else None

    def _extract_codigo_servico(self, text: str) -> Optional[str]:
        label = find_first_label(text, CODIGO_SERVICO_LABELS)
        if not label:
            return None
        match = CODIGO_SERVICO_VALUE.search(text, label.end(), label.end() + DATE_WINDOW_SIZE)
        return match.group(0) if match else None

    def _extract_line_after(self, text: str, labels: Sequence[Pattern]) -> Optional[str]:
        label = find_first_label(text, labels)
        if not label:
            return None
        value = _rest_of_line(text, label.end())
        if len(value) < 3 or value.isdigit():
            return None
        return value[:100]

    def _extract_municipio_uf(self, text: str):
        label = find_first_label(text, MUNICIPIO_LABELS)
        if not label:
            return None, None
        window = text[label.end():label.end() + MONEY_WINDOW_SIZE]
        for match in MUNICIPIO_UF_VALUE.finditer(window):
            uf = match.group(2)
            if uf in BRAZILIAN_STATES:
                municipio = match.group(1).strip(" :-")
                return (municipio or None), uf
        return None, None
