"""
Canonical field set for service-invoice (NFS-e) records.
"""
from enum import Enum
from typing import Dict, List


class FieldKind(str, Enum):
    """How a canonical field is validated and rendered"""
    TEXT = "text"
    IDENTIFIER = "identifier"  # CNPJ
    REGION = "region"  # UF
    DATE = "date"
    MONEY = "money"
    BOOLEAN = "boolean"
    FLAG = "flag"  # free flag, text or boolean


# Ordered: this is also the default TXT layout
CANONICAL_FIELDS: Dict[str, FieldKind] = {
    "cnpj_prestador": FieldKind.IDENTIFIER,
    "razao_social_prestador": FieldKind.TEXT,
    "uf_prestador": FieldKind.REGION,
    "municipio_prestador": FieldKind.TEXT,
    "endereco_prestador": FieldKind.TEXT,
    "numero_nota": FieldKind.TEXT,
    "serie": FieldKind.TEXT,
    "data_emissao": FieldKind.DATE,
    "data_competencia": FieldKind.DATE,
    "deducoes": FieldKind.MONEY,
    "flag_personalizado_1": FieldKind.FLAG,
    "codigo_interno_personalizado": FieldKind.TEXT,
    "valor_bruto": FieldKind.MONEY,
    "descontos": FieldKind.MONEY,
    "base_calculo": FieldKind.MONEY,
    "valor_iss": FieldKind.MONEY,
    "aliquota_iss_percent": FieldKind.MONEY,
    "valor_liquido": FieldKind.MONEY,
    "inss": FieldKind.MONEY,
    "iss_retido_flag": FieldKind.BOOLEAN,
    "valor_pis": FieldKind.MONEY,
    "valor_cofins": FieldKind.MONEY,
    "valor_csll": FieldKind.MONEY,
    "valor_irrf": FieldKind.MONEY,
    "outros": FieldKind.MONEY,
    "codigo_servico": FieldKind.TEXT,
    "campo_reservado1": FieldKind.TEXT,
    "campo_reservado2": FieldKind.TEXT,
}

DEFAULT_SCHEMA: List[str] = list(CANONICAL_FIELDS)

MONEY_FIELDS = [name for name, kind in CANONICAL_FIELDS.items() if kind == FieldKind.MONEY]


def field_kind(name: str) -> FieldKind:
    """Return the kind of a canonical field (KeyError for unknown names)"""
    return CANONICAL_FIELDS[name]
