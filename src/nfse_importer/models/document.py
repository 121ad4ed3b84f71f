"""
Data models for import jobs and the tax records recognized from them.
"""
import uuid
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import InvalidJobTransition
from .fields import CANONICAL_FIELDS


def _new_id() -> str:
    return uuid.uuid4().hex


class JobStatus(str, Enum):
    """Status of one submitted document"""
    PENDING = "PENDENTE"
    PROCESSING = "PROCESSANDO"
    OK = "OK"
    ERROR = "ERRO"
    SKIPPED = "IGNORADO"


_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.OK, JobStatus.ERROR},
}


class Job(BaseModel):
    """A document waiting in (or already through) the import queue"""
    id: str = Field(default_factory=_new_id)
    filename: str
    content: bytes = Field(default=b"", repr=False)
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    error_message: Optional[str] = None
    record_count: Optional[int] = None

    model_config = {"validate_assignment": True}

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.OK, JobStatus.ERROR)

    def transition(self, new_status: JobStatus):
        """Move forward in PENDING -> PROCESSING -> OK | ERROR"""
        allowed = _TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidJobTransition(
                f"Job {self.filename}: {self.status.name} -> {new_status.name} not allowed"
            )
        self.status = new_status

    def report_progress(self, value: float):
        """Update progress; never goes backwards while processing"""
        value = max(0, min(100, int(round(value))))
        if self.status == JobStatus.PROCESSING and value < self.progress:
            return
        self.progress = value


class Origin(BaseModel):
    """Where a record came from"""
    arquivo: str
    pagina: Optional[int] = None


Money = Optional[Union[float, str]]


class Record(BaseModel):
    """
    One recognized tax entry.

    Values are loosely typed on purpose: a value that fails validation is
    kept as found and the reason goes to ``errors``.
    """
    id: str = Field(default_factory=_new_id)
    file_id: str
    origin: Origin

    cnpj_prestador: Optional[str] = None
    razao_social_prestador: Optional[str] = None
    uf_prestador: Optional[str] = None
    municipio_prestador: Optional[str] = None
    endereco_prestador: Optional[str] = None
    numero_nota: Optional[str] = None
    serie: Optional[str] = None
    data_emissao: Optional[str] = None
    data_competencia: Optional[str] = None
    deducoes: Money = None
    flag_personalizado_1: Optional[Union[bool, str]] = None
    codigo_interno_personalizado: Optional[str] = None
    valor_bruto: Money = None
    descontos: Money = None
    base_calculo: Money = None
    valor_iss: Money = None
    aliquota_iss_percent: Money = None
    valor_liquido: Money = None
    inss: Money = None
    iss_retido_flag: Optional[Union[bool, str]] = None
    valor_pis: Money = None
    valor_cofins: Money = None
    valor_csll: Money = None
    valor_irrf: Money = None
    outros: Money = None
    codigo_servico: Optional[str] = None
    campo_reservado1: Optional[str] = None
    campo_reservado2: Optional[str] = None

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def get(self, field: str):
        """Value of a canonical field by name"""
        if field not in CANONICAL_FIELDS:
            raise KeyError(field)
        return getattr(self, field)

    def values_for(self, fields: Iterable[str]) -> Dict[str, object]:
        return {name: self.get(name) for name in fields}

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
