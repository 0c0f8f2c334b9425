"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from plugboleto_gateway.domain.exceptions import DomainException, TransportFailure
from plugboleto_gateway.utils.date_utils import format_timestamp, parse_br_date, parse_br_datetime
from plugboleto_gateway.utils.money import parse_cents


class InvalidStatusTransition(DomainException):
    """Title status may only move forward"""

    pass


class TitleStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PAID = "paid"
    FAILED = "failed"

    @classmethod
    def from_situacao(cls, situacao: Optional[str]) -> "TitleStatus":
        """Map PlugBoleto's `situacao` onto the title state machine"""
        if not situacao:
            return cls.PENDING
        return _SITUACAO_STATUS.get(situacao.upper(), cls.ACCEPTED)

    @property
    def is_terminal(self) -> bool:
        return self in (TitleStatus.PAID, TitleStatus.REJECTED, TitleStatus.FAILED)

    def can_transition_to(self, target: "TitleStatus") -> bool:
        if target is self:
            return True
        if self.is_terminal:
            return False
        return _STATUS_RANK[target] >= _STATUS_RANK[self]


_SITUACAO_STATUS = {
    "SALVO": TitleStatus.PENDING,
    "PENDENTE_RETENTATIVA": TitleStatus.PENDING,
    "LIQUIDADO": TitleStatus.PAID,
    "PAGO": TitleStatus.PAID,
    "REJEITADO": TitleStatus.REJECTED,
    "FALHA": TitleStatus.FAILED,
}

_STATUS_RANK = {
    TitleStatus.PENDING: 0,
    TitleStatus.ACCEPTED: 1,
    TitleStatus.REJECTED: 2,
    TitleStatus.PAID: 2,
    TitleStatus.FAILED: 2,
}


class ActionKind(str, Enum):
    CONFIRMED = "confirmed"
    PAYED = "payed"
    REJECTED = "rejected"
    CANCELED = "canceled"
    ABATEMENT_COMPLETED = "abatementCompleted"
    ABATEMENT_CANCELED = "abatementCanceled"
    CHANGE_DUE_DATE = "changeDueDate"
    REMOVE_PAYED = "removePayed"
    DEFAULT = "default"


class OperationStatus(str, Enum):
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"

    @classmethod
    def from_situacao(cls, situacao: Optional[str]) -> "OperationStatus":
        if situacao == "PROCESSANDO":
            return cls.PROCESSING
        if situacao == "PROCESSADO":
            return cls.PROCESSED
        return cls.ERROR


@dataclass(frozen=True)
class SubOccurrence:
    code: str
    message: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SubOccurrence":
        return cls(code=str(payload.get("codigo", "")), message=payload.get("mensagem") or "")


@dataclass(frozen=True)
class Occurrence:
    """One bank-reported event against a title (a `TituloMovimentos` entry)"""

    code: str
    message: str
    occurred_at: Optional[datetime] = None
    sub_occurrences: Tuple[SubOccurrence, ...] = ()
    paid_cents: Optional[int] = None
    discount_cents: Optional[int] = None
    rebate_cents: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Occurrence":
        return cls(
            code=str(payload.get("codigo", "")),
            message=payload.get("mensagem") or "",
            occurred_at=parse_br_datetime(payload.get("data")),
            sub_occurrences=tuple(
                SubOccurrence.from_payload(item) for item in payload.get("ocorrencias") or []
            ),
            paid_cents=_optional_cents(payload, "PagamentoValorPago"),
            discount_cents=_optional_cents(payload, "PagamentoValorDesconto"),
            rebate_cents=_optional_cents(payload, "PagamentoValorAbatimento"),
        )


@dataclass(frozen=True)
class Title:
    """Bank slip snapshot as reported by PlugBoleto"""

    integration_id: str
    document_number: Optional[str] = None
    our_number: Optional[str] = None
    face_value_cents: int = 0
    due_date: Optional[date] = None
    bank_code: Optional[str] = None
    situacao: Optional[str] = None
    status: TitleStatus = TitleStatus.PENDING
    reason: Optional[str] = None
    digitable_line: Optional[str] = None
    barcode: Optional[str] = None
    paid_cents: int = 0
    discount_cents: int = 0
    rebate_cents: int = 0
    paid_on: Optional[date] = None
    occurrences: Tuple[Occurrence, ...] = ()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Title":
        situacao = payload.get("situacao")
        return cls(
            integration_id=integration_id_of(payload),
            document_number=payload.get("TituloNumeroDocumento"),
            our_number=payload.get("TituloNossoNumero"),
            face_value_cents=parse_cents(payload.get("TituloValor")),
            due_date=parse_br_date(payload.get("TituloDataVencimento")),
            bank_code=payload.get("CedenteCodigoBanco") or payload.get("CedenteContaCodigoBanco"),
            situacao=situacao,
            status=TitleStatus.from_situacao(situacao),
            reason=payload.get("motivo"),
            digitable_line=payload.get("TituloLinhaDigitavel"),
            barcode=payload.get("TituloCodigoBarras"),
            paid_cents=parse_cents(payload.get("PagamentoValorPago")),
            discount_cents=parse_cents(payload.get("PagamentoValorDesconto")),
            rebate_cents=parse_cents(payload.get("PagamentoValorAbatimento")),
            paid_on=parse_br_date(payload.get("PagamentoData")),
            occurrences=tuple(
                Occurrence.from_payload(item) for item in payload.get("TituloMovimentos") or []
            ),
        )

    def advance(self, status: TitleStatus) -> "Title":
        """Return a copy in the new status; paid/rejected/failed titles never move back"""
        if not self.status.can_transition_to(status):
            raise InvalidStatusTransition(
                f"Title {self.integration_id} cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status)


@dataclass(frozen=True)
class NormalizedAction:
    """Bank-agnostic event produced from one occurrence"""

    kind: ActionKind
    data: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    sub_occurrences: Tuple[SubOccurrence, ...] = ()
    code: Optional[str] = None
    occurred_at: Optional[str] = None

    def with_origin(self, occurrence: Occurrence) -> "NormalizedAction":
        return replace(self, code=occurrence.code, occurred_at=format_timestamp(occurrence.occurred_at))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"action": self.kind.value, "data": dict(self.data)}
        if self.message is not None:
            result["message"] = self.message
        if self.sub_occurrences:
            result["occurrences"] = [
                {"code": sub.code, "message": sub.message} for sub in self.sub_occurrences
            ]
        if self.code is not None:
            result["code"] = self.code
        if self.occurred_at is not None:
            result["date"] = self.occurred_at
        return result


@dataclass
class AsyncOperation:
    """One in-flight server-side operation awaiting completion"""

    protocol: str
    poll_interval: float
    max_attempts: int
    status: OperationStatus = OperationStatus.PROCESSING
    attempts: int = 0

    @property
    def exhausted(self) -> bool:
        return self.status is OperationStatus.PROCESSING and self.attempts >= self.max_attempts


@dataclass
class ServiceEnvelope:
    """Standard PlugBoleto response: `_status`, `_mensagem`, `_dados`"""

    status: str
    message: str
    data: Any

    @classmethod
    def from_body(cls, body: Any) -> "ServiceEnvelope":
        if not isinstance(body, dict) or "_status" not in body:
            raise TransportFailure(f"Unexpected response from PlugBoleto: {str(body)[:200]}")
        return cls(
            status=body.get("_status") or "",
            message=body.get("_mensagem") or "",
            data=body.get("_dados"),
        )

    @property
    def is_error(self) -> bool:
        return self.status == "erro"

    def item_errors(self, key: str = "_erro") -> List[str]:
        """Per-item reasons of a list payload (empty string when an item has none)"""
        if not isinstance(self.data, list):
            return []
        return [str(item.get(key) or "") if isinstance(item, dict) else "" for item in self.data]


@dataclass
class IssuanceRecord:
    """One title in an issuance result bucket"""

    integration_id: Optional[str]
    situacao: Optional[str] = None
    our_number: Optional[str] = None
    document_number: Optional[str] = None
    digitable_line: Optional[str] = None
    barcode: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class IssuanceResult:
    status: bool
    success: List[IssuanceRecord] = field(default_factory=list)
    errors: List[IssuanceRecord] = field(default_factory=list)
    unresolved: List[IssuanceRecord] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class RemittanceResult:
    """Outcome of a remittance file request; `success` is the remittance record"""

    status: bool
    success: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class UnreconciledTitle:
    """Title present in a return file but not matched to any known title"""

    number: Optional[str]
    document_number: Optional[str]
    occurrences: List[Any] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UnreconciledTitle":
        return cls(
            number=payload.get("TituloNossoNumeroOriginal"),
            document_number=payload.get("TituloNumeroDocumento"),
            occurrences=list(payload.get("Ocorrencias") or []),
        )


@dataclass
class ReturnFileResult:
    protocol: str
    titles: Dict[str, List[NormalizedAction]] = field(default_factory=dict)
    unreconciled: List[UnreconciledTitle] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    processed: int = 0
    timed_out: bool = False


def integration_id_of(payload: Dict[str, Any]) -> str:
    """PlugBoleto spells the integration id three different ways"""
    for key in ("IdIntegracao", "idintegracao", "idIntegracao"):
        if payload.get(key) not in (None, ""):
            return str(payload[key])
    return ""


def _optional_cents(payload: Dict[str, Any], key: str) -> Optional[int]:
    return parse_cents(payload[key]) if payload.get(key) not in (None, "") else None
