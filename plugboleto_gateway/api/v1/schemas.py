"""Pydantic schemas for API request/response validation"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from plugboleto_gateway.domain.models import (
    IssuanceRecord,
    IssuanceResult,
    NormalizedAction,
    ReturnFileResult,
)


class IssuanceRequest(BaseModel):
    """Request body for POST /v1/boletos/lote"""

    titulos: List[Dict[str, Any]] = Field(..., min_length=1, description="Titles in PlugBoleto format")


class IssuanceRecordSchema(BaseModel):
    idintegracao: Optional[str] = None
    situacao: Optional[str] = None
    nosso_numero: Optional[str] = None
    numero_documento: Optional[str] = None
    linha_digitavel: Optional[str] = None
    codigo_barras: Optional[str] = None
    motivo: Optional[str] = None

    @classmethod
    def from_record(cls, record: IssuanceRecord) -> "IssuanceRecordSchema":
        return cls(
            idintegracao=record.integration_id,
            situacao=record.situacao,
            nosso_numero=record.our_number,
            numero_documento=record.document_number,
            linha_digitavel=record.digitable_line,
            codigo_barras=record.barcode,
            motivo=record.reason,
        )


class IssuanceResponse(BaseModel):
    """Response for POST /v1/boletos/lote"""

    status: bool
    success: List[IssuanceRecordSchema]
    errors: List[IssuanceRecordSchema]
    unresolved: List[IssuanceRecordSchema]
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: IssuanceResult) -> "IssuanceResponse":
        return cls(
            status=result.status,
            success=[IssuanceRecordSchema.from_record(r) for r in result.success],
            errors=[IssuanceRecordSchema.from_record(r) for r in result.errors],
            unresolved=[IssuanceRecordSchema.from_record(r) for r in result.unresolved],
            error=result.error,
        )


class PrintRequest(BaseModel):
    """Request body for POST /v1/boletos/impressao"""

    boletos: Optional[List[str]] = None
    personalizacao: Optional[Dict[str, Any]] = None
    tipo: Literal["0", "1", "2", "3", "4", "99"] = "0"

    @model_validator(mode="after")
    def check_payload(self) -> "PrintRequest":
        if self.tipo == "99" and not self.personalizacao:
            raise ValueError("personalizacao is required for custom print (tipo 99)")
        if self.tipo != "99" and not self.boletos:
            raise ValueError("boletos is required")
        return self


class ReturnFileRequest(BaseModel):
    """Request body for POST /v1/retornos"""

    arquivo: str = Field(..., min_length=1, description="Return file content")
    layout: Literal["400", "240"] = "400"


class SubOccurrenceSchema(BaseModel):
    code: str
    message: str


class ActionSchema(BaseModel):
    action: str
    data: Dict[str, Any]
    message: Optional[str] = None
    occurrences: List[SubOccurrenceSchema] = []
    code: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_action(cls, action: NormalizedAction) -> "ActionSchema":
        return cls(**action.to_dict())


class UnreconciledSchema(BaseModel):
    number: Optional[str] = None
    number_doc: Optional[str] = None
    occurrences: List[Any] = []


class ReturnFileResponse(BaseModel):
    """Response for POST /v1/retornos"""

    protocolo: str
    processados: int
    timed_out: bool
    titulos: Dict[str, List[ActionSchema]]
    nao_conciliados: List[UnreconciledSchema]
    nao_resolvidos: List[str]

    @classmethod
    def from_result(cls, result: ReturnFileResult) -> "ReturnFileResponse":
        return cls(
            protocolo=result.protocol,
            processados=result.processed,
            timed_out=result.timed_out,
            titulos={
                integration_id: [ActionSchema.from_action(a) for a in actions]
                for integration_id, actions in result.titles.items()
            },
            nao_conciliados=[
                UnreconciledSchema(number=u.number, number_doc=u.document_number, occurrences=u.occurrences)
                for u in result.unreconciled
            ],
            nao_resolvidos=result.unresolved,
        )


class TranslateRequest(BaseModel):
    """Request body for POST /v1/ocorrencias/traduzir"""

    banco: str = Field(..., min_length=1, description="Bank code, e.g. 341")
    layout: Literal["400", "240"] = "400"
    ocorrencia: Dict[str, Any] = Field(..., description="A TituloMovimentos entry")
    titulo: Dict[str, Any] = Field(..., description="Title snapshot in PlugBoleto format")
