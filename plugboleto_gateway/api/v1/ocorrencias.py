"""POST /v1/ocorrencias/traduzir - translate a single occurrence"""

from fastapi import APIRouter, HTTPException

from plugboleto_gateway.api.v1.schemas import ActionSchema, TranslateRequest
from plugboleto_gateway.domain.bank_rules import translate
from plugboleto_gateway.domain.models import Occurrence, Title

router = APIRouter()


@router.post("/ocorrencias/traduzir", response_model=ActionSchema)
def translate_occurrence(request_body: TranslateRequest):
    """Run one occurrence through the bank rule table without touching PlugBoleto"""
    try:
        occurrence = Occurrence.from_payload(request_body.ocorrencia)
        title = Title.from_payload(request_body.titulo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid occurrence or title: {e}")

    action = translate(request_body.banco, request_body.layout, occurrence, title).with_origin(occurrence)
    return ActionSchema.from_action(action)
