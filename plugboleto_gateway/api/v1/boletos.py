"""POST /v1/boletos/lote and /v1/boletos/impressao - batch issuance and printing"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.responses import Response

from plugboleto_gateway.api.dependencies import get_boleto_client, get_request_id
from plugboleto_gateway.api.v1.schemas import IssuanceRequest, IssuanceResponse, PrintRequest
from plugboleto_gateway.domain.exceptions import InvalidRequestError, ServiceError, TransportFailure
from plugboleto_gateway.infrastructure.clients.boletos import BoletoClient

router = APIRouter()


@router.post("/boletos/lote", response_model=IssuanceResponse)
def issue_titles(
    request_body: IssuanceRequest,
    request: Request,
    boleto_client: BoletoClient = Depends(get_boleto_client),
):
    """
    Issue a batch of titles and confirm their registration.

    Accepted titles that the bank later failed or rejected are returned in
    `errors`; titles the confirmation read did not find are in `unresolved`.
    """
    request_id = get_request_id(request)

    try:
        result = boleto_client.submit(request_body.titulos)
        return IssuanceResponse.from_result(result)

    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except TransportFailure as e:
        logging.error(f"PlugBoleto transport error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="PlugBoleto service unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/boletos/impressao")
def print_titles(
    request_body: PrintRequest,
    request: Request,
    boleto_client: BoletoClient = Depends(get_boleto_client),
):
    """Materialize a print job and return the PDF"""
    request_id = get_request_id(request)
    titles = request_body.personalizacao if request_body.tipo == "99" else request_body.boletos

    try:
        pdf = boleto_client.print_titles(titles, request_body.tipo)
        return Response(content=pdf, media_type="application/pdf")

    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except ServiceError as e:
        logging.warning(f"Print job failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except TransportFailure as e:
        logging.error(f"PlugBoleto transport error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="PlugBoleto service unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
