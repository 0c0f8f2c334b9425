"""POST /v1/retornos - return file processing"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from plugboleto_gateway.api.dependencies import get_boleto_client, get_request_id
from plugboleto_gateway.api.v1.schemas import ReturnFileRequest, ReturnFileResponse
from plugboleto_gateway.domain.exceptions import InvalidRequestError, ServiceError, TransportFailure
from plugboleto_gateway.infrastructure.clients.boletos import BoletoClient

router = APIRouter()


@router.post("/retornos", response_model=ReturnFileResponse)
def process_return_file(
    request_body: ReturnFileRequest,
    request: Request,
    boleto_client: BoletoClient = Depends(get_boleto_client),
):
    """
    Upload a bank return file and return normalized actions per title.

    Blocks while PlugBoleto processes the file; if processing outlives the
    polling budget the partial result is returned with `timed_out` set.
    """
    request_id = get_request_id(request)

    try:
        result = boleto_client.process_return_file(request_body.arquivo, request_body.layout)
        return ReturnFileResponse.from_result(result)

    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except ServiceError as e:
        logging.warning(f"Return file rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except TransportFailure as e:
        logging.error(f"PlugBoleto transport error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="PlugBoleto service unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
