"""PlugBoleto title operations: batch issuance, return files, printing and one-shot title calls"""

import json
import logging
import time
from typing import Any, Dict, List, Sequence

from plugboleto_gateway.config import Settings, settings as default_settings
from plugboleto_gateway.domain.bank_rules import BANK_NAMES, normalize_bank, translate
from plugboleto_gateway.domain.correlation import correlate, partition_issuance, submission_failures
from plugboleto_gateway.domain.exceptions import (
    InvalidRequestError,
    PrintNotReady,
    ReturnFileFailed,
    ServiceError,
    SubmissionRejected,
    TransportFailure,
)
from plugboleto_gateway.domain.models import (
    AsyncOperation,
    IssuanceResult,
    OperationStatus,
    RemittanceResult,
    ReturnFileResult,
    ServiceEnvelope,
    UnreconciledTitle,
    integration_id_of,
)
from plugboleto_gateway.domain.polling import Clock, SystemClock, poll_until_ready, track_operation
from plugboleto_gateway.infrastructure.clients.transport import (
    PlugBoletoTransport,
    QueryParams,
    TransportResponse,
    expect_success,
)
from plugboleto_gateway.infrastructure.observability.logging import log_issuance, log_print, log_return_file
from plugboleto_gateway.infrastructure.observability.metrics import (
    normalized_action_counter,
    record_issuance,
    record_poll,
)

logger = logging.getLogger(__name__)

PAYMENT_PLACE = "Pagável em qualquer banco até o vencimento"

# 0 normal, 1 double booklet, 2 triple booklet, 3 double, 4 watermarked, 99 custom layout
PRINT_MODES = frozenset({"0", "1", "2", "3", "4", "99"})
CUSTOM_PRINT_MODE = "99"


class BoletoClient:
    """Client for PlugBoleto title endpoints"""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: PlugBoletoTransport | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings or default_settings
        self.transport = transport or PlugBoletoTransport(self.settings)
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Batch issuance
    # ------------------------------------------------------------------

    def submit(self, titles: Sequence[Dict[str, Any]]) -> IssuanceResult:
        """
        Issue a batch of titles and confirm what the bank actually registered.

        Flow:
        1. Submit the batch (`boletos/lote`)
        2. Wait a fixed delay once, then query every accepted id in a single page
        3. Accepted titles whose resolved status is failed/rejected move to `errors`;
           ids the query did not return are `unresolved`

        Raises:
            InvalidRequestError: Empty batch
            TransportFailure: On network errors or 5xx
        """
        if not titles:
            raise InvalidRequestError("At least one title is required for issuance")

        start_time = time.time()
        response = self.transport.post("boletos/lote", [self._prepare_title(t) for t in titles])
        envelope = ServiceEnvelope.from_body(response.body)
        data = envelope.data if isinstance(envelope.data, dict) else {}

        accepted = list(data.get("_sucesso") or [])
        failed = list(data.get("_falha") or [])
        accepted_ids = [i for i in (integration_id_of(item) for item in accepted) if i]

        correlation = correlate(accepted_ids, self._confirm_issued)
        partition = partition_issuance(accepted, correlation)

        result = IssuanceResult(
            status=not envelope.is_error,
            success=partition.success,
            errors=submission_failures(failed) + partition.errors,
            unresolved=partition.unresolved,
        )
        if not failed and data.get("_erro"):
            result.error = data["_erro"] if isinstance(data["_erro"], str) else json.dumps(data["_erro"], ensure_ascii=False)
        elif envelope.is_error and not accepted and not failed:
            result.error = str(ServiceError(envelope.message, envelope.item_errors()))

        duration_ms = (time.time() - start_time) * 1000
        record_issuance(len(result.success), len(result.errors), len(result.unresolved))
        log_issuance(len(titles), len(result.success), len(result.errors), len(result.unresolved), duration_ms)
        return result

    def _prepare_title(self, title: Dict[str, Any]) -> Dict[str, Any]:
        prepared = dict(title)
        prepared["TituloLocalPagamento"] = PAYMENT_PLACE
        if prepared.get("CedenteContaCodigoBanco") == "089":
            prepared["TituloModalidade"] = "1"
        return prepared

    def _confirm_issued(self, ids: List[str]) -> List[Dict[str, Any]]:
        """Single delayed read of the accepted titles, sized to avoid a second page"""

        def query() -> TransportResponse:
            return self.transport.get("boletos", params=_id_filter(ids))

        response = poll_until_ready(
            query,
            lambda _: True,
            interval=self.settings.issuance_confirmation_delay_seconds,
            max_attempts=1,
            clock=self.clock,
            delay_first=True,
        )
        record_poll("issuance", 1, exhausted=False)

        envelope = ServiceEnvelope.from_body(response.body)
        if envelope.is_error:
            logger.warning(
                "Issuance confirmation query failed, titles left unresolved",
                extra={"service_message": envelope.message, "ids": ids},
            )
            return []
        return list(envelope.data or [])

    # ------------------------------------------------------------------
    # Return file processing
    # ------------------------------------------------------------------

    def process_return_file(self, file_content: str, layout: str = "400") -> ReturnFileResult:
        """
        Upload a bank return file and translate every occurrence it reports.

        Flow:
        1. Submit the file (`retornos`) and read the protocol
        2. Query the protocol once; anything but processed/processing is fatal
        3. While processing, poll with the known processed count as page size;
           running out of attempts is a soft timeout and continues with partial data
        4. Fetch the referenced titles in one id-filtered page and translate each
           occurrence through the bank rule table, in service order

        Raises:
            InvalidRequestError: Empty file content
            SubmissionRejected: The service refused the file
            ReturnFileFailed: Protocol ended in an error status
            ServiceError: Title query failed
            TransportFailure: On network errors or 5xx
        """
        if not file_content:
            raise InvalidRequestError("Return file content is required")

        start_time = time.time()
        submission = expect_success(self.transport.post("retornos", {"arquivo": file_content}), SubmissionRejected)
        protocol = str(_data_dict(submission).get("protocolo", ""))

        self.clock.sleep(self.settings.return_initial_delay_seconds)
        status = expect_success(self.transport.get(f"retornos/{protocol}"), ReturnFileFailed)
        operation = AsyncOperation(
            protocol=protocol,
            poll_interval=self.settings.return_poll_interval_seconds,
            max_attempts=self.settings.return_poll_max_attempts,
            status=_return_status(status),
        )
        timed_out = False

        if operation.status is OperationStatus.PROCESSING:
            processed = _data_dict(status).get("processados")
            # No records processed yet: let the service pick its own page size
            page = [("limit", processed)] if isinstance(processed, int) and processed > 0 else []
            status = track_operation(
                operation,
                lambda: expect_success(self.transport.get(f"retornos/{protocol}", params=page), ReturnFileFailed),
                _return_status,
                clock=self.clock,
            )
            timed_out = operation.exhausted
            record_poll("return_file", operation.attempts, timed_out)
            if timed_out:
                logger.warning(
                    "Return file still processing after polling budget, continuing with partial data",
                    extra={"protocol": protocol, "attempts": operation.attempts},
                )

        if operation.status is OperationStatus.ERROR:
            situacao = _data_dict(status).get("situacao")
            logger.error("Return file processing failed", extra={"protocol": protocol, "situacao": situacao})
            raise ReturnFileFailed(status.message, [situacao] if situacao else [])

        result = self._reconcile(protocol, _data_dict(status), layout, timed_out)

        duration_ms = (time.time() - start_time) * 1000
        log_return_file(protocol, len(result.titles), len(result.unreconciled), timed_out, duration_ms)
        return result

    def _reconcile(self, protocol: str, data: Dict[str, Any], layout: str, timed_out: bool) -> ReturnFileResult:
        ids = [i for i in (integration_id_of(item) for item in data.get("titulos") or []) if i]

        result = ReturnFileResult(
            protocol=protocol,
            titles={integration_id: [] for integration_id in ids},
            unreconciled=[UnreconciledTitle.from_payload(item) for item in data.get("titulosNaoConciliados") or []],
            processed=int(data.get("processados") or 0),
            timed_out=timed_out,
        )

        correlation = correlate(ids, self._fetch_titles)
        result.unresolved = correlation.unresolved

        for integration_id, title in correlation.resolved.items():
            actions = []
            for occurrence in title.occurrences:
                action = translate(title.bank_code, layout, occurrence, title).with_origin(occurrence)
                normalized_action_counter.labels(
                    bank=BANK_NAMES.get(normalize_bank(title.bank_code), "unknown"),
                    action=action.kind.value,
                ).inc()
                actions.append(action)
            result.titles[integration_id] = actions

        return result

    def _fetch_titles(self, ids: List[str]) -> List[Dict[str, Any]]:
        envelope = expect_success(self.transport.get("boletos", params=_id_filter(ids)))
        return list(envelope.data or [])

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def print_titles(self, titles: Sequence[str] | Dict[str, Any], mode: str = "0") -> bytes:
        """
        Request a PDF for the given titles (or a custom layout when mode is 99).

        The artifact endpoint answers with a JSON status envelope until the PDF is
        ready; the first response that is not an envelope is the PDF itself.

        Raises:
            InvalidRequestError: No titles or unknown print mode
            SubmissionRejected: The service refused the print job
            PrintNotReady: No PDF within the polling budget
            TransportFailure: On network errors or 5xx
        """
        mode = str(mode)
        if mode not in PRINT_MODES:
            raise InvalidRequestError(f"Unknown print mode: {mode}")
        if not titles:
            raise InvalidRequestError("At least one title is required for printing")

        start_time = time.time()
        body: Dict[str, Any] = {"Personalizacao": titles} if mode == CUSTOM_PRINT_MODE else {"Boletos": list(titles)}
        body["TipoImpressao"] = mode

        envelope = expect_success(
            self.transport.post("boletos/impressao/lote", body, params=self._page_limit()),
            SubmissionRejected,
        )
        protocol = str(_data_dict(envelope).get("protocolo", ""))

        operation = AsyncOperation(
            protocol=protocol,
            poll_interval=self.settings.print_poll_interval_seconds,
            max_attempts=self.settings.print_poll_max_attempts,
        )
        response = track_operation(
            operation,
            lambda: self.transport.get(f"boletos/impressao/lote/{protocol}", decode=False),
            lambda r: OperationStatus.PROCESSING if is_status_envelope(r.body) else OperationStatus.PROCESSED,
            clock=self.clock,
        )
        record_poll("print", operation.attempts, operation.exhausted)

        if operation.status is OperationStatus.PROCESSED:
            log_print(protocol, len(response.body), operation.attempts, (time.time() - start_time) * 1000)
            return response.body

        last = _load_json(response.body)
        if not isinstance(last, dict) or "_status" not in last:
            # Bare error object such as {"erro": "..."}
            message = last.get("erro") if isinstance(last, dict) else None
            raise PrintNotReady(str(message or f"Print job {protocol} did not produce a document"))

        envelope = ServiceEnvelope.from_body(last)
        reasons = []
        if isinstance(envelope.data, list):
            reasons = [str(item.get("situacao") or "") for item in envelope.data if isinstance(item, dict)]
        raise PrintNotReady(envelope.message, reasons)

    # ------------------------------------------------------------------
    # One-shot title operations
    # ------------------------------------------------------------------

    def query_titles(self, params: QueryParams | None = None) -> List[Dict[str, Any]]:
        """List titles; a page limit is added when the caller did not set one"""
        params = list(params or [])
        if not any(name == "limit" for name, _ in params):
            params.append(("limit", self.settings.default_page_limit))
        envelope = expect_success(self.transport.get("boletos", params=params))
        return list(envelope.data or [])

    def discard_titles(self, ids: Sequence[str]) -> Any:
        if not ids:
            raise InvalidRequestError("At least one integration id is required to discard titles")
        envelope = expect_success(self.transport.post("boletos/descarta/lote", list(ids), params=self._page_limit()))
        return envelope.data

    def write_off_titles(self, ids: Sequence[str]) -> Any:
        if not ids:
            raise InvalidRequestError("At least one integration id is required to write off titles")
        envelope = expect_success(self.transport.post("boletos/baixa/lote", list(ids), params=self._page_limit()))
        return envelope.data

    def generate_remittance(self, ids: Sequence[str]) -> RemittanceResult:
        """Build a remittance (CNAB) file for the given titles"""
        if not ids:
            raise InvalidRequestError("At least one integration id is required to generate a remittance")

        envelope = expect_success(self.transport.post("remessas/lote", list(ids)))
        data = _data_dict(envelope)

        succeeded = data.get("_sucesso") or []
        result = RemittanceResult(status=bool(succeeded))
        if succeeded:
            remittance = dict(succeeded[0])
            remittance["titulos"] = [integration_id_of(t) for t in remittance.get("titulos") or []]
            result.success = remittance

        result.errors = [
            {"idintegracao": integration_id_of(item), "error": item.get("_erro")}
            for item in data.get("_falha") or []
        ]
        return result

    def _page_limit(self) -> List[tuple]:
        return [("limit", self.settings.default_page_limit)]


def is_status_envelope(body: Any) -> bool:
    """
    Structural sniff for the print artifact endpoint.

    Any JSON object (status envelope or bare `{"erro": ...}`) is a status
    answer, as is a truncated object that still names `_status` or `erro`.
    Everything else is the document itself.
    """
    if isinstance(body, dict):
        return True
    if not isinstance(body, (bytes, bytearray)):
        return False
    stripped = bytes(body).strip()
    if not stripped.startswith(b"{"):
        return False
    try:
        return isinstance(json.loads(stripped), dict)
    except ValueError:
        return b"_status" in stripped or b"erro" in stripped


def _id_filter(ids: Sequence[str]) -> List[tuple]:
    return [("limit", len(ids))] + [("idintegracao", i) for i in ids]


def _data_dict(envelope: ServiceEnvelope) -> Dict[str, Any]:
    return envelope.data if isinstance(envelope.data, dict) else {}


def _return_status(envelope: ServiceEnvelope) -> OperationStatus:
    return OperationStatus.from_situacao(_data_dict(envelope).get("situacao"))


def _load_json(body: Any) -> Any:
    if isinstance(body, (bytes, bytearray)):
        try:
            return json.loads(body)
        except ValueError as e:
            raise TransportFailure("Print status response is not valid JSON") from e
    return body
