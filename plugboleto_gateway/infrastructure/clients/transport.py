"""PlugBoleto HTTP transport - request building, credential headers and envelope decoding"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from plugboleto_gateway.config import Settings, settings as default_settings
from plugboleto_gateway.domain.exceptions import ServiceError, TransportFailure
from plugboleto_gateway.domain.models import ServiceEnvelope
from plugboleto_gateway.infrastructure.observability.metrics import transport_failures_counter

QueryParams = Sequence[Tuple[str, Any]]


@dataclass
class TransportResponse:
    """Decoded body (or raw bytes), HTTP status and optional debug diagnostics"""

    body: Any
    http_code: int
    diagnostics: Optional[Dict[str, Any]] = None


class PlugBoletoTransport:
    """Synchronous client for the PlugBoleto REST API"""

    def __init__(self, settings: Settings | None = None, http_client: httpx.Client | None = None):
        self.settings = settings or default_settings
        self.timeout = self.settings.http_timeout_seconds
        self._client = http_client or httpx.Client(timeout=self.timeout)

    def close(self) -> None:
        self._client.close()

    def get(self, path: str, params: QueryParams | None = None, headers: Dict[str, str] | None = None,
            decode: bool = True) -> TransportResponse:
        return self._execute("GET", path, params=params, headers=headers, decode=decode)

    def post(self, path: str, body: Any = None, params: QueryParams | None = None,
             headers: Dict[str, str] | None = None, decode: bool = True) -> TransportResponse:
        return self._execute("POST", path, body=body, params=params, headers=headers, decode=decode)

    def put(self, path: str, body: Any = None, params: QueryParams | None = None,
            headers: Dict[str, str] | None = None, decode: bool = True) -> TransportResponse:
        return self._execute("PUT", path, body=body, params=params, headers=headers, decode=decode)

    def delete(self, path: str, params: QueryParams | None = None, headers: Dict[str, str] | None = None,
               decode: bool = True) -> TransportResponse:
        return self._execute("DELETE", path, params=params, headers=headers, decode=decode)

    def default_headers(self) -> Dict[str, str]:
        return {
            "cnpj-sh": self.settings.cnpj_sh,
            "token-sh": self.settings.token_sh,
            "cnpj-cedente": self.settings.cnpj_cedente,
        }

    def build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.settings.api_base.rstrip("/") + path

    def _execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: QueryParams | None = None,
        headers: Dict[str, str] | None = None,
        decode: bool = True,
    ) -> TransportResponse:
        """
        Issue one request and decode the response.

        Raises:
            TransportFailure: On timeout, network errors, 5xx, or an undecodable body
        """
        url = self.build_url(path)
        request_headers = {**self.default_headers(), **(headers or {})}
        content: Dict[str, Any] = {"json": body} if body is not None else {}

        started = time.perf_counter()
        try:
            response = self._client.request(
                method,
                url,
                params=_clean_params(params),
                headers=request_headers,
                **content,
            )
        except httpx.TimeoutException as e:
            transport_failures_counter.inc()
            raise TransportFailure(f"PlugBoleto API timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            transport_failures_counter.inc()
            raise TransportFailure(f"PlugBoleto API unreachable: {e}") from e

        if response.status_code >= 500:
            transport_failures_counter.inc()
            raise TransportFailure(f"PlugBoleto API error: {response.status_code}")

        if decode or response.status_code != 200:
            try:
                payload: Any = response.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                transport_failures_counter.inc()
                raise TransportFailure(
                    f"Invalid response from PlugBoleto ({response.status_code}): {response.text[:200]}"
                ) from e
        else:
            payload = response.content

        diagnostics = None
        if self.settings.debug:
            diagnostics = {
                "method": method,
                "url": str(response.request.url),
                "elapsed_ms": (time.perf_counter() - started) * 1000,
                "headers": dict(response.headers),
            }

        return TransportResponse(body=payload, http_code=response.status_code, diagnostics=diagnostics)


def expect_success(response: TransportResponse, error: type[ServiceError] = ServiceError) -> ServiceEnvelope:
    """
    Read the standard envelope and fail on `_status == "erro"`.

    Raises:
        ServiceError (or the given subclass): message plus each item's `_erro`
    """
    envelope = ServiceEnvelope.from_body(response.body)
    if envelope.is_error:
        raise error(envelope.message, envelope.item_errors())
    return envelope


def _clean_params(params: QueryParams | None) -> List[Tuple[str, str]]:
    """Drop pairs without a name or value; repeated names are kept in order"""
    cleaned = []
    for name, value in params or []:
        if not name or value is None or value == "":
            continue
        cleaned.append((name, str(value)))
    return cleaned
