"""Pytest fixtures for testing"""

from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from plugboleto_gateway.api.dependencies import get_boleto_client
from plugboleto_gateway.api.main import create_app
from plugboleto_gateway.config import Settings
from plugboleto_gateway.infrastructure.clients.boletos import BoletoClient
from plugboleto_gateway.infrastructure.clients.cedentes import CedenteClient
from plugboleto_gateway.infrastructure.clients.transport import PlugBoletoTransport

API_PREFIX = "/api/v1"

Responder = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Records requested sleeps instead of blocking"""

    def __init__(self):
        self.sleeps: List[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class FakePlugBoleto:
    """
    In-memory PlugBoleto served through httpx.MockTransport.

    Each route holds a queue of responders; the last one keeps answering once
    the queue is drained.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responders: Responder) -> None:
        self.routes.setdefault((method, path), []).extend(responders)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json=self.envelope([], status="erro", message=f"No route {path}"))
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        return responder(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.removeprefix(API_PREFIX) == path
        ]

    @staticmethod
    def envelope(data: Any, status: str = "sucesso", message: str = "") -> Dict[str, Any]:
        return {"_status": status, "_mensagem": message, "_dados": data}

    def ok(self, data: Any, message: str = "") -> Responder:
        body = self.envelope(data, message=message)
        return lambda request: httpx.Response(200, json=body)

    def error(self, message: str, data: Any = None, status_code: int = 400) -> Responder:
        body = self.envelope([] if data is None else data, status="erro", message=message)
        return lambda request: httpx.Response(status_code, json=body)

    @staticmethod
    def raw(content: bytes, status_code: int = 200) -> Responder:
        return lambda request: httpx.Response(status_code, content=content)


@pytest.fixture
def test_settings() -> Settings:
    """Homologation settings with test credentials"""
    return Settings(
        cnpj_sh="01001001000113",
        token_sh="test-token",
        cnpj_cedente="02002002000226",
        production=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_service() -> FakePlugBoleto:
    return FakePlugBoleto()


@pytest.fixture
def transport(test_settings: Settings, fake_service: FakePlugBoleto) -> PlugBoletoTransport:
    http_client = httpx.Client(transport=httpx.MockTransport(fake_service.handler))
    return PlugBoletoTransport(settings=test_settings, http_client=http_client)


@pytest.fixture
def boleto_client(test_settings: Settings, transport: PlugBoletoTransport, clock: FakeClock) -> BoletoClient:
    return BoletoClient(settings=test_settings, transport=transport, clock=clock)


@pytest.fixture
def cedente_client(test_settings: Settings, transport: PlugBoletoTransport) -> CedenteClient:
    return CedenteClient(settings=test_settings, transport=transport)


@pytest.fixture
def client(boleto_client: BoletoClient) -> TestClient:
    """Create FastAPI test client backed by the fake PlugBoleto service"""
    app = create_app()
    app.dependency_overrides[get_boleto_client] = lambda: boleto_client
    return TestClient(app)


@pytest.fixture
def paid_title_payload() -> Dict[str, Any]:
    """Itaú title paid with R$ 5,50 of interest"""
    return {
        "IdIntegracao": "abc123",
        "CedenteCodigoBanco": "341",
        "TituloNumeroDocumento": "DOC-1",
        "TituloNossoNumero": "000123",
        "TituloValor": "100,00",
        "TituloDataVencimento": "10/01/2024",
        "PagamentoValorPago": "105,50",
        "PagamentoValorDesconto": "0,00",
        "PagamentoValorAbatimento": "0,00",
        "PagamentoData": "15/01/2024 00:00:00",
        "situacao": "LIQUIDADO",
        "TituloMovimentos": [
            {"codigo": "06", "mensagem": "Liquidação normal", "data": "15/01/2024 08:30:00"},
        ],
    }
