"""Integration tests for return file processing against a fake PlugBoleto service"""

import json

import pytest

from plugboleto_gateway.domain.exceptions import InvalidRequestError, ReturnFileFailed, SubmissionRejected
from plugboleto_gateway.domain.models import ActionKind

pytestmark = pytest.mark.integration

RETURN_PATH = "/retornos/R-100"


def status(fake_service, situacao, processados=0, titulos=(), nao_conciliados=(), message=""):
    return fake_service.ok(
        {
            "situacao": situacao,
            "processados": processados,
            "titulos": list(titulos),
            "titulosNaoConciliados": list(nao_conciliados),
        },
        message=message,
    )


def accept_file(fake_service):
    fake_service.add("POST", "/retornos", fake_service.ok({"protocolo": "R-100"}))


def test_processed_file_is_translated_per_title(boleto_client, fake_service, clock, paid_title_payload):
    """Itaú 400 payment with interest, in service order, stamped with code and date"""
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, status(fake_service, "PROCESSADO", 1, [{"idintegracao": "abc123"}]))
    fake_service.add("GET", "/boletos", fake_service.ok([paid_title_payload]))

    result = boleto_client.process_return_file("CNAB400...", layout="400")

    assert result.protocol == "R-100"
    assert result.timed_out is False
    assert result.processed == 1
    [action] = result.titles["abc123"]
    assert action.kind is ActionKind.PAYED
    assert action.data["interest_default_cents"] == 550
    assert action.code == "06"
    assert action.occurred_at == "2024-01-15 08:30:00"
    # only the initial wait, no polling needed
    assert clock.sleeps == [1.0]


def test_file_content_is_sent_as_arquivo(boleto_client, fake_service):
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, status(fake_service, "PROCESSADO"))

    boleto_client.process_return_file("CONTEUDO DO ARQUIVO")

    [submission] = fake_service.calls("POST", "/retornos")
    assert json.loads(submission.content) == {"arquivo": "CONTEUDO DO ARQUIVO"}


def test_processing_file_is_polled_with_processed_count_as_page(boleto_client, fake_service, clock):
    accept_file(fake_service)
    fake_service.add(
        "GET",
        RETURN_PATH,
        status(fake_service, "PROCESSANDO", 40),
        status(fake_service, "PROCESSANDO", 40),
        status(fake_service, "PROCESSADO", 42),
    )

    result = boleto_client.process_return_file("CNAB")

    polls = fake_service.calls("GET", RETURN_PATH)
    assert len(polls) == 3
    assert "limit" not in polls[0].url.params
    assert [p.url.params["limit"] for p in polls[1:]] == ["40", "40"]
    assert result.processed == 42
    assert result.timed_out is False
    assert clock.sleeps == [1.0, 2.0, 2.0]


def test_zero_processed_count_is_not_sent_as_page(boleto_client, fake_service, paid_title_payload):
    """Nothing processed yet → polls omit the limit so the final page is not truncated"""
    accept_file(fake_service)
    fake_service.add(
        "GET",
        RETURN_PATH,
        status(fake_service, "PROCESSANDO", 0),
        status(fake_service, "PROCESSADO", 1, [{"idintegracao": "abc123"}]),
    )
    fake_service.add("GET", "/boletos", fake_service.ok([paid_title_payload]))

    result = boleto_client.process_return_file("CNAB")

    polls = fake_service.calls("GET", RETURN_PATH)
    assert len(polls) == 2
    assert "limit" not in polls[1].url.params
    assert list(result.titles) == ["abc123"]


def test_polling_budget_exhaustion_is_a_soft_timeout(boleto_client, fake_service, clock):
    """70 processing answers → partial result flagged timed_out, not an error"""
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, status(fake_service, "PROCESSANDO", 5))

    result = boleto_client.process_return_file("CNAB")

    # initial status read plus 70 polls
    assert len(fake_service.calls("GET", RETURN_PATH)) == 71
    assert result.timed_out is True
    assert result.processed == 5
    assert result.titles == {}
    assert clock.sleeps == [1.0] + [2.0] * 70


def test_unreconciled_titles_are_reported_separately(boleto_client, fake_service, paid_title_payload):
    accept_file(fake_service)
    fake_service.add(
        "GET",
        RETURN_PATH,
        status(
            fake_service,
            "PROCESSADO",
            2,
            [{"idintegracao": "abc123"}],
            [{"TituloNossoNumeroOriginal": "777", "TituloNumeroDocumento": "D-7", "Ocorrencias": []}],
        ),
    )
    fake_service.add("GET", "/boletos", fake_service.ok([paid_title_payload]))

    result = boleto_client.process_return_file("CNAB")

    assert list(result.titles) == ["abc123"]
    [unreconciled] = result.unreconciled
    assert unreconciled.number == "777"
    assert unreconciled.document_number == "D-7"


def test_titles_missing_from_query_are_unresolved(boleto_client, fake_service, paid_title_payload):
    accept_file(fake_service)
    fake_service.add(
        "GET",
        RETURN_PATH,
        status(fake_service, "PROCESSADO", 2, [{"idintegracao": "abc123"}, {"idintegracao": "gone"}]),
    )
    fake_service.add("GET", "/boletos", fake_service.ok([paid_title_payload]))

    result = boleto_client.process_return_file("CNAB")

    assert result.unresolved == ["gone"]
    assert result.titles["gone"] == []
    [query] = fake_service.calls("GET", "/boletos")
    assert query.url.params.get_list("idintegracao") == ["abc123", "gone"]


def test_layout_selects_rule_table(boleto_client, fake_service, paid_title_payload):
    """Itaú "10" is a payment on CNAB 400 but a plain settlement on CNAB 240"""
    paid_title_payload["TituloMovimentos"] = [{"codigo": "10", "mensagem": "Baixa", "data": "16/01/2024 10:00:00"}]
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, status(fake_service, "PROCESSADO", 1, [{"idintegracao": "abc123"}]))
    fake_service.add("GET", "/boletos", fake_service.ok([paid_title_payload]))

    result = boleto_client.process_return_file("CNAB240", layout="240")

    [action] = result.titles["abc123"]
    assert action.to_dict() == {
        "action": "payed",
        "data": {"number": "000123"},
        "code": "10",
        "date": "2024-01-16 10:00:00",
    }


def test_error_status_raises(boleto_client, fake_service):
    """Service message first, then the reported situacao"""
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, status(fake_service, "FALHA", message="Arquivo corrompido"))

    with pytest.raises(ReturnFileFailed) as exc_info:
        boleto_client.process_return_file("CNAB")

    assert exc_info.value.message == "Arquivo corrompido"
    assert exc_info.value.reasons == ["FALHA"]
    assert str(exc_info.value) == "Arquivo corrompido\nFALHA"


def test_error_after_processing_raises(boleto_client, fake_service):
    accept_file(fake_service)
    fake_service.add(
        "GET",
        RETURN_PATH,
        status(fake_service, "PROCESSANDO", 3),
        status(fake_service, "ERRO", 3),
    )

    with pytest.raises(ReturnFileFailed):
        boleto_client.process_return_file("CNAB")


def test_error_envelope_on_status_query_raises(boleto_client, fake_service):
    accept_file(fake_service)
    fake_service.add("GET", RETURN_PATH, fake_service.error("Protocolo não encontrado"))

    with pytest.raises(ReturnFileFailed, match="Protocolo não encontrado"):
        boleto_client.process_return_file("CNAB")


def test_refused_file_raises_submission_rejected(boleto_client, fake_service):
    fake_service.add("POST", "/retornos", fake_service.error("Arquivo inválido", data=[{"_erro": "Header ausente"}]))

    with pytest.raises(SubmissionRejected) as exc_info:
        boleto_client.process_return_file("lixo")

    assert exc_info.value.reasons == ["Header ausente"]
    assert fake_service.calls("GET", RETURN_PATH) == []


def test_empty_file_is_rejected_before_sending(boleto_client, fake_service):
    with pytest.raises(InvalidRequestError):
        boleto_client.process_return_file("")

    assert fake_service.requests == []
