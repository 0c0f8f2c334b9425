"""Unit tests for batch correlation and issuance partitioning"""

import json

from plugboleto_gateway.domain.correlation import correlate, partition_issuance, submission_failures
from plugboleto_gateway.domain.models import TitleStatus


def lookup_of(*records):
    """Follow-up query returning fixed records and remembering the ids asked for"""
    asked = []

    def query(ids):
        asked.append(list(ids))
        return list(records)

    return query, asked


def test_correlate_resolves_by_integration_id():
    """Query results are keyed by id regardless of the spelling used"""
    query, asked = lookup_of(
        {"IdIntegracao": "1", "situacao": "EMITIDO"},
        {"idintegracao": "2", "situacao": "PAGO"},
    )

    correlation = correlate(["1", "2"], query)

    assert asked == [["1", "2"]]
    assert correlation.get("1").status is TitleStatus.ACCEPTED
    assert correlation.get("2").status is TitleStatus.PAID
    assert correlation.unresolved == []


def test_correlate_reports_missing_ids_as_unresolved():
    query, _ = lookup_of({"IdIntegracao": "1", "situacao": "EMITIDO"})

    correlation = correlate(["1", "2", "3"], query)

    assert list(correlation.resolved) == ["1"]
    assert correlation.unresolved == ["2", "3"]


def test_correlate_skips_query_when_nothing_submitted():
    query, asked = lookup_of()

    correlation = correlate([], query)

    assert asked == []
    assert correlation.resolved == {}
    assert correlation.unresolved == []


def test_paid_title_is_a_success_enriched_from_query():
    """Accepted + PAGO → success carrying the resolved digitable line"""
    query, _ = lookup_of(
        {
            "IdIntegracao": "1",
            "situacao": "PAGO",
            "TituloLinhaDigitavel": "123",
            "TituloCodigoBarras": "456",
            "TituloNossoNumero": "0001",
            "TituloNumeroDocumento": "DOC-1",
        }
    )
    accepted = [{"idintegracao": "1", "situacao": "SALVO"}]

    partition = partition_issuance(accepted, correlate(["1"], query))

    assert partition.errors == []
    assert partition.unresolved == []
    [record] = partition.success
    assert record.integration_id == "1"
    assert record.situacao == "PAGO"
    assert record.digitable_line == "123"
    assert record.barcode == "456"
    assert record.our_number == "0001"
    assert record.document_number == "DOC-1"


def test_rejected_title_moves_to_errors_with_reason():
    """Accepted at submission but REJEITADO at confirmation → FALHA with the service reason"""
    query, _ = lookup_of({"IdIntegracao": "7", "situacao": "REJEITADO", "motivo": "Convênio inválido"})
    accepted = [{"idintegracao": "7", "situacao": "SALVO"}]

    partition = partition_issuance(accepted, correlate(["7"], query))

    assert partition.success == []
    [record] = partition.errors
    assert record.integration_id == "7"
    assert record.situacao == "FALHA"
    assert record.reason == "Convênio inválido"


def test_failed_title_moves_to_errors():
    query, _ = lookup_of({"IdIntegracao": "8", "situacao": "FALHA", "motivo": "Timeout no banco"})

    partition = partition_issuance([{"idintegracao": "8"}], correlate(["8"], query))

    assert [r.reason for r in partition.errors] == ["Timeout no banco"]


def test_missing_title_is_unresolved_not_dropped():
    """Titles the confirmation query did not return are reported separately"""
    query, _ = lookup_of({"IdIntegracao": "1", "situacao": "EMITIDO"})
    accepted = [
        {"idintegracao": "1", "situacao": "SALVO"},
        {"idintegracao": "2", "situacao": "SALVO", "TituloNossoNumero": "0002"},
    ]

    partition = partition_issuance(accepted, correlate(["1", "2"], query))

    assert [r.integration_id for r in partition.success] == ["1"]
    [record] = partition.unresolved
    assert record.integration_id == "2"
    assert record.situacao == "SALVO"
    assert record.our_number == "0002"


def test_stale_follow_up_status_is_unresolved():
    """Submitted as EMITIDO but the follow-up still reads SALVO → not yet resolved"""
    query, _ = lookup_of(
        {"IdIntegracao": "1", "situacao": "SALVO"},
        {"IdIntegracao": "2", "situacao": "PAGO"},
    )
    accepted = [
        {"idintegracao": "1", "situacao": "EMITIDO", "TituloNossoNumero": "0001"},
        {"idintegracao": "2", "situacao": "EMITIDO"},
    ]

    partition = partition_issuance(accepted, correlate(["1", "2"], query))

    assert [r.integration_id for r in partition.success] == ["2"]
    assert partition.errors == []
    [record] = partition.unresolved
    assert record.integration_id == "1"
    assert record.situacao == "EMITIDO"
    assert record.our_number == "0001"


def test_submission_failures_serialize_item_errors():
    """`_falha` items carry their per-field errors as JSON text"""
    failed = [
        {"idintegracao": "9", "_erros": {"TituloValor": "obrigatório"}},
        {"_erro": {"erros": {"CedenteContaNumero": "inválido"}}},
        {"TituloNumeroDocumento": "DOC-3", "_erro": "Cedente não encontrado"},
    ]

    records = submission_failures(failed)

    assert [r.situacao for r in records] == ["FALHA", "FALHA", "FALHA"]
    assert records[0].integration_id == "9"
    assert json.loads(records[0].reason) == {"TituloValor": "obrigatório"}
    assert records[1].integration_id is None
    assert json.loads(records[1].reason) == {"CedenteContaNumero": "inválido"}
    assert records[2].document_number == "DOC-3"
    assert json.loads(records[2].reason) == "Cedente não encontrado"
