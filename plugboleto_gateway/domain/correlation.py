"""Batch correlation between submitted integration ids and follow-up query results"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Sequence

from plugboleto_gateway.domain.models import (
    InvalidStatusTransition,
    IssuanceRecord,
    Title,
    TitleStatus,
    integration_id_of,
)

logger = logging.getLogger(__name__)

# Resolved statuses that move an accepted submission into the error bucket
FAILED_STATUSES = frozenset({TitleStatus.REJECTED, TitleStatus.FAILED})


@dataclass
class Correlation:
    """Lookup of query results keyed by integration id"""

    resolved: Dict[str, Title] = field(default_factory=dict)
    unresolved: List[str] = field(default_factory=list)

    def get(self, integration_id: str) -> Title | None:
        return self.resolved.get(str(integration_id))


@dataclass
class IssuancePartition:
    success: List[IssuanceRecord] = field(default_factory=list)
    errors: List[IssuanceRecord] = field(default_factory=list)
    unresolved: List[IssuanceRecord] = field(default_factory=list)


def correlate(
    submitted_ids: Sequence[str],
    query_by_ids: Callable[[List[str]], Iterable[Dict[str, Any]]],
) -> Correlation:
    """
    Resolve submitted ids against a follow-up query.

    Ids absent from the query result (remote processing still in flight, or the
    query itself unavailable) are reported as unresolved, never dropped.
    """
    ids = [str(i) for i in submitted_ids]
    if not ids:
        return Correlation()

    lookup: Dict[str, Title] = {}
    for record in query_by_ids(ids):
        title = Title.from_payload(record)
        lookup[title.integration_id] = title

    correlation = Correlation(
        resolved={i: lookup[i] for i in ids if i in lookup},
        unresolved=[i for i in ids if i not in lookup],
    )
    if correlation.unresolved:
        logger.warning(
            "Integration ids missing from follow-up query",
            extra={"unresolved": correlation.unresolved},
        )
    return correlation


def partition_issuance(accepted: Iterable[Dict[str, Any]], correlation: Correlation) -> IssuancePartition:
    """
    Split accepted submissions using their resolved status.

    This is a best-effort read taken once after a fixed delay: a title still
    being registered may resolve differently later. A resolved status that
    would move the submitted title backwards is treated as not yet resolved.
    """
    partition = IssuancePartition()

    for item in accepted:
        integration_id = integration_id_of(item)
        resolved = correlation.get(integration_id)
        pending = IssuanceRecord(
            integration_id=integration_id,
            situacao=item.get("situacao"),
            our_number=item.get("TituloNossoNumero"),
            document_number=item.get("TituloNumeroDocumento"),
        )

        if resolved is None:
            partition.unresolved.append(pending)
            continue

        submitted = Title(
            integration_id=integration_id,
            situacao=item.get("situacao"),
            status=TitleStatus.from_situacao(item.get("situacao")),
        )
        try:
            title = submitted.advance(resolved.status)
        except InvalidStatusTransition:
            # Follow-up read is older than the submission acknowledgement
            logger.warning(
                "Follow-up status behind submitted status",
                extra={
                    "integration_id": integration_id,
                    "submitted": submitted.status.value,
                    "resolved": resolved.status.value,
                },
            )
            partition.unresolved.append(pending)
            continue

        if title.status in FAILED_STATUSES:
            partition.errors.append(
                IssuanceRecord(
                    integration_id=integration_id,
                    situacao="FALHA",
                    our_number=resolved.our_number or item.get("TituloNossoNumero"),
                    document_number=resolved.document_number or item.get("TituloNumeroDocumento"),
                    reason=resolved.reason,
                )
            )
        else:
            partition.success.append(
                IssuanceRecord(
                    integration_id=integration_id,
                    situacao=resolved.situacao,
                    our_number=resolved.our_number or item.get("TituloNossoNumero"),
                    document_number=resolved.document_number,
                    digitable_line=resolved.digitable_line,
                    barcode=resolved.barcode,
                )
            )

    return partition


def submission_failures(failed: Iterable[Dict[str, Any]]) -> List[IssuanceRecord]:
    """Titles refused outright at submission (`_falha` entries)"""
    records = []
    for item in failed:
        if "_erros" in item:
            details = item["_erros"]
        elif isinstance(item.get("_erro"), dict):
            details = item["_erro"].get("erros", item["_erro"])
        else:
            details = item.get("_erro")
        records.append(
            IssuanceRecord(
                integration_id=integration_id_of(item) or None,
                situacao="FALHA",
                our_number=item.get("TituloNossoNumero"),
                document_number=item.get("TituloNumeroDocumento"),
                reason=json.dumps(details, ensure_ascii=False),
            )
        )
    return records
