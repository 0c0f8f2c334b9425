"""Action normalizer - builds bank-agnostic actions from a title snapshot and one occurrence"""

from typing import Callable, Optional

from plugboleto_gateway.domain.models import ActionKind, NormalizedAction, Occurrence, Title

ActionGenerator = Callable[[Title, Occurrence], NormalizedAction]


def _amount(from_occurrence: Optional[int], from_title: int) -> int:
    return from_occurrence if from_occurrence is not None else from_title


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def payed(title: Title, occurrence: Occurrence) -> NormalizedAction:
    """Settlement with full payment details; interest is reported as zero"""
    return _payment(title, occurrence, interest_from_paid_value=False)


def payed_with_interest(title: Title, occurrence: Occurrence) -> NormalizedAction:
    """
    Settlement for banks whose return file only carries the total paid.

    Interest is whatever was paid above face value:
        face 100,00 / paid 105,50 → interest 550 cents
    """
    return _payment(title, occurrence, interest_from_paid_value=True)


def _payment(title: Title, occurrence: Occurrence, interest_from_paid_value: bool) -> NormalizedAction:
    paid_cents = _amount(occurrence.paid_cents, title.paid_cents)
    discount_cents = _amount(occurrence.discount_cents, title.discount_cents)
    paid_on = title.paid_on or (occurrence.occurred_at.date() if occurrence.occurred_at else None)
    interest_cents = paid_cents - title.face_value_cents if interest_from_paid_value else 0

    return NormalizedAction(
        kind=ActionKind.PAYED,
        data={
            "document_number": title.document_number,
            "occurred_on": _iso(paid_on),
            "discount_cents": discount_cents,
            "paid_cents": paid_cents,
            "other_receipts_cents": 0,
            "interest_delay_cents": 0,
            "interest_default_cents": interest_cents,
        },
    )


def settled(title: Title, occurrence: Occurrence) -> NormalizedAction:
    """Write-off reported without payment details"""
    return NormalizedAction(kind=ActionKind.PAYED, data={"number": title.our_number})


def rejected(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(
        kind=ActionKind.REJECTED,
        data={"number": title.our_number, "document_number": title.document_number},
        message=f"Duplicata {title.document_number} rejeitada. ({occurrence.message}).",
        sub_occurrences=occurrence.sub_occurrences,
    )


def confirmed(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(kind=ActionKind.CONFIRMED, data={"number": title.our_number})


def canceled(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(kind=ActionKind.CANCELED, data={"number": title.our_number})


def abatement_completed(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(
        kind=ActionKind.ABATEMENT_COMPLETED,
        data={
            "number": title.our_number,
            "discount_amount_cents": _amount(occurrence.rebate_cents, title.rebate_cents),
        },
    )


def abatement_canceled(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(
        kind=ActionKind.ABATEMENT_CANCELED,
        data={
            "number": title.our_number,
            "discount_amount_cents": _amount(occurrence.rebate_cents, title.rebate_cents),
        },
    )


def change_due_date(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(
        kind=ActionKind.CHANGE_DUE_DATE,
        data={"number": title.our_number, "due_date": _iso(title.due_date)},
    )


def remove_payed(title: Title, occurrence: Occurrence) -> NormalizedAction:
    return NormalizedAction(
        kind=ActionKind.REMOVE_PAYED,
        data={
            "number": title.our_number,
            "value_cents": _amount(occurrence.rebate_cents, title.rebate_cents),
        },
    )


def default(title: Title, occurrence: Occurrence) -> NormalizedAction:
    """Informational or unclassified occurrence"""
    return NormalizedAction(
        kind=ActionKind.DEFAULT,
        data={},
        message=f"Movimento Duplicata {title.document_number} ({occurrence.message}).",
        sub_occurrences=occurrence.sub_occurrences,
    )


GENERATORS = {
    "payed": payed,
    "payed_with_interest": payed_with_interest,
    "settled": settled,
    "rejected": rejected,
    "confirmed": confirmed,
    "canceled": canceled,
    "abatement_completed": abatement_completed,
    "abatement_canceled": abatement_canceled,
    "change_due_date": change_due_date,
    "remove_payed": remove_payed,
    "default": default,
}
