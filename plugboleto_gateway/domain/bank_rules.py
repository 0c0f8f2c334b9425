"""
Bank rule table - occurrence code translation per bank and return-file layout.

Every bank reports the same lifecycle events with its own occurrence codes, and
several banks reuse codes differently between the CNAB 400 and CNAB 240 layouts.
The table below is the single place where those mappings live: adding a bank or
a code is a data change.

Codes not listed for a bank/layout fall back to the `default` generator.
"""

import logging
from types import MappingProxyType
from typing import Dict, Mapping, Sequence

from plugboleto_gateway.domain.actions import GENERATORS, ActionGenerator, default
from plugboleto_gateway.domain.models import NormalizedAction, Occurrence, Title

logger = logging.getLogger(__name__)

LAYOUT_400 = "400"
LAYOUT_240 = "240"

BANK_NAMES = {
    "001": "Banco do Brasil",
    "021": "Banestes",
    "033": "Santander",
    "089": "Credisan",
    "104": "Caixa",
    "237": "Bradesco",
    "341": "Itaú",
    "422": "Safra",
    "748": "Sicredi",
    "756": "Sicoob",
}


def _rules(**codes_by_generator: Sequence[str]) -> Mapping[str, ActionGenerator]:
    """Invert `generator=(codes...)` into a read-only code → generator map"""
    table: Dict[str, ActionGenerator] = {}
    for name, codes in codes_by_generator.items():
        for code in codes:
            if code in table:
                raise ValueError(f"Occurrence code {code} mapped twice")
            table[code] = GENERATORS[name]
    return MappingProxyType(table)


_SAFRA = _rules(
    confirmed=("02",),
    rejected=("03",),
    payed=("06", "15"),
    settled=("09", "40"),
    abatement_completed=("12",),
    abatement_canceled=("13",),
    change_due_date=("14",),
)

_BANESTES = _rules(
    confirmed=("02",),
    rejected=("03",),
    payed=("06", "17"),
    settled=("09",),
    abatement_completed=("12",),
    abatement_canceled=("13",),
    change_due_date=("14",),
)

_TABLE = {
    "001": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("05", "06", "07", "08", "15"),
            settled=("09", "10", "20"),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "17", "23", "45"),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
    "021": {LAYOUT_400: _BANESTES, LAYOUT_240: _BANESTES},
    "033": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "07", "08", "17"),
            settled=("09", "10"),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "17", "23", "25"),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
    "089": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            rejected=("03", "30"),
            payed=("05", "06", "15", "16", "17"),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(),
    },
    "104": {
        LAYOUT_400: _rules(
            confirmed=("01",),
            settled=("02",),
            change_due_date=("05",),
            payed=("21", "22"),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06",),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
    "237": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            rejected=("03", "24"),
            payed=("06", "15", "16", "17"),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
            remove_payed=("22",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "17", "45"),
            settled=("09",),
        ),
    },
    # Itaú only reports the total paid, so interest is derived from it
    "341": {
        LAYOUT_400: _rules(
            confirmed=("02", "64", "73"),
            rejected=("03", "15", "16", "17", "18", "60"),
            payed_with_interest=("06", "07", "08", "10", "59"),
            settled=("09", "32"),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03", "15", "16", "17", "18", "60"),
            payed_with_interest=("06", "08", "23"),
            settled=("09", "10", "32"),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
    "422": {LAYOUT_400: _SAFRA, LAYOUT_240: _SAFRA},
    "748": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "15", "17"),
            settled=("09", "10"),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "17", "23"),
            settled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
    "756": {
        LAYOUT_400: _rules(
            confirmed=("02",),
            payed=("05", "06", "15"),
            canceled=("09", "10"),
            change_due_date=("14",),
        ),
        LAYOUT_240: _rules(
            confirmed=("02",),
            rejected=("03",),
            payed=("06", "17", "23"),
            canceled=("09",),
            abatement_completed=("12",),
            abatement_canceled=("13",),
            change_due_date=("14",),
        ),
    },
}

# bank id → layout → occurrence code → generator
BANK_RULES: Mapping[str, Mapping[str, Mapping[str, ActionGenerator]]] = MappingProxyType(
    {bank: MappingProxyType(layouts) for bank, layouts in _TABLE.items()}
)


def normalize_layout(layout) -> str:
    """Only CNAB 400 is told apart; every other layout reads the 240 table"""
    return LAYOUT_400 if str(layout).strip() == LAYOUT_400 else LAYOUT_240


def normalize_bank(bank_code) -> str:
    text = str(bank_code or "").strip()
    return text.zfill(3) if text.isdigit() else text


def resolve_generator(bank_code, layout, code: str) -> ActionGenerator:
    """Two-level lookup; unknown banks, layouts and codes resolve to `default`"""
    layouts = BANK_RULES.get(normalize_bank(bank_code))
    if layouts is None:
        logger.debug("No rule table for bank", extra={"bank": bank_code})
        return default
    codes = layouts.get(normalize_layout(layout), {})
    return codes.get(str(code).strip(), default)


def translate(bank_code, layout, occurrence: Occurrence, title: Title) -> NormalizedAction:
    """Translate one occurrence of `title` into a normalized action (pure, never raises on unknown codes)"""
    generator = resolve_generator(bank_code, layout, occurrence.code)
    return generator(title, occurrence)
