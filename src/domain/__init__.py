"""Domain utilities — amounts in words, periods, prior-balance ordering.

- amounts.py: French amount-in-words and RDC amount formatting/parsing
- periods.py: month/year fields derived from a transaction date
- sorting.py: "Solde du mois (antérieur)" always-first ordering
"""

from .amounts import (
    DEVISE,
    MAX_ENTIER,
    format_montant,
    is_format_rdc,
    montant_en_lettres,
    nombre_en_lettres,
    parse_montant,
)
from .periods import MOIS_EN_LETTRES, PeriodInfo, mois_en_lettre, period_info
from .sorting import (
    SOLDE_CODE,
    is_solde_anterieur,
    sort_operations_solde_first,
    sort_rubriques_solde_first,
)

__all__ = [
    # Amounts
    "DEVISE",
    "MAX_ENTIER",
    "format_montant",
    "is_format_rdc",
    "montant_en_lettres",
    "nombre_en_lettres",
    "parse_montant",
    # Periods
    "MOIS_EN_LETTRES",
    "PeriodInfo",
    "mois_en_lettre",
    "period_info",
    # Sorting
    "SOLDE_CODE",
    "is_solde_anterieur",
    "sort_operations_solde_first",
    "sort_rubriques_solde_first",
]
