"""Ordering rules for rubriques and operations.

The "Solde du mois (antérieur)" pseudo-rubrique carries the balance brought
forward from the previous period. It must head every listing (feuille de
caisse, sommaire) whatever the sort key of the other lines.
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

T = TypeVar("T")

SOLDE_CODE = "SOLDE-ANT"
SOLDE_LIBELLE = "Solde du mois (antérieur)"
SOLDE_LIBELLE_OUVERTURE = "Solde du 31/10/2025"
SOLDE_IMPUTATION = "707820"

SORT_KEYS = ("code", "libelle")


def _field(item: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an attribute-bearing object."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def is_solde_anterieur(item: Any) -> bool:
    """True if ``item`` is the prior-balance rubrique.

    Matches on the fixed code, the libellé, or the accounting imputation.
    """
    code = _field(item, "code")
    libelle = str(_field(item, "libelle") or "")
    imp = _field(item, "imp")
    if imp is None:
        imp = _field(item, "imputation")
    return (
        code == SOLDE_CODE
        or SOLDE_LIBELLE in libelle
        or libelle == SOLDE_LIBELLE_OUVERTURE
        or (imp is not None and str(imp) == SOLDE_IMPUTATION)
    )


def sort_rubriques_solde_first(items: Iterable[T], key: str = "code") -> list[T]:
    """Return a new list with the prior balance first, the rest by ``key``.

    Both groups are ordered stably, so sorting twice gives the same list.
    """
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key {key!r}, expected one of {SORT_KEYS}")

    def sort_key(item):
        value = _field(item, key)
        return (not is_solde_anterieur(item), str(value or "").casefold())

    return sorted(items, key=sort_key)


def _is_solde_operation(item: Any) -> bool:
    imputation = _field(item, "imputation")
    if imputation is not None and str(imputation) == SOLDE_IMPUTATION:
        return True
    for name in ("designation", "rubrique", "libelle"):
        text = _field(item, name)
        if not isinstance(text, str):
            continue
        if SOLDE_LIBELLE in text or SOLDE_LIBELLE_OUVERTURE in text:
            return True
    return False


def sort_operations_solde_first(items: Iterable[T]) -> list[T]:
    """Move operations booked on the prior balance first; keep other order."""
    return sorted(items, key=lambda item: not _is_solde_operation(item))
