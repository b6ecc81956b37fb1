"""Accounting period derivation (month number, year, month in words)."""

import datetime
from dataclasses import dataclass

MOIS_EN_LETTRES = {
    1: "JANVIER",
    2: "FEVRIER",
    3: "MARS",
    4: "AVRIL",
    5: "MAI",
    6: "JUIN",
    7: "JUILLET",
    8: "AOUT",
    9: "SEPTEMBRE",
    10: "OCTOBRE",
    11: "NOVEMBRE",
    12: "DECEMBRE",
}


@dataclass(frozen=True)
class PeriodInfo:
    """Period fields stored alongside each recette / dépense."""
    mois: int
    annee: int
    mois_lettre: str
    mois_annee: str     # "MM/YYYY"

    def to_dict(self) -> dict:
        return {
            "mois": self.mois,
            "annee": self.annee,
            "mois_lettre": self.mois_lettre,
            "mois_annee": self.mois_annee,
        }


def mois_en_lettre(mois: int) -> str:
    """Upper-case French month name for 1-12, '' otherwise."""
    return MOIS_EN_LETTRES.get(mois, "")


def _as_calendar_date(value) -> datetime.date:
    """Coerce a date, datetime or ISO string to a calendar date.

    Datetimes and timestamps keep their own date part; no timezone
    conversion is applied.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.date.fromisoformat(text[:10])
        except ValueError:
            raise ValueError(f"Not an ISO date: {value!r}") from None
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")


def period_info(value) -> PeriodInfo:
    """Derive the period fields of a transaction date.

    >>> period_info("2025-10-31")
    PeriodInfo(mois=10, annee=2025, mois_lettre='OCTOBRE', mois_annee='10/2025')
    """
    d = _as_calendar_date(value)
    return PeriodInfo(
        mois=d.month,
        annee=d.year,
        mois_lettre=mois_en_lettre(d.month),
        mois_annee=f"{d.month:02d}/{d.year}",
    )
