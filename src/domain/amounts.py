"""Amounts in French words and RDC amount formatting.

Words follow the legacy cash-office rules:

- 0 -> "zéro"
- 21, 31 ... 61 -> "vingt-et-un" ... ; 71 -> "soixante-et-onze"
- 80 -> "quatre-vingts", 200 -> "deux cents" (plural only when final)
- 1 000 -> "mille", 1 000 000 -> "un million"

The RDC display format uses a space as thousands separator, a comma as
decimal separator and always two decimals: ``4 500,00``.
"""

import math
import re
from decimal import Decimal, ROUND_HALF_UP

from src.errors import AmountOutOfRangeError

# Largest integer part the scale words (up to milliards) can express.
MAX_ENTIER = 999_999_999_999

DEVISE = "francs congolais"

_UNITES = [
    "", "un", "deux", "trois", "quatre", "cinq",
    "six", "sept", "huit", "neuf", "dix",
    "onze", "douze", "treize", "quatorze", "quinze",
    "seize", "dix-sept", "dix-huit", "dix-neuf",
]

_DIZAINES = [
    "", "", "vingt", "trente", "quarante", "cinquante",
    "soixante", "soixante", "quatre-vingt", "quatre-vingt",
]


# ---------------------------------------------------------------------------
# Number to words
# ---------------------------------------------------------------------------

def _dizaine(n: int) -> str:
    """0-99 in words ('' for 0)."""
    if n < 20:
        return _UNITES[n]
    dizaine, unite = divmod(n, 10)

    # 70-79 and 90-99 are built on 10-19
    if dizaine in (7, 9):
        if dizaine == 7 and unite == 1:
            return "soixante-et-onze"
        return f"{_DIZAINES[dizaine]}-{_UNITES[10 + unite]}"

    if dizaine == 8:
        return "quatre-vingts" if unite == 0 else f"quatre-vingt-{_UNITES[unite]}"

    if unite == 0:
        return _DIZAINES[dizaine]
    if unite == 1:
        return f"{_DIZAINES[dizaine]}-et-un"
    return f"{_DIZAINES[dizaine]}-{_UNITES[unite]}"


def _centaine(n: int, final: bool = True) -> str:
    """0-999 in words.

    ``final`` is False when the group is followed by "mille": "cent" and
    "quatre-vingt" then stay invariable (deux cent mille).
    """
    if n == 0:
        return ""
    centaine, reste = divmod(n, 100)
    if centaine == 0:
        words = _dizaine(reste)
    else:
        words = "cent" if centaine == 1 else f"{_UNITES[centaine]} cent"
        if reste == 0:
            if centaine > 1 and final:
                words += "s"
        else:
            words += f" {_dizaine(reste)}"
    if not final and words.endswith("quatre-vingts"):
        words = words[:-1]
    return words


def nombre_en_lettres(n: int) -> str:
    """Convert an integer to French words.

    Negative numbers are prefixed with "moins". Raises
    AmountOutOfRangeError beyond ``MAX_ENTIER``.
    """
    if n < 0:
        return f"moins {nombre_en_lettres(-n)}"
    if n > MAX_ENTIER:
        raise AmountOutOfRangeError(n, MAX_ENTIER)
    if n == 0:
        return "zéro"

    milliards, reste = divmod(n, 1_000_000_000)
    millions, reste = divmod(reste, 1_000_000)
    milliers, unites = divmod(reste, 1_000)

    parties: list[str] = []
    if milliards:
        parties.append("un milliard" if milliards == 1
                       else f"{_centaine(milliards)} milliards")
    if millions:
        parties.append("un million" if millions == 1
                       else f"{_centaine(millions)} millions")
    if milliers:
        parties.append("mille" if milliers == 1
                       else f"{_centaine(milliers, final=False)} mille")
    if unites:
        parties.append(_centaine(unites))
    return " ".join(parties)


def montant_en_lettres(montant: float | int | Decimal,
                       devise: str = DEVISE) -> str:
    """Write a monetary amount in words, with currency and centimes.

    >>> montant_en_lettres(1250.5)
    'Mille deux cent cinquante francs congolais et cinquante centimes'

    Negative amounts get a "Moins" prefix. Amounts whose integer part
    exceeds ``MAX_ENTIER`` raise AmountOutOfRangeError; NaN and infinity
    are rejected with ValueError.
    """
    if isinstance(montant, float) and not math.isfinite(montant):
        raise ValueError(f"Cannot write {montant!r} in words")

    value = Decimal(str(montant)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value == 0:
        return f"Zéro {devise}"

    negative = value < 0
    value = abs(value)
    entier = int(value)
    centimes = int((value - entier) * 100)
    if entier > MAX_ENTIER:
        raise AmountOutOfRangeError(montant, MAX_ENTIER)

    words = nombre_en_lettres(entier)
    if negative:
        words = f"moins {words}"
    words = words[0].upper() + words[1:]
    result = f"{words} {devise}"
    if centimes:
        result += f" et {_dizaine(centimes)} centimes"
    return result


# ---------------------------------------------------------------------------
# RDC display format
# ---------------------------------------------------------------------------

def _clean(text: str) -> str:
    return re.sub(r"[^\d,./-]", "", text)


def parse_montant(value) -> float:
    """Parse an amount typed in any of the formats seen at the cash office.

    Examples:
        "4/500/00"  -> 4500.0    (slash format, last two digits are decimals)
        "1.250,75"  -> 1250.75
        "1,200.50"  -> 1200.5
        "10.000"    -> 10000.0   (dot followed by 3 digits is a separator)
        "750 000"   -> 750000.0
        ""          -> 0.0

    Returns 0.0 for anything unparseable.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        number = float(value)
        return 0.0 if math.isnan(number) else number

    cleaned = _clean(str(value))
    negative = cleaned.startswith("-")
    cleaned = cleaned.replace("-", "")
    if not cleaned:
        return 0.0

    if "/" in cleaned:
        digits = cleaned.replace("/", "").replace(",", "").replace(".", "")
        if len(digits) >= 2:
            number = float(f"{digits[:-2] or '0'}.{digits[-2:]}")
        else:
            number = float(digits or 0)
        return -number if negative else number

    comma = re.search(r",(\d{1,2})$", cleaned)
    dot = re.search(r"\.(\d{1,2})$", cleaned)
    if comma and dot:
        decimal_sep = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
    elif comma:
        decimal_sep = ","
    elif dot:
        decimal_sep = "."
    else:
        decimal_sep = None

    if decimal_sep is None:
        normalized = cleaned.replace(",", "").replace(".", "")
    else:
        head, _, tail = cleaned.rpartition(decimal_sep)
        head = head.replace(",", "").replace(".", "")
        normalized = f"{head or '0'}.{tail}"

    try:
        number = float(normalized)
    except ValueError:
        return 0.0
    return -number if negative else number


def format_montant(value, show_currency: bool = False, show_sign: bool = False,
                   currency_symbol: str = "FC", decimals: int = 2) -> str:
    """Format an amount in RDC style: ``1 234 567,89`` (optionally ``FC``)."""
    number = parse_montant(value)
    quantum = Decimal(1).scaleb(-decimals)
    amount = Decimal(str(abs(number))).quantize(quantum, rounding=ROUND_HALF_UP)
    entier, _, fraction = f"{amount:f}".partition(".")
    groups = f"{int(entier):,}".replace(",", " ")
    result = f"{groups},{fraction}" if decimals else groups

    if number < 0 and amount != 0:
        result = f"-{result}"
    elif show_sign and number > 0:
        result = f"+{result}"
    if show_currency:
        result = f"{result} {currency_symbol}"
    return result


def is_format_rdc(text: str) -> bool:
    """True if ``text`` already follows the RDC display format."""
    return re.fullmatch(r"-?\d{1,3}( \d{3})*,\d{2}( FC)?", text.strip()) is not None
