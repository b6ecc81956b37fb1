"""Row ingestion — load report rows from CSV, Excel or JSON files.

The export pipeline takes rows already in memory. These readers produce
them from files exported by the application (or typed by hand):

- CSV: UTF-8 comma-delimited, or UTF-16 LE tab-delimited (Excel "Unicode text")
- Excel: .xlsx / .xlsm, first sheet unless named
- JSON: a list of records, or {"rows": [...]}

Rows come out as plain dicts: NaN becomes None, timestamps become dates,
and amount columns written in the RDC format ("1 234,50", "4/500/00") are
parsed to floats.
"""

import json
import math
from pathlib import Path

import pandas as pd

from src.domain.amounts import parse_montant
from src.domain.periods import period_info


# ---------------------------------------------------------------------------
# Column cleaning
# ---------------------------------------------------------------------------

def clean_columns(df):
    """Strip whitespace (and a stray BOM) from column names."""
    df.columns = [c.replace("\ufeff", "").strip() if isinstance(c, str) else c
                  for c in df.columns]
    return df


def parse_amount(value):
    """Parse an amount cell; NaN for blanks.

    Examples:
        "1 234,50" -> 1234.5
        "4/500/00" -> 4500.0
        42 -> 42.0
    """
    if pd.isna(value):
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip()
    if not s:
        return float("nan")
    return parse_montant(s)


def clean_amount_columns(df, columns):
    """Apply parse_amount to the named columns that exist in ``df``."""
    for col in columns:
        if col in df.columns:
            df[col] = df[col].apply(parse_amount)
    return df


# ---------------------------------------------------------------------------
# Encoding detection and readers
# ---------------------------------------------------------------------------

def detect_encoding(path):
    """Detect whether a file is UTF-16 LE (with BOM) or UTF-8.

    Returns (encoding, delimiter) tuple.
    """
    with open(path, "rb") as f:
        raw = f.read(4)
    if raw[:2] == b"\xff\xfe":
        return "utf-16-le", "\t"
    if raw[:3] == b"\xef\xbb\xbf":
        return "utf-8-sig", ","
    return "utf-8", ","


def read_csv_auto(path):
    """Read a CSV file with automatic encoding and delimiter detection."""
    encoding, sep = detect_encoding(path)
    # Keep codes such as "0012" or "707820" as text
    df = pd.read_csv(path, encoding=encoding, sep=sep, dtype=str, keep_default_na=True)
    return clean_columns(df)


def read_excel(path, sheet_name=None):
    df = pd.read_excel(path, sheet_name=sheet_name or 0, engine="openpyxl")
    return clean_columns(df)


def read_json(path):
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("rows", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of records or {{'rows': [...]}}")
    return clean_columns(pd.DataFrame.from_records(data))


READERS = {
    ".csv": read_csv_auto,
    ".txt": read_csv_auto,
    ".xlsx": read_excel,
    ".xlsm": read_excel,
    ".json": read_json,
}


def read_table(path, sheet_name=None):
    """Read a data file into a DataFrame, dispatching on its extension.

    Raises:
        ValueError: If the extension is not supported.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in READERS:
        raise ValueError(
            f"Unsupported data file '{path.name}'. "
            f"Valid extensions: {', '.join(sorted(READERS))}"
        )
    if suffix in (".xlsx", ".xlsm"):
        return read_excel(path, sheet_name)
    return READERS[suffix](path)


# ---------------------------------------------------------------------------
# DataFrame -> rows
# ---------------------------------------------------------------------------

def _plain(value):
    """Convert pandas/numpy scalars into plain Python values."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        if value.hour == value.minute == value.second == 0:
            return value.date()
        return value.to_pydatetime()
    if value is pd.NaT:
        return None
    if hasattr(value, "item"):
        # numpy scalar
        return _plain(value.item())
    return value


def dataframe_to_rows(df):
    """Convert a DataFrame to a list of dicts with plain Python values."""
    return [
        {str(k): _plain(v) for k, v in record.items()}
        for record in df.to_dict(orient="records")
    ]


def with_period_fields(rows, date_key="date"):
    """Add mois / annee / mois_lettre / mois_annee derived from ``date_key``.

    Rows whose date is missing or unparseable are returned unchanged.
    """
    enriched = []
    for row in rows:
        value = row.get(date_key)
        try:
            info = period_info(value) if value is not None else None
        except (TypeError, ValueError):
            info = None
        enriched.append({**row, **info.to_dict()} if info else dict(row))
    return enriched


def load_rows(path, amount_columns=(), sheet_name=None, add_period=False, date_key="date"):
    """Load report rows from a data file.

    Args:
        path: CSV, Excel or JSON file.
        amount_columns: Columns to parse as RDC-formatted amounts.
        sheet_name: Excel sheet to read (first sheet by default).
        add_period: Derive month/year fields from ``date_key``.

    Returns:
        list of dicts, one per row.
    """
    df = read_table(path, sheet_name=sheet_name)
    df = clean_amount_columns(df, amount_columns)
    rows = dataframe_to_rows(df)
    if add_period:
        rows = with_period_fields(rows, date_key=date_key)
    return rows
