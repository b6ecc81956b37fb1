"""Row ingestion for the report export pipeline."""

from .ingestion import (
    READERS,
    clean_amount_columns,
    clean_columns,
    dataframe_to_rows,
    detect_encoding,
    load_rows,
    parse_amount,
    read_csv_auto,
    read_table,
    with_period_fields,
)

__all__ = [
    "READERS",
    "clean_amount_columns",
    "clean_columns",
    "dataframe_to_rows",
    "detect_encoding",
    "load_rows",
    "parse_amount",
    "read_csv_auto",
    "read_table",
    "with_period_fields",
]
