"""Tests for the row ingestion module."""

import datetime
import json
import math

import pandas as pd
import pytest

from src.processor.ingestion import (
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


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

CSV_TEXT = (
    "date,numero_ordre,libelle,recette,depense,imputation\n"
    "2025-10-01,001,Solde du mois (antérieur),\"150 000,00\",,707820\n"
    "2025-10-03,002,Achat papier,,4/500/00,604100\n"
)


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "octobre.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# parse_amount
# ---------------------------------------------------------------------------

class TestParseAmount:
    def test_rdc_format(self):
        assert parse_amount("1 234,50") == 1234.5

    def test_slash_format(self):
        assert parse_amount("4/500/00") == 4500.0

    def test_number(self):
        assert parse_amount(42) == 42.0

    def test_blank(self):
        assert math.isnan(parse_amount(""))
        assert math.isnan(parse_amount(None))
        assert math.isnan(parse_amount(float("nan")))


class TestCleaning:
    def test_clean_columns(self):
        df = pd.DataFrame({" libelle ": ["a"], "recette": [1]})
        assert list(clean_columns(df).columns) == ["libelle", "recette"]

    def test_clean_amount_columns_skips_missing(self):
        df = pd.DataFrame({"recette": ["1 000,00", None]})
        df = clean_amount_columns(df, ["recette", "depense"])
        assert df["recette"].iloc[0] == 1000.0
        assert math.isnan(df["recette"].iloc[1])


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

class TestDetectEncoding:
    def test_utf8(self, csv_file):
        assert detect_encoding(csv_file) == ("utf-8", ",")

    def test_utf8_bom(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes(b"\xef\xbb\xbf" + CSV_TEXT.encode("utf-8"))
        assert detect_encoding(path) == ("utf-8-sig", ",")

    def test_utf16(self, tmp_path):
        path = tmp_path / "unicode.txt"
        path.write_bytes(b"\xff\xfe" + "a\tb\n1\t2\n".encode("utf-16-le"))
        assert detect_encoding(path) == ("utf-16-le", "\t")


class TestReaders:
    def test_csv_keeps_codes_as_text(self, csv_file):
        df = read_csv_auto(csv_file)
        assert df["numero_ordre"].iloc[0] == "001"
        assert df["imputation"].iloc[1] == "604100"

    def test_utf16_tab_file(self, tmp_path):
        path = tmp_path / "unicode.txt"
        path.write_bytes(b"\xff\xfe" + "libelle\trecette\nEau\t10\n".encode("utf-16-le"))
        df = read_table(path)
        assert list(df.columns) == ["libelle", "recette"]
        assert df["libelle"].iloc[0] == "Eau"

    def test_json_list_and_rows_key(self, tmp_path):
        records = [{"designation": "Carburant", "montant_prevu": 4500}]
        a = tmp_path / "a.json"
        b = tmp_path / "b.json"
        a.write_text(json.dumps(records), encoding="utf-8")
        b.write_text(json.dumps({"rows": records}), encoding="utf-8")
        assert read_table(a).equals(read_table(b))

    def test_json_bad_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('"just a string"', encoding="utf-8")
        with pytest.raises(ValueError):
            read_table(path)

    def test_excel(self, tmp_path):
        path = tmp_path / "rows.xlsx"
        pd.DataFrame({"libelle": ["Eau"], "depense": [10.5]}).to_excel(path, index=False)
        df = read_table(path)
        assert df["depense"].iloc[0] == 10.5

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "rows.parquet"
        path.write_bytes(b"")
        with pytest.raises(ValueError, match="Unsupported data file"):
            read_table(path)

    def test_readers_registry(self):
        assert {".csv", ".xlsx", ".json"} <= set(READERS)


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

class TestRows:
    def test_dataframe_to_rows_plain_values(self):
        df = pd.DataFrame({
            "date": pd.to_datetime(["2025-10-01", None]),
            "montant": [1.5, float("nan")],
            "n": [1, 2],
        })
        rows = dataframe_to_rows(df)
        assert rows[0] == {"date": datetime.date(2025, 10, 1), "montant": 1.5, "n": 1}
        assert rows[1]["date"] is None
        assert rows[1]["montant"] is None
        assert type(rows[0]["n"]) is int

    def test_with_period_fields(self):
        rows = with_period_fields([{"date": "2025-10-31"}, {"date": None}, {"date": "?"}])
        assert rows[0]["mois_lettre"] == "OCTOBRE"
        assert rows[0]["mois_annee"] == "10/2025"
        assert rows[1] == {"date": None}
        assert rows[2] == {"date": "?"}

    def test_load_rows(self, csv_file):
        rows = load_rows(csv_file, amount_columns=["recette", "depense"], add_period=True)
        assert len(rows) == 2
        assert rows[0]["recette"] == 150000.0
        assert rows[0]["depense"] is None
        assert rows[1]["depense"] == 4500.0
        assert rows[1]["libelle"] == "Achat papier"
        assert rows[1]["mois"] == 10
