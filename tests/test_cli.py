"""Tests for the CLI entry point (src.cli).

Covers argument parsing, template and settings loading, the export command
end to end (files written to a temporary directory), QA gating, and the
inspect, settings and words commands.
"""

import argparse
from unittest.mock import MagicMock, patch

import pytest
import yaml

from src.cli import (
    _load_settings,
    _load_template,
    _parse_assignment,
    build_parser,
    main,
)
from src.schema.loader import save_template
from src.schema.models import ReportKind
from src.schema.templates import SOMMAIRE_TEMPLATE, clone_template
from src.settings.models import DEFAULT_REPORT_SETTINGS
from src.settings.store import load_settings, save_settings


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parser():
    return build_parser()


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "octobre.csv"
    path.write_text(
        "date,numero_ordre,libelle,recette,depense,imputation\n"
        "2025-10-03,002,Achat papier,,\"25 000,00\",604100\n"
        "2025-10-01,001,Solde du mois (antérieur),\"150 000,00\",,707820\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def qa_fail():
    qa = MagicMock()
    qa.passed = False
    qa.summary.return_value = "QA FAIL: 1 error(s), 0 warning(s)"
    qa.report.return_value = "QA FAIL: 1 error(s), 0 warning(s)\n  [ERROR] title: missing"
    return qa


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

class TestParser:
    def test_export_defaults(self, parser):
        args = parser.parse_args(["export", "--data", "rows.csv"])
        assert args.report == "feuille_caisse"
        assert args.template is None
        assert args.format == ["pdf"]
        assert args.output_dir == "output"
        assert not args.sort_solde_first
        assert not args.skip_qa
        assert args.opening_balance == 0

    def test_export_all_flags(self, parser):
        args = parser.parse_args([
            "export", "--report", "sommaire", "--data", "rows.xlsx",
            "--format", "pdf", "excel", "word", "--title", "Sommaire",
            "--subtitle", "Octobre 2025", "--settings", "s.yaml", "-o", "out",
            "--sort-solde-first", "--skip-qa", "--force", "-v",
        ])
        assert args.format == ["pdf", "excel", "word"]
        assert args.settings == "s.yaml"
        assert args.sort_solde_first and args.skip_qa and args.force and args.verbose

    def test_report_and_template_exclusive(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["export", "--data", "x.csv", "--report", "sommaire",
                               "--template", "t.yaml"])

    def test_unsupported_format_rejected(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["export", "--data", "x.csv", "--format", "csv"])

    def test_data_required(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["export"])

    def test_command_required(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args([])


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------

class TestLoadTemplate:
    def test_builtin(self):
        args = argparse.Namespace(template=None, report="sommaire")
        assert _load_template(args) is SOMMAIRE_TEMPLATE

    def test_yaml(self, tmp_path):
        path = tmp_path / "custom.yaml"
        tpl = clone_template(SOMMAIRE_TEMPLATE, name="Sommaire annuel")
        save_template(tpl, path)
        args = argparse.Namespace(template=str(path), report=None)
        assert _load_template(args) == tpl

    def test_missing_file(self, tmp_path, capsys):
        args = argparse.Namespace(template=str(tmp_path / "nope.yaml"), report=None)
        with pytest.raises(SystemExit) as exc_info:
            _load_template(args)
        assert exc_info.value.code == 1
        assert "Template file not found" in capsys.readouterr().err


class TestLoadSettings:
    def test_no_settings_uses_defaults_quietly(self, capsys):
        assert _load_settings(argparse.Namespace(settings=None)) is None
        assert capsys.readouterr().err == ""

    def test_missing_file_warns(self, tmp_path, capsys):
        args = argparse.Namespace(settings=str(tmp_path / "none.yaml"))
        assert _load_settings(args) is None
        assert "WARNING" in capsys.readouterr().err

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        save_settings(DEFAULT_REPORT_SETTINGS, path)
        assert _load_settings(argparse.Namespace(settings=str(path))) == DEFAULT_REPORT_SETTINGS


class TestParseAssignment:
    def test_typed_values(self):
        assert _parse_assignment("filigrane_actif=false") == ("filigrane_actif", False)
        assert _parse_assignment("taille_police=11") == ("taille_police", 11)
        assert _parse_assignment("police=times") == ("police", "times")
        assert _parse_assignment("couleur_principale=#112233") == \
            ("couleur_principale", "#112233")

    def test_malformed(self):
        with pytest.raises(SystemExit):
            _parse_assignment("filigrane_actif")


# ---------------------------------------------------------------------------
# export command
# ---------------------------------------------------------------------------

class TestExportCommand:
    def test_writes_each_format(self, tmp_path, data_file):
        out = tmp_path / "out"
        main(["export", "--data", str(data_file), "--title", "Feuille de caisse",
              "--format", "pdf", "excel", "word", "-o", str(out)])
        written = sorted(p.suffix for p in out.iterdir())
        assert written == [".docx", ".pdf", ".xlsx"]

    def test_duplicate_formats_written_once(self, tmp_path, data_file):
        out = tmp_path / "out"
        main(["export", "--data", str(data_file), "--format", "pdf", "pdf",
              "-o", str(out), "--skip-qa"])
        assert len(list(out.iterdir())) == 1

    def test_success_message(self, tmp_path, data_file, capsys):
        main(["export", "--data", str(data_file), "-o", str(tmp_path)])
        err = capsys.readouterr().err
        assert "Export PDF généré avec succès !" in err
        assert "QA PASS" in err

    def test_sort_solde_first(self, tmp_path, data_file):
        with patch("src.cli.ReportExporter") as exporter_cls:
            exporter = exporter_cls.return_value
            exporter.export_report.return_value = MagicMock(
                filename="x.pdf", content=b"%PDF", size=4)
            main(["export", "--data", str(data_file), "-o", str(tmp_path),
                  "--sort-solde-first", "--skip-qa"])
        options = exporter.export_report.call_args[0][1]
        assert options.sort_solde_first is True
        assert options.rows[0]["recette"] is None
        assert options.rows[1]["recette"] == 150000.0

    def test_opening_balance(self, tmp_path, data_file):
        with patch("src.cli.ReportExporter") as exporter_cls:
            exporter = exporter_cls.return_value
            exporter.export_report.return_value = MagicMock(
                filename="x.pdf", content=b"%PDF", size=4)
            main(["export", "--data", str(data_file), "-o", str(tmp_path),
                  "--opening-balance", "30000", "--skip-qa"])
        options = exporter.export_report.call_args[0][1]
        assert options.opening_balance == 30000.0

    def test_custom_template(self, tmp_path, data_file):
        tpl_path = tmp_path / "custom.yaml"
        save_template(clone_template(SOMMAIRE_TEMPLATE, name="Liste"), tpl_path)
        with patch("src.cli.ReportExporter") as exporter_cls:
            exporter = exporter_cls.return_value
            exporter.export_report.return_value = MagicMock(
                filename="x.pdf", content=b"%PDF", size=4)
            main(["export", "--template", str(tpl_path), "--data", str(data_file),
                  "-o", str(tmp_path), "--skip-qa"])
        options = exporter.export_report.call_args[0][1]
        assert options.custom_template.name == "Liste"
        assert options.report_kind == ReportKind.CUSTOM

    def test_qa_failure_blocks_write(self, tmp_path, data_file, qa_fail):
        out = tmp_path / "out"
        with patch("src.cli.ExportValidator") as validator_cls:
            validator_cls.return_value.validate.return_value = qa_fail
            with pytest.raises(SystemExit) as exc_info:
                main(["export", "--data", str(data_file), "-o", str(out)])
        assert exc_info.value.code == 1
        assert not out.exists() or not any(out.iterdir())

    def test_qa_failure_forced(self, tmp_path, data_file, qa_fail):
        out = tmp_path / "out"
        with patch("src.cli.ExportValidator") as validator_cls:
            validator_cls.return_value.validate.return_value = qa_fail
            main(["export", "--data", str(data_file), "-o", str(out), "--force"])
        assert len(list(out.iterdir())) == 1

    def test_missing_data_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["export", "--data", str(tmp_path / "none.csv"), "-o", str(tmp_path)])
        assert "Data file not found" in capsys.readouterr().err

    def test_invalid_settings_file(self, tmp_path, data_file, capsys):
        settings = tmp_path / "settings.yaml"
        settings.write_text("couleur_fond: '#fff'\n", encoding="utf-8")
        with pytest.raises(SystemExit):
            main(["export", "--data", str(data_file), "--settings", str(settings),
                  "-o", str(tmp_path)])
        assert "couleur_fond" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# inspect / settings / words
# ---------------------------------------------------------------------------

class TestInspectCommand:
    def test_summary(self, capsys):
        main(["inspect", "--report", "sommaire"])
        out = capsys.readouterr().out
        assert "Sommaire Mensuel" in out
        assert "recettes, depenses" in out

    def test_balance_shown(self, capsys):
        main(["inspect", "--report", "feuille_caisse"])
        assert "Balance:     recette - depense -> solde" in capsys.readouterr().out

    def test_verbose_lists_columns(self, capsys):
        main(["inspect", "--report", "programmation", "-v"])
        assert "montant_prevu" in capsys.readouterr().out

    def test_save(self, tmp_path):
        path = tmp_path / "feuille.yaml"
        main(["inspect", "--save", str(path)])
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["id"] == "feuille_caisse"


class TestSettingsCommand:
    def test_show_defaults(self, capsys):
        main(["settings", "show"])
        shown = yaml.safe_load(capsys.readouterr().out)
        assert shown["watermark_text"] == "DGDA"

    def test_init_and_set(self, tmp_path):
        path = tmp_path / "settings.yaml"
        main(["settings", "init", "--settings", str(path)])
        assert load_settings(path) == DEFAULT_REPORT_SETTINGS
        main(["settings", "set", "--settings", str(path), "filigrane_actif=false",
              "police=times"])
        stored = load_settings(path)
        assert stored.filigrane_actif is False
        assert stored.police == "times"

    def test_set_parses_with_options_first(self, parser, tmp_path):
        args = parser.parse_args(["settings", "set", "--settings", str(tmp_path / "s.yaml"),
                                  "filigrane_actif=false", "police=times"])
        assert args.action == "set"
        assert args.assignments == ["filigrane_actif=false", "police=times"]

    def test_set_with_options_last(self, tmp_path):
        path = tmp_path / "settings.yaml"
        main(["settings", "set", "police=courier", "--settings", str(path)])
        assert load_settings(path).police == "courier"

    def test_show_reads_file(self, tmp_path, capsys):
        path = tmp_path / "settings.yaml"
        save_settings(DEFAULT_REPORT_SETTINGS.merged({"filigrane_texte": "COPIE"}), path)
        main(["settings", "show", "--settings", str(path)])
        assert yaml.safe_load(capsys.readouterr().out)["watermark_text"] == "COPIE"

    def test_init_refuses_overwrite(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("police: arial\n", encoding="utf-8")
        with pytest.raises(SystemExit):
            main(["settings", "init", "--settings", str(path)])

    def test_set_unknown_field(self, tmp_path, capsys):
        path = tmp_path / "settings.yaml"
        with pytest.raises(SystemExit):
            main(["settings", "set", "--settings", str(path), "couleur_fond=#fff"])
        assert "couleur_fond" in capsys.readouterr().err

    def test_set_needs_path(self):
        with pytest.raises(SystemExit):
            main(["settings", "set", "police=times"])


class TestWordsCommand:
    def test_amounts(self, capsys):
        main(["words", "1250,50", "4/500/00"])
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "Mille deux cent cinquante francs congolais et cinquante centimes",
            "Quatre mille cinq cents francs congolais",
        ]

    def test_out_of_range(self, capsys):
        with pytest.raises(SystemExit):
            main(["words", "1000000000000"])
        assert "out of range" in capsys.readouterr().err
