"""Tests for the command-line entry point."""

import json

import pytest

from main import main, run_export


@pytest.fixture
def cli(tmp_path):
    """Run main() against a throwaway database."""
    db_path = tmp_path / "composer.db"

    def _run(*argv):
        return main(["--quiet", "--db", str(db_path), *argv])

    return _run


@pytest.fixture
def draft(tmp_path, cli):
    path = tmp_path / "invoice.json"
    assert cli("new", str(path)) == 0
    return path


def test_new_writes_default_draft(draft):
    record = json.loads(draft.read_text(encoding="utf-8"))
    assert record["invoiceNumber"] == "INV-001"
    assert record["items"][0]["unitPrice"] == 1000


def test_totals(cli, draft, capsys):
    capsys.readouterr()
    assert cli("totals", str(draft)) == 0

    out = capsys.readouterr().out
    assert "Subtotal: $1,000.00" in out
    assert "Tax (10%): $100.00" in out
    assert "Total: $1,100.00" in out


def test_export_json_and_html(cli, draft, tmp_path):
    output = tmp_path / "out"
    assert cli("export", str(draft), "--format", "json", "--output", str(output)) == 0
    assert cli("export", str(draft), "--format", "html", "--output", str(output)) == 0

    assert sorted(p.name for p in output.iterdir()) == [
        "invoice-INV-001.html",
        "invoice-draft-INV-001.json",
    ]


def test_export_prints_mailto(cli, draft, tmp_path, capsys):
    capsys.readouterr()
    assert cli("export", str(draft), "--format", "json", "--output", str(tmp_path), "--email") == 0
    assert "mailto:contact@client.com?subject=" in capsys.readouterr().out


def test_run_export_returns_notifications(draft, tmp_path):
    notifications = run_export(str(draft), ["draft", "html"], str(tmp_path))
    assert [n.success for n in notifications] == [True, True]


def test_profile_save_and_apply(cli, draft, tmp_path):
    record = json.loads(draft.read_text(encoding="utf-8"))
    record["companyName"] = "Acme Studio"
    draft.write_text(json.dumps(record), encoding="utf-8")
    assert cli("profile", "save", str(draft)) == 0

    other = tmp_path / "other.json"
    assert cli("new", str(other), "--with-profile") == 0
    assert json.loads(other.read_text(encoding="utf-8"))["companyName"] == "Acme Studio"

    assert cli("profile", "clear") == 0
    assert cli("profile", "load", str(other)) == 1


def test_templates(cli, draft, tmp_path, capsys):
    capsys.readouterr()
    assert cli("template", "save", str(draft), "--name", "Retainer") == 0
    template_id = capsys.readouterr().out.strip().split()[-1]

    assert cli("template", "list") == 0
    assert "Retainer" in capsys.readouterr().out

    target = tmp_path / "from-template.json"
    assert cli("template", "load", template_id, str(target)) == 0
    assert json.loads(target.read_text(encoding="utf-8"))["invoiceNumber"] == "INV-001"

    assert cli("template", "load", "missing", str(target)) == 1
    assert cli("template", "delete", template_id) == 0


def test_errors_return_exit_code_one(cli, tmp_path):
    assert cli("totals", str(tmp_path / "missing.json")) == 1
    assert cli("profile", "save") == 1
