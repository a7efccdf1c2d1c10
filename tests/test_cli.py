"""Tests for the ledger CLI."""

import json

import pytest

from kharchaji.ledger.cli import main


@pytest.fixture(autouse=True)
def db_env(monkeypatch, tmp_path):
    monkeypatch.setenv("KHARCHAJI_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.chdir(tmp_path)


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


def test_add_and_list(capsys):
    main(["add", "Milk", "45", "-q", "2L", "--category", "Food", "--date", "2025-01-10"])
    out = capsys.readouterr().out
    assert "Milk (2L) - ₹45.00|CATS:Food" in out

    main(["list", "--date", "2025-01-10", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["name"] == "Milk"
    assert data[0]["categories"] == ["Food"]


def test_add_rejects_invalid_price(capsys):
    with pytest.raises(SystemExit):
        main(["add", "Milk", "abc"])
    assert "valid number" in capsys.readouterr().err


def test_total(capsys):
    main(["add", "Milk", "45", "--date", "2025-01-10"])
    main(["add", "Bread", "20.5", "--date", "2025-01-10"])
    capsys.readouterr()
    main(["total", "--date", "2025-01-10"])
    assert "₹65.50 (2 items)" in capsys.readouterr().out


def test_save(capsys):
    main(["save", "--date", "2025-01-10"])
    assert "Nothing to save." in capsys.readouterr().out

    main(["add", "Milk", "45", "--date", "2025-01-10"])
    main(["save", "--date", "2025-01-10"])
    out = capsys.readouterr().out
    assert "Saved a new snapshot." in out
    assert "Master snapshot updated." in out


def test_classify(capsys):
    main(["classify", "Papa", "Travel", "Food"])
    out = capsys.readouterr().out
    assert "Primary: Papa" in out
    assert "Secondary: Travel" in out
    assert "Tertiary: Food" in out


def test_export_import(capsys, tmp_path):
    main(["add", "Milk", "45", "--date", "2025-01-10"])
    main(["export", str(tmp_path / "b.zip")])
    main(["import", str(tmp_path / "b.zip")])
    assert "Restored 1 expenses and 0 snapshots" in capsys.readouterr().out


def test_categories_rename_and_delete(capsys):
    main(["add", "Milk", "45", "--category", "Food", "--category", "Papa"])
    main(["add", "Bus", "20", "--category", "Travel"])
    capsys.readouterr()

    main(["categories"])
    out = capsys.readouterr().out
    assert "Primary: Papa" in out
    assert "Secondary: Travel" in out
    assert "Tertiary: Food" in out

    main(["rename-category", "Food", "Groceries"])
    assert "Renamed on 1 expenses and 0 snapshots" in capsys.readouterr().out

    main(["delete-category", "Travel"])
    assert "Removed from 1 expenses and 0 snapshots" in capsys.readouterr().out

    main(["categories"])
    out = capsys.readouterr().out
    assert "Tertiary: Groceries" in out
    assert "Secondary: -" in out


def test_import_rejects_invalid_backup(capsys, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("not json", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["import", str(bad)])
    assert exc_info.value.code == 1
    assert "Invalid backup" in capsys.readouterr().err
