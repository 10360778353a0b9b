"""CLI tests with typer's CliRunner against a temporary data file."""

import json

import pytest
from typer.testing import CliRunner

from invoice_desk.cli import app

runner = CliRunner()


@pytest.fixture
def data(tmp_path):
    return tmp_path / "invoices.json"


@pytest.fixture
def draft(tmp_path):
    path = tmp_path / "draft.json"
    path.write_text(
        json.dumps(
            {
                "client_name": "Acme Studio",
                "client_email": "billing@acme.io",
                "tax_rate": 18,
                "items": [{"description": "Design", "quantity": 2, "rate": 500}],
            }
        ),
        encoding="utf-8",
    )
    return path


def invoke(*args):
    return runner.invoke(app, [str(a) for a in args])


def test_create_send_pay_and_stats(data, draft):
    result = invoke("create", "--input", draft, "--data", data)
    assert result.exit_code == 0, result.output
    assert "Created INV-" in result.output
    assert "1,180.00" in result.output

    result = invoke("send", "1", "--data", data)
    assert result.exit_code == 0
    assert "is now sent" in result.output

    result = invoke("pay", "1", "--data", data)
    assert result.exit_code == 0
    assert "is now paid" in result.output

    result = invoke("stats", "--data", data)
    assert result.exit_code == 0
    assert "Total invoices:   1" in result.output
    assert "Pending payments: 0" in result.output
    assert "1,180.00" in result.output


def test_invalid_draft_exits_with_errors(data, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"client_email": "foo", "items": [{"description": ""}]}), encoding="utf-8")

    result = invoke("create", "--input", bad, "--data", data)
    assert result.exit_code == 1
    assert "client_name" in result.output
    assert not data.exists()


def test_invoice_number_cannot_be_supplied(data, tmp_path):
    draft = tmp_path / "numbered.json"
    draft.write_text(json.dumps({"invoice_number": "X-1"}), encoding="utf-8")

    result = invoke("create", "--input", draft, "--data", data)
    assert result.exit_code == 1


def test_show_lists_items_and_next_action(data, draft):
    invoke("create", "--input", draft, "--data", data)

    result = invoke("show", "1", "--data", data)
    assert result.exit_code == 0
    assert "Design" in result.output
    assert "Mark as Sent" in result.output


def test_list_and_delete(data, draft):
    invoke("create", "--input", draft, "--data", data)
    invoke("create", "--input", draft, "--data", data)

    result = invoke("list", "--data", data)
    assert result.exit_code == 0
    assert "2 invoice(s)" in result.output

    assert invoke("delete", "1", "--data", data).exit_code == 0
    assert "1 invoice(s)" in invoke("list", "--data", data).output


def test_paying_a_draft_fails(data, draft):
    invoke("create", "--input", draft, "--data", data)
    result = invoke("pay", "1", "--data", data)
    assert result.exit_code == 1
    assert "Cannot" in result.output


def test_missing_invoice(data):
    assert invoke("show", "9", "--data", data).exit_code == 1
    assert invoke("delete", "9", "--data", data).exit_code == 1


def test_malformed_json_fails_cleanly(data, tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text('{"client_name": ', encoding="utf-8")

    result = invoke("create", "--input", broken, "--data", data)
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid JSON" in result.output


def test_unparseable_date_fails_cleanly(data, tmp_path):
    draft = tmp_path / "bad_date.json"
    draft.write_text(json.dumps({"client_name": "Acme Studio", "issue_date": "tomorrow"}), encoding="utf-8")

    result = invoke("create", "--input", draft, "--data", data)
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "issue_date" in result.output
    assert not data.exists()


def test_negative_quantity_is_reported(data, tmp_path):
    draft = tmp_path / "negative.json"
    draft.write_text(
        json.dumps(
            {
                "client_name": "Acme Studio",
                "client_email": "billing@acme.io",
                "items": [{"description": "Design", "quantity": -1, "rate": 500}],
            }
        ),
        encoding="utf-8",
    )

    result = invoke("create", "--input", draft, "--data", data)
    assert result.exit_code == 1
    assert "item-0-quantity" in result.output
