"""End-to-end tests for the sortit CLI."""

import pytest

from sortit.cli.main import cli


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database."""

    def _run(*args, input=None):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], input=input)

    return _run


@pytest.fixture
def seeded(run):
    """An account, two categories and two Uber rides."""
    assert run("account", "create", "Checking", "--bank", "Chase").exit_code == 0
    assert run("category", "create", "Transportation").exit_code == 0
    assert run("category", "create", "Shopping > Household").exit_code == 0
    for provider_id in ("p-1", "p-2"):
        result = run(
            "add",
            "--account", "Checking",
            "--date", "2024-03-01",
            "--amount", "-23.40",
            "--description", "UBER TRIP",
            "--provider-id", provider_id,
        )
        assert result.exit_code == 0, result.output
    return run


def test_help_needs_no_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Transaction categorization engine" in result.output


def test_account_create_and_list(run):
    result = run("account", "create", "Checking", "--bank", "Chase")
    assert result.exit_code == 0
    assert "Created account 'Checking'" in result.output

    result = run("account", "list")
    assert "Checking" in result.output
    assert "Chase" in result.output


def test_duplicate_account_fails(run):
    run("account", "create", "Checking")
    result = run("account", "create", "Checking")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_category_tree(run):
    run("category", "create", "Food & Dining > Coffee")
    result = run("category", "list")

    assert "Food & Dining" in result.output
    assert "  Coffee" in result.output


def test_add_and_view(seeded):
    result = seeded("view")

    assert result.exit_code == 0
    assert "Found 2 transaction(s)" in result.output
    assert "UBER TRIP" in result.output
    assert "-$23.40" in result.output


def test_add_rejects_bad_amount(seeded):
    result = seeded("add", "--account", "Checking", "--date", "today", "--amount", "lots")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_add_unknown_account(run):
    result = run("add", "--account", "Nope", "--date", "today", "--amount", "-1")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_rule_then_categorize(seeded, temp_db):
    result = seeded("rule", "add", "Uber", "--category", "Transportation", "--contains", "uber")
    assert result.exit_code == 0, result.output

    result = seeded("categorize", "run")
    assert result.exit_code == 0, result.output
    assert "By rule: 2" in result.output

    result = seeded("show", "1")
    assert "Category: Transportation" in result.output
    assert "Source: rule" in result.output

    temp_db.disconnect()
    assert temp_db.get_transaction(2).applied_rule_id == 1


def test_rule_test_reports_match(seeded):
    seeded("rule", "add", "Uber", "--category", "Transportation", "--contains", "uber")

    result = seeded("rule", "test", "1")

    assert "'Uber' matches" in result.output
    assert "Transportation" in result.output


def test_override_locks(seeded, temp_db):
    result = seeded("override", "1", "Shopping > Household", "--no-learn")

    assert result.exit_code == 0, result.output
    assert "locked" in result.output
    temp_db.disconnect()
    txn = temp_db.get_transaction(1)
    assert txn.category_locked is True
    assert txn.category_source == "manual"


def test_override_unknown_category(seeded):
    result = seeded("override", "1", "Nowhere")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_bulk_assign_and_undo(seeded, temp_db):
    result = seeded("bulk", "assign", "Transportation", "1", "2")
    assert "Updated: 2" in result.output
    assert "Batch: 1" in result.output

    assert "bulk_edit" in seeded("batch", "list").output

    result = seeded("batch", "undo", "1", "--yes")
    assert result.exit_code == 0, result.output
    assert "2 reverted" in result.output

    temp_db.disconnect()
    assert temp_db.get_transaction(1).category_id is None

    result = seeded("batch", "undo", "1", "--yes")
    assert result.exit_code == 1


def test_rule_apply_and_batch_undo(seeded, temp_db):
    seeded("rule", "add", "Uber", "--category", "Transportation", "--contains", "uber")

    preview = seeded("rule", "preview", "1")
    assert "Would change: 2" in preview.output

    result = seeded("rule", "apply", "1", "--yes")
    assert result.exit_code == 0, result.output
    assert "Applied to 2 transaction(s)" in result.output

    result = seeded("batch", "undo", "1", "--yes")
    assert "2 reverted" in result.output
    temp_db.disconnect()
    assert temp_db.get_transaction(2).category_id is None


def test_rule_apply_cancelled(seeded):
    seeded("rule", "add", "Uber", "--category", "Transportation", "--contains", "uber")

    result = seeded("rule", "apply", "1", input="n\n")

    assert "Cancelled." in result.output
    assert "No batches found." in seeded("batch", "list").output


def test_split_and_children(seeded):
    result = seeded(
        "split", "1",
        "--item", "20.00:Transportation",
        "--item", "3.40:Shopping > Household:Snacks",
    )
    assert result.exit_code == 0, result.output
    assert "into 2" in result.output

    result = seeded("children", "1")
    assert "Transportation" in result.output
    assert "Household" in result.output


def test_split_must_sum(seeded):
    result = seeded("split", "1", "--item", "20.00:Transportation")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_cashflow_and_review(seeded):
    result = seeded("cashflow")
    assert result.exit_code == 0, result.output
    assert "46.80" in result.output

    result = seeded("review", "list")
    assert result.exit_code == 0, result.output
    assert "uncategorized" in result.output


def test_audit_history(seeded):
    seeded("override", "1", "Transportation", "--no-learn")

    result = seeded("audit", "history", "1")

    assert result.exit_code == 0, result.output
    assert "manual" in result.output
    assert "Transportation" in result.output


def test_period_conflicts_with_dates(seeded):
    result = seeded("view", "--period", "this-month", "--from", "2024-01-01")

    assert result.exit_code == 1
    assert "cannot be combined" in result.output
