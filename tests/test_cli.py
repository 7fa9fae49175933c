"""End-to-end tests for CLI commands."""

import json

import pytest
from parkledger.cli.main import cli
from parkledger.domain.chart import DEFAULT_CHART


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "--log-level", "ERROR", *args]
    )


@pytest.fixture
def initialized(cli_runner, temp_db):
    """Database with the default chart created through the CLI."""
    result = _invoke(cli_runner, temp_db, "init-accounts")
    assert result.exit_code == 0
    return temp_db


@pytest.fixture
def march_activity(cli_runner, initialized):
    """One income and one expense in March 2025."""
    result = _invoke(
        cli_runner, initialized,
        "transaction", "add", "income", "1000",
        "--category", "401.01", "--date", "2025-03-15", "--description", "Renta de cancha",
    )
    assert result.exit_code == 0
    result = _invoke(
        cli_runner, initialized,
        "transaction", "add", "expense", "250",
        "--category", "501.01", "--date", "2025-03-16",
    )
    assert result.exit_code == 0
    return initialized


def test_help_without_database(cli_runner):
    """Test that help does not need a database."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Municipal parks accounting ledger" in result.output


class TestInitAccounts:
    """Tests for init-accounts."""

    def test_init_accounts(self, cli_runner, temp_db):
        """Test seeding the default chart once."""
        result = _invoke(cli_runner, temp_db, "init-accounts")
        assert result.exit_code == 0
        assert f"Successfully created {len(DEFAULT_CHART)} accounts." in result.output

        result = _invoke(cli_runner, temp_db, "init-accounts")
        assert result.exit_code == 0
        assert "Accounts already exist. Nothing to do." in result.output


class TestAccountCommands:
    """Tests for account commands."""

    def test_list_and_tree(self, cli_runner, initialized):
        """Test listing the chart flat and as a tree."""
        result = _invoke(cli_runner, initialized, "account", "list")
        assert result.exit_code == 0
        assert "101.01" in result.output
        assert "Caja y efectivo" in result.output

        result = _invoke(cli_runner, initialized, "account", "tree")
        assert result.exit_code == 0
        assert "    101.01 Caja y efectivo [debit]" in result.output

    def test_list_json(self, cli_runner, initialized):
        """Test JSON output of the account list."""
        result = _invoke(cli_runner, initialized, "account", "list", "--json")
        assert result.exit_code == 0
        accounts = json.loads(result.output)
        assert len(accounts) == len(DEFAULT_CHART)
        assert accounts[0]["code"] == "100"
        assert accounts[0]["nature"] == "debit"

    def test_create_under_parent(self, cli_runner, initialized):
        """Test creating an account that inherits its parent's nature."""
        result = _invoke(
            cli_runner, initialized, "account", "create", "401.04", "Ingresos por eventos",
            "--parent", "401",
        )
        assert result.exit_code == 0
        assert "Created account 401.04 'Ingresos por eventos'" in result.output

        result = _invoke(cli_runner, initialized, "account", "path", "401.04")
        assert result.exit_code == 0
        assert "400 Ingresos > 401 Ingresos operacionales > 401.04 Ingresos por eventos" in result.output

    def test_create_root_requires_nature(self, cli_runner, initialized):
        """Test that roots need an explicit nature."""
        result = _invoke(cli_runner, initialized, "account", "create", "600", "Cuentas de orden")
        assert result.exit_code == 1
        assert "--nature is required" in result.output

    def test_create_duplicate_code(self, cli_runner, initialized):
        """Test that duplicate codes are reported."""
        result = _invoke(
            cli_runner, initialized, "account", "create", "101.01", "Otra caja", "--parent", "101"
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_deactivate_blocked_by_children(self, cli_runner, initialized):
        """Test that a group with active children stays active."""
        result = _invoke(cli_runner, initialized, "account", "deactivate", "101")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_deactivate_and_reactivate_leaf(self, cli_runner, initialized):
        """Test the soft-delete round trip of a leaf."""
        result = _invoke(cli_runner, initialized, "account", "deactivate", "502.02")
        assert result.exit_code == 0
        assert "Deactivated account 502.02 'Honorarios'" in result.output

        result = _invoke(cli_runner, initialized, "account", "list")
        assert "502.02" not in result.output

        result = _invoke(cli_runner, initialized, "account", "reactivate", "502.02")
        assert result.exit_code == 0

    def test_unknown_account(self, cli_runner, initialized):
        """Test resolving an account that does not exist."""
        result = _invoke(cli_runner, initialized, "account", "rename", "999.99", "Nada")
        assert result.exit_code == 1
        assert "Account '999.99' not found" in result.output


class TestTransactionCommands:
    """Tests for transaction commands."""

    def test_add_generates_entry(self, cli_runner, initialized):
        """Test that adding a transaction books its journal entry."""
        result = _invoke(
            cli_runner, initialized,
            "transaction", "add", "income", "1,000.00",
            "--category", "401.01", "--date", "2025-03-15",
        )
        assert result.exit_code == 0
        assert "Recorded income transaction 1 for 1000.00" in result.output
        assert "Journal entry AST-2025-03-0001 (posted)" in result.output

    def test_add_with_wrong_category_type(self, cli_runner, initialized):
        """Test that an income cannot be booked against an expense category."""
        result = _invoke(
            cli_runner, initialized,
            "transaction", "add", "income", "10", "--category", "501.01", "--date", "2025-03-15",
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_add_invalid_amount(self, cli_runner, initialized):
        """Test amount parsing errors."""
        result = _invoke(
            cli_runner, initialized,
            "transaction", "add", "income", "abc", "--category", "401.01",
        )
        assert result.exit_code == 1
        assert "Invalid amount format" in result.output

    def test_add_invalid_date(self, cli_runner, initialized):
        """Test date parsing errors."""
        result = _invoke(
            cli_runner, initialized,
            "transaction", "add", "income", "10", "--category", "401.01", "--date", "2025-02-30",
        )
        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_list_and_delete(self, cli_runner, march_activity):
        """Test listing transactions and deleting one while keeping its entry."""
        result = _invoke(cli_runner, march_activity, "transaction", "list", "--type", "expense")
        assert result.exit_code == 0
        assert "250.00" in result.output
        assert "1000.00" not in result.output

        result = _invoke(cli_runner, march_activity, "transaction", "delete", "2", "--yes")
        assert result.exit_code == 0
        assert "Deleted transaction 2" in result.output
        assert "Journal entry 2 was kept" in result.output

        result = _invoke(cli_runner, march_activity, "journal", "show", "2")
        assert result.exit_code == 0
        assert "AST-2025-03-0002" in result.output

    def test_update_frozen_amount(self, cli_runner, march_activity):
        """Test that a booked amount cannot change."""
        result = _invoke(cli_runner, march_activity, "transaction", "update", "1", "--amount", "5")
        assert result.exit_code == 1
        assert "Error:" in result.output

        result = _invoke(
            cli_runner, march_activity, "transaction", "update", "1", "--description", "Torneo"
        )
        assert result.exit_code == 0
        assert "Updated transaction 1" in result.output


class TestJournalCommands:
    """Tests for journal commands."""

    def test_stats_and_sync(self, cli_runner, march_activity):
        """Test integration stats and an idle catch-up run."""
        result = _invoke(cli_runner, march_activity, "journal", "stats", "--json")
        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["income"] == {"total": 1, "linked": 1}
        assert stats["expense"] == {"total": 1, "linked": 1}
        assert stats["entries"] == {"total": 2, "automatic": 2}
        assert stats["pending"] == 0

        result = _invoke(cli_runner, march_activity, "journal", "sync")
        assert result.exit_code == 0
        assert "Processed 0 transactions: 0 succeeded, 0 failed" in result.output

    def test_show_json(self, cli_runner, march_activity):
        """Test JSON output of an automatic entry."""
        result = _invoke(cli_runner, march_activity, "journal", "show", "1", "--json")
        assert result.exit_code == 0
        entry = json.loads(result.output)
        assert entry["entryNumber"] == "AST-2025-03-0001"
        assert entry["status"] == "posted"
        assert entry["totalDebit"] == "1000.00"
        assert [line["debit"] for line in entry["lines"]] == ["1000.00", "0.00"]

    def test_show_missing_entry(self, cli_runner, initialized):
        """Test showing an unknown entry."""
        result = _invoke(cli_runner, initialized, "journal", "show", "99")
        assert result.exit_code == 1
        assert "Journal entry 99 not found" in result.output

    def test_manual_entry_lifecycle(self, cli_runner, initialized):
        """Test create, approve, post and reverse of a manual entry."""
        result = _invoke(
            cli_runner, initialized,
            "journal", "create", "--date", "2025-04-01", "--description", "Aportación inicial",
            "--line", "101.02:5000:0", "--line", "301.01:0:5000",
        )
        assert result.exit_code == 0
        assert "Created draft entry AST-2025-04-0001 (ID: 1)" in result.output

        result = _invoke(cli_runner, initialized, "journal", "post", "1")
        assert result.exit_code == 1

        result = _invoke(cli_runner, initialized, "journal", "approve", "1")
        assert result.exit_code == 0
        result = _invoke(cli_runner, initialized, "journal", "post", "1")
        assert result.exit_code == 0
        assert "Entry AST-2025-04-0001 posted" in result.output

        result = _invoke(cli_runner, initialized, "journal", "reverse", "1", "--date", "2025-04-30")
        assert result.exit_code == 0
        assert "Created reversal AST-2025-04-0002" in result.output

    def test_unbalanced_manual_entry(self, cli_runner, initialized):
        """Test that unbalanced lines are rejected."""
        result = _invoke(
            cli_runner, initialized,
            "journal", "create", "--date", "2025-04-01", "--description", "Descuadre",
            "--line", "101.02:100:0", "--line", "301.01:0:90",
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_malformed_line(self, cli_runner, initialized):
        """Test the ACCOUNT:DEBIT:CREDIT format check."""
        result = _invoke(
            cli_runner, initialized,
            "journal", "create", "--description", "Mal", "--line", "101.02:100",
        )
        assert result.exit_code == 1
        assert "expected ACCOUNT:DEBIT:CREDIT" in result.output


class TestReportCommands:
    """Tests for report commands."""

    def test_trial_balance_json(self, cli_runner, march_activity):
        """Test the trial balance of the activity month."""
        result = _invoke(cli_runner, march_activity, "report", "trial-balance", "2025-03", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["period"] == "2025-03"
        assert data["totalDebits"] == "1250.00"
        assert data["totalCredits"] == "1250.00"
        assert data["isBalanced"] is True
        cash = next(row for row in data["rows"] if row["code"] == "101.01")
        assert cash["endingBalance"] == "750.00"
        assert cash["balanceType"] == "debit"

    def test_trial_balance_invalid_period(self, cli_runner, initialized):
        """Test period validation."""
        result = _invoke(cli_runner, initialized, "report", "trial-balance", "2025-13")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_trial_balance_snapshot(self, cli_runner, march_activity):
        """Test the table output with a cache snapshot."""
        result = _invoke(cli_runner, march_activity, "report", "trial-balance", "2025-03", "--snapshot")
        assert result.exit_code == 0
        assert "Trial balance 2025-03 (2025-03-01 to 2025-03-31)" in result.output
        assert "Warning" not in result.output

    def test_balance_sheet(self, cli_runner, march_activity):
        """Test that the balance sheet balances with the unclosed result."""
        result = _invoke(
            cli_runner, march_activity, "report", "balance-sheet", "--date", "2025-03-31", "--json"
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["assets"]["total"] == "750.00"
        assert data["unclosedResult"] == "750.00"
        assert data["difference"] == "0.00"

    def test_income_statement(self, cli_runner, march_activity):
        """Test the net income of the activity."""
        result = _invoke(
            cli_runner, march_activity, "report", "income-statement", "--date", "2025-03-31"
        )
        assert result.exit_code == 0
        assert "Net income: 750.00" in result.output

    def test_account_ledger(self, cli_runner, march_activity):
        """Test the running balance of the cash account."""
        result = _invoke(cli_runner, march_activity, "report", "ledger", "101.01")
        assert result.exit_code == 0
        assert "AST-2025-03-0001" in result.output
        assert "AST-2025-03-0002" in result.output
        assert "750.00" in result.output


class TestBudgetCommands:
    """Tests for budget commands."""

    def test_import_show_export(self, cli_runner, initialized, tmp_path):
        """Test a CSV file through import, show and export."""
        csv_file = tmp_path / "presupuesto.csv"
        csv_file.write_text(
            "categoria,tipo,enero,febrero\n"
            "Ingresos por servicios,ingreso,1000,1000\n"
            "Honorarios,gasto,300,\n",
            encoding="utf-8",
        )

        result = _invoke(cli_runner, initialized, "budget", "import", "2025", str(csv_file))
        assert result.exit_code == 0
        assert "Imported 2 budget rows for 2025" in result.output

        result = _invoke(cli_runner, initialized, "budget", "show", "2025", "--json")
        assert result.exit_code == 0
        matrix = json.loads(result.output)
        assert matrix["yearlyTotals"] == {"income": "2000.00", "expense": "300.00", "net": "1700.00"}

        output = tmp_path / "export.csv"
        result = _invoke(cli_runner, initialized, "budget", "export", "2025", "-o", str(output))
        assert result.exit_code == 0
        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("categoria,tipo,enero")
        assert lines[-1].startswith("Flujo neto,total,700.00,1000.00")

    def test_import_rejects_bad_file(self, cli_runner, initialized, tmp_path):
        """Test that row errors are listed and nothing is stored."""
        csv_file = tmp_path / "malo.csv"
        csv_file.write_text(
            "categoria,tipo,enero\nHonorarios,gasto,abc\nJardinería,gasto,5\n",
            encoding="utf-8",
        )

        result = _invoke(cli_runner, initialized, "budget", "import", "2025", str(csv_file))
        assert result.exit_code == 1
        assert "Row 2" in result.output
        assert "Row 3" in result.output

        result = _invoke(cli_runner, initialized, "budget", "show", "2025", "--json")
        assert json.loads(result.output)["yearlyTotals"]["expense"] == "0.00"

    def test_import_rejects_undecodable_file(self, cli_runner, initialized, tmp_path):
        """Test that a file that is not UTF-8 is reported as an error."""
        csv_file = tmp_path / "latin1.csv"
        csv_file.write_bytes(b"categoria,tipo,enero\nJardiner\xeda,gasto,5\n")

        result = _invoke(cli_runner, initialized, "budget", "import", "2025", str(csv_file))
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "unexpected failure" not in result.output


class TestCashflowCommands:
    """Tests for cashflow commands."""

    def test_show_json(self, cli_runner, march_activity):
        """Test the realized matrix."""
        result = _invoke(cli_runner, march_activity, "cashflow", "show", "2025", "--json")
        assert result.exit_code == 0
        matrix = json.loads(result.output)
        assert matrix["monthlyTotals"]["net"][2] == "750.00"
        assert [row["code"] for row in matrix["categories"]] == ["401.01", "501.01"]

    def test_compare(self, cli_runner, march_activity):
        """Test variance output without a budget."""
        result = _invoke(cli_runner, march_activity, "cashflow", "compare", "2025", "--json")
        assert result.exit_code == 0
        rows = {row["name"]: row for row in json.loads(result.output)}
        assert rows["Ingresos por servicios"]["actualTotal"] == "1000.00"
        assert rows["Ingresos por servicios"]["percentage"] is None

    def test_alerts_none(self, cli_runner, march_activity):
        """Test that a first month of activity raises no alert."""
        result = _invoke(cli_runner, march_activity, "cashflow", "alerts", "2025", "--as-of", "2025-03-31")
        assert result.exit_code == 0
        assert "No alerts." in result.output
