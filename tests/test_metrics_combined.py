from core.export import generate_report
from core.filters import ReportFilters
from core.metrics_combined import compute_combined_summary


def _setup(storage, add_dataset, tmp_path):
    add_dataset(
        [
            {"Merchant Name": "Acme", "Date": "2024-01-05", "Deposit Amount": 100, "Deposit Fees": 1},
            {"Merchant Name": "Beta", "Date": "2024-01-06", "Deposit Amount": 40},
        ],
        panel_type="Deposit",
    )
    add_dataset(
        [{"Merchant Name": "Acme", "Date": "2024-01-05", "Withdrawal Amount": 200, "Withdrawal Fees": 2}],
        panel_type="Withdrawal",
    )
    generate_report(storage, ReportFilters("Deposit", "2024-01-01", "2024-01-31", {"Acme": 10.0}), tmp_path)
    generate_report(storage, ReportFilters("Withdrawal", "2024-01-01", "2024-01-31", {"Acme": 5.0}), tmp_path)


def test_empty_store(storage):
    payload = compute_combined_summary(storage)
    assert payload["merchants"] == []
    assert payload["chart"] is None
    assert payload["totals"] == {"totalDeposits": 0.0, "totalWithdrawals": 0.0, "totalCalculated": 0.0}


def test_combined_totals_and_calculated_amounts(storage, add_dataset, tmp_path):
    _setup(storage, add_dataset, tmp_path)
    payload = compute_combined_summary(storage)

    assert payload["totals"] == {"totalDeposits": 100.0, "totalWithdrawals": 200.0, "totalCalculated": 20.0}
    assert payload["stats"] == {"totalMerchants": 3, "reportsGenerated": 2, "depositMerchants": 2, "withdrawalMerchants": 1}

    by_key = {(m["Merchant"], m["Type"]): m for m in payload["merchants"]}
    assert by_key[("Acme", "Deposit")]["CalculatedAmount"] == 10.0
    assert by_key[("Acme", "Deposit")]["Percentage"] == 10.0
    assert by_key[("Acme", "Deposit")]["Status"] == "Processed"
    assert by_key[("Acme", "Withdrawal")]["CalculatedAmount"] == 10.0
    assert by_key[("Acme", "Withdrawal")]["Percentage"] == 5.0
    assert by_key[("Beta", "Deposit")]["Status"] == "Available"
    mark = payload["chart"]["mark"]
    assert mark == "bar" or mark.get("type") == "bar"


def test_latest_report_wins(storage, add_dataset, tmp_path):
    _setup(storage, add_dataset, tmp_path)
    generate_report(storage, ReportFilters("Deposit", "2024-01-01", "2024-01-31", {"Acme": 20.0}), tmp_path)

    by_key = {(m["Merchant"], m["Type"]): m for m in compute_combined_summary(storage)["merchants"]}
    assert by_key[("Acme", "Deposit")]["CalculatedAmount"] == 20.0
    assert by_key[("Acme", "Deposit")]["Percentage"] == 20.0


def test_search_and_type_filter(storage, add_dataset, tmp_path):
    _setup(storage, add_dataset, tmp_path)

    found = compute_combined_summary(storage, search="acm", type_filter="Withdrawal")["merchants"]
    assert [(m["Merchant"], m["Type"]) for m in found] == [("Acme", "Withdrawal")]

    found = compute_combined_summary(storage, search="BETA")["merchants"]
    assert [m["Merchant"] for m in found] == ["Beta"]
    # stats describe the unfiltered set
    assert compute_combined_summary(storage, search="zzz")["stats"]["totalMerchants"] == 3
