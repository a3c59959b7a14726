from core.metrics_merchants import compute_all_merchants


def test_no_datasets(storage):
    assert compute_all_merchants(storage) == []


def test_entries_per_merchant_and_panel(storage, add_dataset):
    deposit = add_dataset(
        [
            {"Merchant Name": "Acme", "Date": "2024-01-01", "Deposit Amount": 100, "Deposit Fees": 1, "Withdrawal Amount": 999},
            {"Merchant Name": "Acme", "Date": "2024-03-01", "Deposit Amount": 50, "Deposit Fees": 1},
            {"Merchant Name": "Beta", "Date": "2024-01-01", "Deposit Amount": 10},
        ],
        panel_type="Deposit",
    )
    withdrawal = add_dataset(
        [{"Merchant Name": "Acme", "Date": "2024-01-01", "Withdrawal Amount": 40, "Withdrawal Fees": 2}],
        panel_type="Withdrawal",
    )

    entries = compute_all_merchants(storage)

    assert [(e["Merchant"], e["Type"]) for e in entries] == [("Acme", "Deposit"), ("Beta", "Deposit"), ("Acme", "Withdrawal")]
    acme_deposit = entries[0]
    assert acme_deposit["TotalAmount"] == 150.0
    assert acme_deposit["TotalFees"] == 2.0
    assert acme_deposit["TransactionCount"] == 2
    assert acme_deposit["LastUpdated"] == deposit.created_at
    assert entries[2]["TotalAmount"] == 40.0
    assert entries[2]["LastUpdated"] == withdrawal.created_at
