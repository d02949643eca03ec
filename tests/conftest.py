from datetime import date
from decimal import Decimal

import pytest
import yaml

from txn_core.models import Transaction


def write_taxonomy(folder, filename, doc):
    """Dump one taxonomy document as YAML into ``folder``."""
    p = folder / filename
    p.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
    return p


def make_txn(
    description: str = "TEST VENDOR",
    amount="-10.00",
    post_date: date = date(2020, 1, 15),
    bank: str = "chase",
    account: str = "checking",
    balance="100.00",
    name=None,
    notes=None,
    tags=None,
) -> Transaction:
    """Helper to create test transactions."""
    return Transaction(
        bank=bank,
        account=account,
        post_date=post_date,
        transaction_date=post_date,
        description=description,
        name=name,
        amount=Decimal(str(amount)),
        balance=Decimal(str(balance)),
        notes=notes,
        tags=set(tags or ()),
    )


@pytest.fixture
def taxonomy_dir(tmp_path):
    root = tmp_path / "taxonomy"
    root.mkdir()
    write_taxonomy(
        root,
        "food.yaml",
        {
            "tags": ["food"],
            "data": [
                {
                    "name": "Jet's Pizza",
                    "match": "jet'?s pizza",
                    "tags": ["delivery", "fast-food"],
                },
                {"name": "Starbucks", "match": "starbucks", "tags": ["coffee"]},
            ],
        },
    )
    write_taxonomy(
        root,
        "travel.yaml",
        {
            "tags": ["travel"],
            "data": [
                {"name": "Uber", "match": "uber", "tags": ["rideshare"]},
                {"name": "Airline", "match": "airlines?"},
            ],
        },
    )
    return root


@pytest.fixture
def sample_txns():
    return [
        make_txn("JETS PIZZA IL 017", "-23.50", date(2020, 1, 3), tags={"food", "delivery"}),
        make_txn("PAYROLL ACME CORP", "2500.00", date(2020, 1, 15), tags={"income"}),
        make_txn("STARBUCKS #123", "-4.75", date(2020, 2, 2), tags={"food", "coffee"}),
        make_txn(
            "DELTA AIRLINES",
            "-420.00",
            date(2020, 3, 1),
            bank="amex",
            account="gold",
            tags={"travel"},
            notes="conference trip",
        ),
        make_txn("ATM FEE", "-0.50", date(2020, 3, 20), tags={"micro"}),
    ]
