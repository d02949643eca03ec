"""Tabular view of transactions for downstream statistics and plotting."""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from txn_core.models import FIELDS, Transaction


def to_dataframe(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = []
    for t in transactions:
        row = t.to_mapping()
        row["tags"] = ",".join(row["tags"])
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(FIELDS))
    df["post_date"] = pd.to_datetime(df["post_date"])
    df["transaction_date"] = pd.to_datetime(df["transaction_date"])
    df["amount"] = pd.to_numeric(df["amount"])
    df["balance"] = pd.to_numeric(df["balance"])
    return df
