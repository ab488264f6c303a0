from __future__ import annotations

from enum import Enum
from typing import Any

import pandas as pd


def to_frame(rows: list[Any]) -> pd.DataFrame:
    """Convert decoded rows into a DataFrame.

    Model rows give one column per field; plain strings (line-list
    results) give a single ``value`` column. Enum members are stored by value.
    """
    if not rows:
        return pd.DataFrame()
    if isinstance(rows[0], str):
        return pd.DataFrame({"value": list(rows)})
    records = []
    for row in rows:
        record = row.model_dump()
        for key, value in record.items():
            if isinstance(value, Enum):
                record[key] = value.value
        records.append(record)
    return pd.DataFrame.from_records(records)
