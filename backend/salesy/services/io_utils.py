from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional

import pandas as pd


def prefer_parquet(
    csv_path: str | Path,
    parquet_path: Optional[str | Path] = None,
    *,
    columns: Optional[Iterable[str]] = None,
    dtype: Optional[Dict[str, Any]] = None,
    **csv_kwargs: Any,
) -> pd.DataFrame:
    """Load a table preferring Parquet with CSV fallback.

    Parameters
    ----------
    csv_path:
        Location of the canonical CSV file.
    parquet_path:
        Optional explicit Parquet path. When omitted we look for ``<csv>.parquet``.
    columns:
        Optional list/iterable of columns to read. Forwarded to the Parquet
        reader when available and mapped to ``usecols`` for CSV reads.
    dtype:
        Optional dtype mapping applied to the CSV fallback.
    csv_kwargs:
        Additional keyword arguments forwarded to :func:`pandas.read_csv`.
    """

    csv_path = Path(csv_path)
    pq_path = Path(parquet_path) if parquet_path is not None else csv_path.with_suffix(".parquet")

    column_list = list(columns) if columns is not None else None

    if pq_path.exists():
        frame = pd.read_parquet(pq_path, columns=column_list)
        if dtype:
            frame = frame.astype({key: value for key, value in dtype.items() if key in frame.columns})
        return frame

    if column_list is not None and "usecols" not in csv_kwargs:
        csv_kwargs["usecols"] = column_list

    if dtype is not None and "dtype" not in csv_kwargs:
        csv_kwargs["dtype"] = dtype

    return pd.read_csv(csv_path, **csv_kwargs)


def table_exists(csv_path: str | Path) -> bool:
    path = Path(csv_path)
    return path.exists() or path.with_suffix(".parquet").exists()


def append_jsonl(path: str | Path, payload: Dict[str, Any]) -> None:
    """Append one compact JSON object per line, creating parent folders."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, separators=(",", ":")) + "\n")


def iter_jsonl(path: str | Path) -> Iterator[Dict[str, Any]]:
    """Yield decoded objects from a JSON-lines file, skipping blank or corrupt lines."""

    target = Path(path)
    if not target.exists():
        return
    with target.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue
