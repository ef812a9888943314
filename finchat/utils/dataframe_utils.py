from __future__ import annotations

import io
from typing import Any, Dict, List, Optional

import pandas as pd
from pandas.api.types import is_datetime64_any_dtype, is_numeric_dtype

TABULAR_MEDIA_TYPES = {"text/csv", "text/tab-separated-values"}


def is_tabular(filename: str, media_type: Optional[str] = None) -> bool:
    lower = filename.lower()
    return lower.endswith((".csv", ".tsv")) or (media_type or "") in TABULAR_MEDIA_TYPES


def read_dataframe_from_text(text: str, filename: str) -> pd.DataFrame:
    """Parse CSV/TSV text into a DataFrame with whitespace-stripped column names."""
    sep = "\t" if filename.lower().endswith(".tsv") else ","
    df = pd.read_csv(io.StringIO(text), sep=sep)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def infer_column_kind(series: pd.Series) -> str:
    if is_datetime64_any_dtype(series):
        return "datetime"
    if is_numeric_dtype(series):
        return "numeric"
    # Low-cardinality strings are usually categories (segments, periods)
    unique_count = series.dropna().nunique()
    if unique_count <= max(10, int(0.02 * len(series))):
        return "categorical"
    return "text"


def infer_schema(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {"name": name, "pandas_dtype": str(df[name].dtype), "kind": infer_column_kind(df[name])}
        for name in df.columns
    ]


def preview_dataframe(df: pd.DataFrame, rows: int) -> Dict[str, Any]:
    sample = df.head(rows)
    sample = sample.astype(object).where(sample.notna(), None)
    return {
        "columns": infer_schema(df),
        "rows": sample.to_dict(orient="records"),
        "row_count": int(len(df)),
        "column_count": int(df.shape[1]),
    }
