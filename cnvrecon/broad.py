# cnvrecon/broad.py
"""
broad.py — Encode chromosome-arm copy-number scores as loss / gain / neutral

Encoding (per cell, independent of column)
------------------------------------------
  score < 0  -> "loss"
  score > 0  -> "gain"
  score == 0 -> "neutral"
  missing    -> left missing; the reconciliation join decides what it means
A present cell that does not parse as a number aborts the run (NonNumericCellError).

Input shapes
------------
- Keyed by biospecimen:  biospecimen_id (or Kids_First_Biospecimen_ID), [sample_id], 1p, 1q, ...
- Keyed by sample:       sample_id, 1p, 1q, ...   -> biospecimen_id attached via the registry
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from .config import log
from .data_source import KEY, IdentifierRegistry, normalize_columns, require_columns, strip_values
from .errors import NonNumericCellError

LOSS = "loss"
GAIN = "gain"
NEUTRAL = "neutral"

# tokens read_csv treats as missing by default
NA_TOKENS = frozenset({
    "", "#N/A", "#N/A N/A", "#NA", "-1.#IND", "-1.#QNAN", "-NaN", "-nan",
    "1.#IND", "1.#QNAN", "<NA>", "N/A", "NA", "NULL", "NaN", "None", "n/a", "nan", "null",
})


def encode_score(value):
    """Map one signed arm score to its status token; missing stays missing."""
    if value is None or pd.isna(value):
        return np.nan
    v = float(value)
    if v < 0:
        return LOSS
    if v > 0:
        return GAIN
    return NEUTRAL


def _numeric_column(col: pd.Series, table: str, name: str) -> pd.Series:
    if not pd.api.types.is_numeric_dtype(col):
        col = col.astype(object)
        col = col.where(col.isna(), col.astype(str).str.strip())
        col = col.mask(col.isin(NA_TOKENS))
    num = pd.to_numeric(col, errors="coerce")
    bad = num.isna() & col.notna()
    if bad.any():
        raise NonNumericCellError(table, str(name), col[bad].iloc[0])
    return num


def encode_broad(
    matrix: pd.DataFrame,
    id_columns: Iterable[str] = (KEY,),
    table: str = "broad_calls",
) -> pd.DataFrame:
    """
    Return a copy of `matrix` with every non-identifier column encoded.
    Identifier columns pass through untouched and keep their position.
    """
    ids = set(id_columns)
    out = matrix.copy()
    for col in out.columns:
        if col in ids:
            continue
        out[col] = _numeric_column(out[col], table, col).map(encode_score).astype(object)
    return out


def arm_columns(broad: pd.DataFrame, id_columns: Iterable[str] = (KEY,)) -> list:
    ids = set(id_columns)
    return [c for c in broad.columns if c not in ids]


def prepare_broad(
    matrix: pd.DataFrame,
    registry: IdentifierRegistry,
    id_column: str = KEY,
    drop_columns: Sequence[str] = ("sample_id",),
    aliases: Optional[Dict[str, str]] = None,
    table: str = "broad_calls",
) -> pd.DataFrame:
    """
    Normalize a raw broad table to: biospecimen_id, <arm>... (source arm order).

    With id_column="sample_id" the table is keyed by sample and every registry
    biospecimen of that sample receives the sample's arm values.
    """
    df = normalize_columns(matrix, aliases).copy()
    if id_column not in (KEY, "sample_id"):
        raise ValueError(f"id_column must be '{KEY}' or 'sample_id', got {id_column!r}")
    require_columns(df, table, [id_column])

    df[id_column] = strip_values(df[id_column])
    if id_column == KEY:
        drop = [c for c in drop_columns if c in df.columns and c != KEY]
        df = df.drop(columns=drop)
    else:
        drop = [c for c in set(drop_columns) | {KEY} if c in df.columns and c != "sample_id"]
        df = df.drop(columns=drop)
        links = registry.frame[["sample_id", KEY]].dropna()
        unknown = set(df["sample_id"].dropna()) - set(links["sample_id"])
        if unknown:
            log("broad", f"{len(unknown)} sample_id(s) in {table} have no registered biospecimen")
        df = df.merge(links, on="sample_id", how="inner").drop(columns=["sample_id"])

    df = df.dropna(subset=[KEY])
    arms = [c for c in df.columns if c != KEY]
    log("broad", f"{table}: {len(df)} row(s) x {len(arms)} arm(s)")
    return df[[KEY] + arms].reset_index(drop=True)
