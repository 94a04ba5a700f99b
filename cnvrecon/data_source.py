# cnvrecon/data_source.py
"""
data_source.py — Read delimited input tables and build the identifier registry

What it does
------------
1) Reads tab-delimited tables (optionally .gz/.bz2/.zip/.xz, inferred from the suffix)
   as all-string frames so nothing is silently coerced on the way in.
2) Maps source-specific column names onto canonical ones, e.g.
     Kids_First_Biospecimen_ID -> biospecimen_id
     Kids_First_Participant_ID -> participant_id
3) Builds the IdentifierRegistry: biospecimen_id -> (sample_id, biospecimen_id, participant_id),
   the row set every downstream join is anchored on.

Notes
-----
- biospecimen_id is the join key. A duplicated biospecimen_id is kept as-is in
  `registry.frame` so joins fan out one-to-many; pass strict=True to refuse it instead.
- A missing required column raises SchemaError naming the table and the column.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

import pandas as pd

from .config import DEFAULT_ALIASES, log
from .errors import InputReadError, JoinCardinalityError, MissingValueError, SchemaError

ID_COLUMNS = ["sample_id", "biospecimen_id", "participant_id"]
KEY = "biospecimen_id"

TableSource = Union[str, Path, pd.DataFrame]


# ==============================================================================
# Table helpers
# ==============================================================================

def read_table(path: Union[str, Path], table: str, sep: str = "\t") -> pd.DataFrame:
    """Read one delimited table with every column as string; NA tokens stay missing."""
    path = Path(path)
    try:
        df = pd.read_csv(path, sep=sep, dtype=str, compression="infer")
    except FileNotFoundError as e:
        raise InputReadError(table, path, "file not found") from e
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InputReadError(table, path, f"{type(e).__name__}: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    log("data_source", f"read {table}: {df.shape[0]} rows x {df.shape[1]} cols <- {path}")
    return df


def normalize_columns(df: pd.DataFrame, aliases: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    Rename aliased columns onto canonical names. An alias is skipped when the
    canonical column already exists, so a table carrying both keeps its own.
    """
    aliases = DEFAULT_ALIASES if aliases is None else aliases
    rename = {
        src: dst for src, dst in aliases.items()
        if src in df.columns and dst not in df.columns
    }
    return df.rename(columns=rename) if rename else df


def require_columns(df: pd.DataFrame, table: str, columns: Iterable[str]) -> None:
    for col in columns:
        if col not in df.columns:
            raise SchemaError(table, col)


def strip_values(s: pd.Series) -> pd.Series:
    # strip whitespace, keep missing as missing
    return s.where(s.isna(), s.astype(str).str.strip())


def require_filled(df: pd.DataFrame, table: str) -> None:
    """Every registry row must carry all three identifiers."""
    for col in ID_COLUMNS:
        empty = df[col].isna() | (df[col].astype(str).str.strip() == "")
        if empty.any():
            raise MissingValueError(table, col, df.loc[empty, KEY].fillna("<missing>").tolist())


def as_frame(source: TableSource, table: str, aliases: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        df = read_table(source, table)
    return normalize_columns(df, aliases)


# ==============================================================================
# Identifier registry
# ==============================================================================

@dataclass(frozen=True)
class IdentifierRecord:
    sample_id: str
    biospecimen_id: str
    participant_id: str


class IdentifierRegistry(Mapping):
    """
    Read-only biospecimen_id -> IdentifierRecord mapping.

    `frame` keeps every source row (source order, duplicates included) and is what
    joins use. The mapping view resolves a duplicated key to its first record.
    """

    def __init__(self, frame: pd.DataFrame):
        self._frame = frame[ID_COLUMNS].reset_index(drop=True)
        first = self._frame.drop_duplicates(KEY, keep="first")
        self._records = {
            r.biospecimen_id: IdentifierRecord(r.sample_id, r.biospecimen_id, r.participant_id)
            for r in first.itertuples(index=False)
        }

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def __getitem__(self, key: str) -> IdentifierRecord:
        return self._records[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def duplicated_ids(self) -> List[str]:
        dup = self._frame[KEY][self._frame[KEY].duplicated(keep=False)]
        return list(dict.fromkeys(dup.tolist()))

    def subset(self, ids: Iterable[str]) -> "IdentifierRegistry":
        keep = set(ids)
        return IdentifierRegistry(self._frame[self._frame[KEY].isin(keep)])

    def __repr__(self) -> str:
        return f"IdentifierRegistry({len(self._frame)} rows, {len(self)} biospecimens)"


def load_identifiers(
    records_source: TableSource,
    *,
    aliases: Optional[Dict[str, str]] = None,
    strict: bool = False,
) -> IdentifierRegistry:
    """
    Build the registry from the authoritative records table (path or DataFrame).
    Extra columns (histology, cohort fields, ...) are ignored here.
    """
    df = as_frame(records_source, "identifiers", aliases)
    require_columns(df, "identifiers", ID_COLUMNS)

    df = df[ID_COLUMNS].copy()
    for col in ID_COLUMNS:
        df[col] = strip_values(df[col])
    df = df.dropna(subset=[KEY])
    require_filled(df, "identifiers")

    registry = IdentifierRegistry(df)
    dups = registry.duplicated_ids()
    if dups:
        if strict:
            raise JoinCardinalityError("identifiers", KEY, dups)
        log("data_source", f"identifiers: {len(dups)} duplicated {KEY} value(s) kept; joins fan out one-to-many")
    log("data_source", f"registry: {len(registry)} biospecimens")
    return registry


def registry_from_records(records: Sequence[IdentifierRecord]) -> IdentifierRegistry:
    frame = pd.DataFrame(
        [(r.sample_id, r.biospecimen_id, r.participant_id) for r in records],
        columns=ID_COLUMNS,
    )
    require_filled(frame, "records")
    return IdentifierRegistry(frame)
