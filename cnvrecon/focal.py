# cnvrecon/focal.py
"""
focal.py — Collapse gene-level copy-number calls into one status per (gene, biospecimen)

Policy
------
- Only tracked genes are kept (e.g. PDGFRA, PTEN, MYCN); other genes add no column.
- Several calls for the same (gene, biospecimen) are reduced to their distinct status
  tokens, first-seen order, joined by ", ":   gain, loss, gain  ->  "gain, loss"
  Conflicting calls are kept visible instead of being collapsed to one.
- The result is anchored on the identifier registry: every registered biospecimen gets a
  row, biospecimens without a call for a gene read "neutral", and calls for biospecimens
  the registry does not know are dropped.
- Columns come out as <gene>_focal_status in tracked-gene order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from .config import log
from .data_source import ID_COLUMNS, KEY, IdentifierRegistry, strip_values, normalize_columns, require_columns

NEUTRAL = "neutral"
FOCAL_SUFFIX = "_focal_status"
CALL_COLUMNS = [KEY, "gene_symbol", "status"]


@dataclass(frozen=True)
class FocalCall:
    biospecimen_id: str
    gene_symbol: str
    status: str


def combine_status(tokens: Iterable[str]) -> str:
    """Distinct tokens in first-seen order, joined by ', '."""
    return ", ".join(dict.fromkeys(tokens))


def focal_column(gene: str) -> str:
    return f"{gene}{FOCAL_SUFFIX}"


def _ordered_genes(tracked_genes: Iterable[str]) -> List[str]:
    if isinstance(tracked_genes, str):
        raise TypeError("tracked_genes must be a collection of gene symbols, not a string")
    return list(dict.fromkeys(str(g).strip() for g in tracked_genes))


def _calls_frame(
    calls: Union[pd.DataFrame, Sequence[FocalCall]],
    aliases: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    if isinstance(calls, pd.DataFrame):
        df = normalize_columns(calls, aliases)
        require_columns(df, "focal_calls", CALL_COLUMNS)
        df = df[CALL_COLUMNS].copy()
    else:
        df = pd.DataFrame(
            [(c.biospecimen_id, c.gene_symbol, c.status) for c in calls],
            columns=CALL_COLUMNS,
            dtype=object,
        )
    for col in CALL_COLUMNS:
        df[col] = strip_values(df[col])
    return df


def resolve_focal(
    calls: Union[pd.DataFrame, Sequence[FocalCall]],
    tracked_genes: Iterable[str],
    registry: IdentifierRegistry,
    aliases: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Returns one row per registry row: sample_id, biospecimen_id, participant_id,
    then <gene>_focal_status for every tracked gene. No cell is left empty.
    """
    genes = _ordered_genes(tracked_genes)
    df = _calls_frame(calls, aliases)

    df = df[df["gene_symbol"].isin(genes)]
    blank = df["status"].isna() | (df["status"] == "") | df[KEY].isna()
    if blank.any():
        log("focal", f"ignoring {int(blank.sum())} tracked-gene call(s) with no status or biospecimen")
        df = df[~blank]

    if df.empty:
        wide = pd.DataFrame(columns=[KEY] + genes, dtype=object)
    else:
        combined = (
            df.groupby(["gene_symbol", KEY], sort=False)["status"]
            .agg(combine_status)
        )
        wide = combined.unstack("gene_symbol").reindex(columns=genes).reset_index()
        wide.columns.name = None

    ids = registry.frame
    unknown = set(wide[KEY]) - set(ids[KEY])
    if unknown:
        log("focal", f"dropping calls for {len(unknown)} biospecimen(s) not in the registry")

    out = ids.merge(wide, on=KEY, how="left")
    out[genes] = out[genes].astype(object).fillna(NEUTRAL)
    out = out.rename(columns={g: focal_column(g) for g in genes})

    n_called = int(out[KEY].isin(set(wide[KEY])).sum())
    log("focal", f"resolved {len(genes)} gene(s) for {len(out)} row(s); {n_called} with at least one call")
    return out[ID_COLUMNS + [focal_column(g) for g in genes]]
