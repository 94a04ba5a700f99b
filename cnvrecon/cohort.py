# cnvrecon/cohort.py
"""
cohort.py — Restrict the biospecimen set to a histology-defined WGS tumor cohort

A biospecimen is selected when
    (short_histology == <target>  OR  its sample_id is in the lesion calls with a
     disease_type_reclassified matching <regex>)
    AND sample_type == "Tumor"
    AND composition == "Solid Tissue"
    AND experimental_strategy == <strategy>   (copy-number evidence only comes from WGS)

The rule runs as one DuckDB query over the registered frames. Regex matching is a
partial match (DuckDB regexp_matches, RE2 syntax).

Coverage gap
------------
When an external call set (e.g. consensus CNV segments) is given, selected biospecimens
with no entry in it are reported on the returned CohortSelection. This is a diagnostic,
never an error: the ids stay in the cohort.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Optional, Tuple

import duckdb
import pandas as pd

from .config import log, warn
from .data_source import KEY, normalize_columns, require_columns, strip_values

HISTOLOGY_COLUMNS = [
    "sample_id", KEY, "short_histology", "sample_type", "composition", "experimental_strategy",
]
LESION_COLUMNS = ["sample_id", "disease_type_reclassified"]


@dataclass(frozen=True)
class CohortSelection:
    biospecimen_ids: FrozenSet[str]
    missing_from_call_set: Tuple[str, ...] = ()

    @property
    def coverage_gap(self) -> int:
        return len(self.missing_from_call_set)

    def __contains__(self, item) -> bool:
        return item in self.biospecimen_ids

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.biospecimen_ids))

    def __len__(self) -> int:
        return len(self.biospecimen_ids)


def _varchar_frame(df: pd.DataFrame, cols) -> pd.DataFrame:
    out = df[cols].copy()
    for c in cols:
        out[c] = strip_values(out[c]).astype(object)
    return out.where(out.notna(), None)


def _select_sql(with_lesions: bool) -> str:
    lesion_clause = ""
    if with_lesions:
        lesion_clause = """
            OR h.sample_id IN (
                SELECT CAST(l.sample_id AS VARCHAR)
                FROM lesions l
                WHERE regexp_matches(CAST(l.disease_type_reclassified AS VARCHAR), ?)
            )"""
    return f"""
        WITH h AS (
            SELECT
                CAST(sample_id AS VARCHAR)             AS sample_id,
                CAST(biospecimen_id AS VARCHAR)        AS biospecimen_id,
                CAST(short_histology AS VARCHAR)       AS short_histology,
                CAST(sample_type AS VARCHAR)           AS sample_type,
                CAST(composition AS VARCHAR)           AS composition,
                CAST(experimental_strategy AS VARCHAR) AS experimental_strategy
            FROM histologies
        )
        SELECT DISTINCT h.biospecimen_id
        FROM h
        WHERE (h.short_histology = ?{lesion_clause})
          AND h.sample_type = ?
          AND h.composition = ?
          AND h.experimental_strategy = ?
          AND h.biospecimen_id IS NOT NULL
        ORDER BY 1
    """


def select_cohort(
    histologies: pd.DataFrame,
    lesion_calls: Optional[pd.DataFrame],
    target_histology_label: str,
    disease_regex: str,
    sequencing_strategy: str,
    call_set: Optional[pd.DataFrame] = None,
    *,
    call_set_id_column: str = KEY,
    sample_type: str = "Tumor",
    composition: str = "Solid Tissue",
    aliases: Optional[Dict[str, str]] = None,
) -> CohortSelection:
    hist = normalize_columns(histologies, aliases)
    require_columns(hist, "histologies", HISTOLOGY_COLUMNS)
    hist = _varchar_frame(hist, HISTOLOGY_COLUMNS)

    lesions = None
    if lesion_calls is not None:
        lesions = normalize_columns(lesion_calls, aliases)
        require_columns(lesions, "lesion_calls", LESION_COLUMNS)
        lesions = _varchar_frame(lesions, LESION_COLUMNS)
        if lesions.empty:
            lesions = None

    params = [target_histology_label]
    if lesions is not None:
        params.append(disease_regex)
    params += [sample_type, composition, sequencing_strategy]

    con = duckdb.connect()
    try:
        con.register("histologies", hist)
        if lesions is not None:
            con.register("lesions", lesions)
        rows = con.execute(_select_sql(lesions is not None), params).fetchall()
    finally:
        con.close()

    ids = frozenset(r[0] for r in rows)
    log("cohort", f"selected {len(ids)} biospecimen(s) "
                  f"[{target_histology_label} | /{disease_regex}/, {sequencing_strategy}]")

    missing: Tuple[str, ...] = ()
    if call_set is not None:
        cs = normalize_columns(call_set, aliases)
        require_columns(cs, "call_set", [call_set_id_column])
        covered = set(strip_values(cs[call_set_id_column]).dropna())
        missing = tuple(sorted(ids - covered))
        if missing:
            warn("cohort", f"{len(missing)} selected biospecimen(s) are absent from the call set")
    return CohortSelection(biospecimen_ids=ids, missing_from_call_set=missing)
