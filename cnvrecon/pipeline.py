# cnvrecon/pipeline.py
"""
pipeline.py — Run the CNV status reconciliation end to end

Flow
----
identifiers ──► IdentifierRegistry ──(cohort filter, optional)──┐
focal calls ──► resolve_focal ──────────────────────────────────┤
broad calls ──► encode_broad ─► prepare_broad ───────────────────┴─► reconcile ─► output TSV

Every input is read and schema-checked before the first join, so a bad table
aborts the run before any output is produced.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .broad import encode_broad, prepare_broad
from .cohort import CohortSelection, select_cohort
from .config import PipelineConfig, log, set_verbose
from .data_source import KEY, load_identifiers, normalize_columns, read_table, require_columns
from .focal import CALL_COLUMNS, resolve_focal
from .reconcile import FillPolicy, reconcile, write_table


@dataclass(frozen=True)
class PipelineResult:
    table: pd.DataFrame
    cohort: Optional[CohortSelection] = None


def run_pipeline(cfg: PipelineConfig, *, write: bool = True) -> PipelineResult:
    set_verbose(cfg.verbose)
    policy = FillPolicy.parse(cfg.fill_policy)
    aliases = cfg.column_aliases

    # ---- read + schema checks (no joins yet) ----
    records = normalize_columns(read_table(cfg.identifiers, "identifiers"), aliases)
    focal_calls = normalize_columns(read_table(cfg.focal_calls, "focal_calls"), aliases)
    require_columns(focal_calls, "focal_calls", CALL_COLUMNS)
    broad_raw = normalize_columns(read_table(cfg.broad_calls, "broad_calls"), aliases)
    require_columns(broad_raw, "broad_calls", [cfg.broad_id_column])
    id_like = {KEY, "sample_id", "participant_id", cfg.broad_id_column, *cfg.broad_drop_columns}
    broad_encoded = encode_broad(broad_raw, id_columns=id_like)

    registry = load_identifiers(records, aliases=aliases, strict=cfg.strict_registry)

    # ---- inclusion filter ----
    selection = None
    if cfg.cohort is not None:
        c = cfg.cohort
        lesions = read_table(cfg.lesion_calls, "lesion_calls") if cfg.lesion_calls else None
        call_set = read_table(cfg.call_set, "call_set") if cfg.call_set else None
        selection = select_cohort(
            records, lesions,
            c.target_histology, c.disease_regex, c.sequencing_strategy,
            call_set,
            call_set_id_column=c.call_set_id_column,
            aliases=aliases,
        )
        registry = registry.subset(selection.biospecimen_ids)
        log("pipeline", f"registry restricted to cohort: {len(registry)} biospecimen(s)")

    # ---- status tables + join ----
    focal = resolve_focal(focal_calls, cfg.tracked_genes, registry, aliases)
    broad = prepare_broad(
        broad_encoded, registry,
        id_column=cfg.broad_id_column,
        drop_columns=cfg.broad_drop_columns,
        aliases=aliases,
    )
    table = reconcile(focal, broad, registry, policy)

    if write:
        write_table(table, cfg.output)
    return PipelineResult(table=table, cohort=selection)
