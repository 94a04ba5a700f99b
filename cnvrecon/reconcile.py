# cnvrecon/reconcile.py
"""
reconcile.py — Join focal and broad status tables into the per-biospecimen CNV status table

Fill policies
-------------
qc-fail       (pre-consensus GISTIC arm values)
              focal table is authoritative for the row set (left join). A cell with no broad
              value means GISTIC could not call that sample, so it reads "Failed GISTIC QC".
neutral-fill  (consensus arm values)
              union of both row sets (outer join); broad-only biospecimens take their
              identifiers from the registry. The consensus source omits neutral arms, so
              every empty cell reads "neutral".
              Broad-only biospecimens unknown to the registry are dropped, and resolve_focal
              already emits every registry row, so in a pipeline run the union is effectively
              the registry row set.

Output columns
--------------
sample_id, biospecimen_id, participant_id,
<gene>_focal_status ... (tracked-gene order),
<arm>_status ...        (broad source order)

Rows: focal (registry) order, then broad-only rows in broad source order.
"""
from __future__ import annotations

import gzip
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Union

import pandas as pd

from .config import log
from .data_source import ID_COLUMNS, KEY, IdentifierRegistry, require_columns
from .errors import UnknownMethodError
from .focal import FOCAL_SUFFIX, NEUTRAL

QC_SENTINEL = "Failed GISTIC QC"
BROAD_SUFFIX = "_status"


class FillPolicy(str, Enum):
    QC_FAIL = "qc-fail"
    NEUTRAL_FILL = "neutral-fill"

    @property
    def sentinel(self) -> str:
        return QC_SENTINEL if self is FillPolicy.QC_FAIL else NEUTRAL

    @property
    def outer(self) -> bool:
        return self is FillPolicy.NEUTRAL_FILL

    @classmethod
    def parse(cls, value: Union[str, "FillPolicy"]) -> "FillPolicy":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
        raise UnknownMethodError(str(value), [m.value for m in cls])


def broad_column(arm: str) -> str:
    return f"{arm}{BROAD_SUFFIX}"


def reconcile(
    focal_status: pd.DataFrame,
    broad_status: pd.DataFrame,
    registry: IdentifierRegistry,
    fill_policy: Union[str, FillPolicy],
) -> pd.DataFrame:
    """Join resolved focal status with encoded broad status; no status cell is left null."""
    policy = FillPolicy.parse(fill_policy)
    require_columns(focal_status, "focal_status", ID_COLUMNS)
    require_columns(broad_status, "broad_status", [KEY])

    focal_cols = [c for c in focal_status.columns if c.endswith(FOCAL_SUFFIX)]
    arms = [c for c in broad_status.columns if c not in ID_COLUMNS]
    broad = broad_status[[KEY] + arms].rename(columns={a: broad_column(a) for a in arms})
    status_cols = [broad_column(a) for a in arms]

    focal = focal_status[ID_COLUMNS + focal_cols]
    merged = focal.merge(broad, on=KEY, how="left")

    if policy.outer:
        extra = broad[~broad[KEY].isin(set(focal[KEY]))]
        if not extra.empty:
            ids = registry.frame
            unknown = set(extra[KEY]) - set(ids[KEY])
            if unknown:
                log("reconcile", f"dropping {len(unknown)} broad-only biospecimen(s) not in the registry")
            extra = extra.merge(ids, on=KEY, how="inner")
            if not extra.empty:
                log("reconcile", f"adding {len(extra)} broad-only row(s)")
                merged = pd.concat([merged, extra], ignore_index=True)

    out = merged[ID_COLUMNS + focal_cols + status_cols].astype(object)
    fill_cols = focal_cols + status_cols
    n_empty = int(out[fill_cols].isna().sum().sum())
    out[fill_cols] = out[fill_cols].fillna(policy.sentinel)
    log(
        "reconcile",
        f"{policy.value}: {len(out)} row(s) x {out.shape[1]} col(s); "
        f"{n_empty} empty cell(s) filled with {policy.sentinel!r}",
    )
    return out.reset_index(drop=True)


def write_table(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    """
    Write a tab-separated table with header. The file is written next to its target
    and moved into place, so the target is either the full new table or untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = "".join(path.suffixes)

    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=suffix, dir=path.parent)
    os.close(fd)
    try:
        if suffix.endswith(".gz"):
            # no mtime or file name in the gzip header, so reruns are byte-identical
            text = df.to_csv(sep="\t", index=False, lineterminator="\n")
            with open(tmp, "wb") as fh:
                fh.write(gzip.compress(text.encode("utf-8"), mtime=0))
        else:
            df.to_csv(tmp, sep="\t", index=False, lineterminator="\n", compression="infer")
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    log("reconcile", f"wrote {len(df)} row(s) -> {path}")
    return path
