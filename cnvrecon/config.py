# cnvrecon/config.py
"""
config.py — Pipeline configuration (YAML + jsonschema) and tagged logging

Key inputs (config/pipeline_config.yaml)
----------------------------------------
verbose: true
fill_policy: qc-fail                 # qc-fail (pre-consensus) | neutral-fill (consensus)
tracked_genes: [PDGFRA, PTEN, MYCN]
strict_registry: false               # true -> duplicated biospecimen ids abort the run
column_aliases:
  Kids_First_Biospecimen_ID: biospecimen_id
  Kids_First_Participant_ID: participant_id
inputs:
  identifiers: data/pbta-histologies.tsv
  focal_calls: data/consensus_seg_annotated_cn_autosomes.tsv.gz
  broad_calls: data/broad_values_by_arm.txt
  lesion_calls: null                 # only read when `cohort` is set
  call_set: null                     # coverage-gap diagnostic
broad:
  id_column: biospecimen_id          # or sample_id
  drop_columns: [sample_id]
cohort: null                         # {target_histology, disease_regex, sequencing_strategy}
output: results/cnv_status.tsv

Relative paths are resolved against the directory holding the YAML file.

Environment
-----------
CONFIG_PATH : path to pipeline_config.yaml (default: config/pipeline_config.yaml)
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config/pipeline_config.yaml"

DEFAULT_ALIASES: Dict[str, str] = {
    "Kids_First_Biospecimen_ID": "biospecimen_id",
    "Kids_First_Participant_ID": "participant_id",
}

_VERBOSE = True


def set_verbose(flag: bool) -> None:
    global _VERBOSE
    _VERBOSE = bool(flag)


def log(tag: str, msg: str) -> None:
    if _VERBOSE:
        print(f"[{tag}] {msg}")


def warn(tag: str, msg: str) -> None:
    print(f"[{tag}] WARNING: {msg}", file=sys.stderr)


# ==============================================================================
# Schema
# ==============================================================================

_PATH = {"type": "string", "minLength": 1}
_OPT_PATH = {"type": ["string", "null"]}

CONFIG_SCHEMA = {
    "type": "object",
    "required": ["fill_policy", "tracked_genes", "inputs", "output"],
    "properties": {
        "verbose": {"type": "boolean"},
        "fill_policy": {"type": "string"},
        "tracked_genes": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
        },
        "strict_registry": {"type": "boolean"},
        "column_aliases": {
            "type": ["object", "null"],
            "additionalProperties": {"type": "string"},
        },
        "inputs": {
            "type": "object",
            "required": ["identifiers", "focal_calls", "broad_calls"],
            "properties": {
                "identifiers": _PATH,
                "focal_calls": _PATH,
                "broad_calls": _PATH,
                "lesion_calls": _OPT_PATH,
                "call_set": _OPT_PATH,
            },
            "additionalProperties": False,
        },
        "broad": {
            "type": ["object", "null"],
            "properties": {
                "id_column": {"enum": ["biospecimen_id", "sample_id"]},
                "drop_columns": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        },
        "cohort": {
            "type": ["object", "null"],
            "required": ["target_histology", "disease_regex", "sequencing_strategy"],
            "properties": {
                "target_histology": {"type": "string"},
                "disease_regex": {"type": "string"},
                "sequencing_strategy": {"type": "string"},
                "call_set_id_column": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "output": _PATH,
    },
    "additionalProperties": False,
}


# ==============================================================================
# Typed view
# ==============================================================================

@dataclass(frozen=True)
class CohortConfig:
    target_histology: str
    disease_regex: str
    sequencing_strategy: str
    call_set_id_column: str = "biospecimen_id"


@dataclass(frozen=True)
class PipelineConfig:
    identifiers: Path
    focal_calls: Path
    broad_calls: Path
    output: Path
    fill_policy: str = "qc-fail"
    tracked_genes: Tuple[str, ...] = ("PDGFRA", "PTEN", "MYCN")
    strict_registry: bool = False
    verbose: bool = True
    column_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    broad_id_column: str = "biospecimen_id"
    broad_drop_columns: Tuple[str, ...] = ("sample_id",)
    lesion_calls: Optional[Path] = None
    call_set: Optional[Path] = None
    cohort: Optional[CohortConfig] = None


def validate_config(cfg: dict) -> None:
    errs = sorted(Draft7Validator(CONFIG_SCHEMA).iter_errors(cfg), key=lambda e: [str(p) for p in e.path])
    if errs:
        head = "\n".join(
            f"  {'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errs[:10]
        )
        raise ConfigError(f"Invalid pipeline config (showing up to 10):\n{head}")


def config_from_dict(cfg: dict, base_dir: Optional[Path] = None) -> PipelineConfig:
    """Validate a raw config mapping and build a PipelineConfig from it."""
    validate_config(cfg)
    base = Path(base_dir) if base_dir is not None else Path.cwd()

    def _p(v):
        if v is None:
            return None
        p = Path(v)
        return p if p.is_absolute() else base / p

    inputs = cfg["inputs"]
    broad = cfg.get("broad") or {}
    aliases = dict(DEFAULT_ALIASES)
    aliases.update(cfg.get("column_aliases") or {})

    cohort = None
    if cfg.get("cohort"):
        c = cfg["cohort"]
        cohort = CohortConfig(
            target_histology=c["target_histology"],
            disease_regex=c["disease_regex"],
            sequencing_strategy=c["sequencing_strategy"],
            call_set_id_column=c.get("call_set_id_column", "biospecimen_id"),
        )

    return PipelineConfig(
        identifiers=_p(inputs["identifiers"]),
        focal_calls=_p(inputs["focal_calls"]),
        broad_calls=_p(inputs["broad_calls"]),
        lesion_calls=_p(inputs.get("lesion_calls")),
        call_set=_p(inputs.get("call_set")),
        output=_p(cfg["output"]),
        fill_policy=cfg["fill_policy"],
        tracked_genes=tuple(cfg["tracked_genes"]),
        strict_registry=bool(cfg.get("strict_registry", False)),
        verbose=bool(cfg.get("verbose", True)),
        column_aliases=aliases,
        broad_id_column=broad.get("id_column", "biospecimen_id"),
        broad_drop_columns=tuple(broad.get("drop_columns", ["sample_id"])),
        cohort=cohort,
    )


def load_config(path: Optional[str] = None) -> Tuple[Path, PipelineConfig]:
    cfg_path = Path(path or os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH))
    try:
        with open(cfg_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {cfg_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {cfg_path} is not valid YAML: {e}")
    return cfg_path, config_from_dict(raw, base_dir=cfg_path.resolve().parent)
