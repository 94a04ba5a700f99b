import pytest

from cnvrecon.config import config_from_dict, load_config
from cnvrecon.errors import ConfigError


def _raw(**over):
    raw = {
        "fill_policy": "neutral-fill",
        "tracked_genes": ["PTEN"],
        "inputs": {
            "identifiers": "data/hist.tsv",
            "focal_calls": "data/focal.tsv",
            "broad_calls": "/abs/broad.tsv",
        },
        "output": "out/cnv.tsv",
    }
    raw.update(over)
    return raw


def test_paths_resolve_against_base_dir(tmp_path):
    cfg = config_from_dict(_raw(), base_dir=tmp_path)
    assert cfg.identifiers == tmp_path / "data" / "hist.tsv"
    assert str(cfg.broad_calls) == "/abs/broad.tsv"
    assert cfg.output == tmp_path / "out" / "cnv.tsv"
    assert cfg.tracked_genes == ("PTEN",)
    assert cfg.cohort is None
    assert cfg.broad_id_column == "biospecimen_id"
    assert cfg.column_aliases["Kids_First_Biospecimen_ID"] == "biospecimen_id"


def test_cohort_block(tmp_path):
    cfg = config_from_dict(
        _raw(cohort={
            "target_histology": "HGAT",
            "disease_regex": "High-grade glioma",
            "sequencing_strategy": "WGS",
        }),
        base_dir=tmp_path,
    )
    assert cfg.cohort.target_histology == "HGAT"
    assert cfg.cohort.call_set_id_column == "biospecimen_id"


@pytest.mark.parametrize("bad", [
    {"tracked_genes": []},
    {"inputs": {"identifiers": "a", "focal_calls": "b"}},
    {"broad": {"id_column": "participant_id"}},
    {"unexpected": 1},
])
def test_invalid_config(bad, tmp_path):
    with pytest.raises(ConfigError):
        config_from_dict(_raw(**bad), base_dir=tmp_path)


def test_load_config_from_env(tmp_path, monkeypatch):
    path = tmp_path / "pipeline_config.yaml"
    path.write_text(
        "fill_policy: qc-fail\n"
        "tracked_genes: [PDGFRA, PTEN]\n"
        "inputs:\n"
        "  identifiers: hist.tsv\n"
        "  focal_calls: focal.tsv\n"
        "  broad_calls: broad.tsv\n"
        "output: out.tsv\n"
    )
    monkeypatch.setenv("CONFIG_PATH", str(path))
    cfg_path, cfg = load_config()
    assert cfg_path == path
    assert cfg.focal_calls == tmp_path.resolve() / "focal.tsv"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.yaml"))
