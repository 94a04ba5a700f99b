from pathlib import Path

import pandas as pd
import pytest

from cnvrecon.config import set_verbose
from cnvrecon.data_source import load_identifiers

GENES = ["PDGFRA", "PTEN", "MYCN"]


@pytest.fixture(autouse=True)
def quiet():
    set_verbose(False)
    yield
    set_verbose(True)


def write_tsv(path: Path, df: pd.DataFrame) -> Path:
    df.to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def records() -> pd.DataFrame:
    return pd.DataFrame({
        "sample_id": ["s1", "s2", "s3"],
        "Kids_First_Biospecimen_ID": ["b1", "b2", "b3"],
        "Kids_First_Participant_ID": ["p1", "p2", "p2"],
    })


@pytest.fixture
def registry(records):
    return load_identifiers(records)
