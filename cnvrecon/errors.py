# cnvrecon/errors.py
"""
errors.py — Exception taxonomy for the CNV status pipeline

Every error is fatal: the driver reports it and aborts the run. Each carries the
offending table (and column where it applies) so the message points straight
at the input that needs fixing.
"""
from typing import Iterable, Optional


class CnvReconError(Exception):
    """Base class for pipeline errors."""


class ConfigError(CnvReconError):
    """Pipeline configuration failed validation."""


class SchemaError(CnvReconError):
    """A required column is absent from an input table."""

    def __init__(self, table: str, column: str, message: Optional[str] = None):
        self.table = table
        self.column = column
        super().__init__(message or f"table '{table}' is missing required column '{column}'")


class NonNumericCellError(SchemaError):
    """A broad-call cell that must be numeric holds something else."""

    def __init__(self, table: str, column: str, value):
        self.value = value
        super().__init__(
            table, column,
            f"table '{table}' column '{column}' holds non-numeric value {value!r}",
        )


class MissingValueError(SchemaError):
    """An identifier column that must be filled has empty cells."""

    def __init__(self, table: str, column: str, keys: Iterable[str]):
        self.keys = list(keys)
        head = ", ".join(str(k) for k in self.keys[:10])
        super().__init__(
            table, column,
            f"table '{table}' column '{column}' is empty for {len(self.keys)} row(s): {head}",
        )


class UnknownMethodError(CnvReconError):
    def __init__(self, name: str, choices: Iterable[str]):
        self.name = name
        self.choices = list(choices)
        super().__init__(f"unknown fill policy {name!r}; expected one of: {', '.join(self.choices)}")


class JoinCardinalityError(CnvReconError):
    """A join key repeats where a unique key was required (strict mode)."""

    def __init__(self, table: str, column: str, ids: Iterable[str]):
        self.table = table
        self.column = column
        self.ids = sorted(set(ids))
        head = ", ".join(self.ids[:10])
        more = f" (+{len(self.ids) - 10} more)" if len(self.ids) > 10 else ""
        super().__init__(f"table '{table}' column '{column}' has duplicated keys: {head}{more}")


class InputReadError(CnvReconError, OSError):
    def __init__(self, table: str, path, reason: str = ""):
        self.table = table
        self.path = str(path)
        msg = f"cannot read table '{table}' from {self.path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
