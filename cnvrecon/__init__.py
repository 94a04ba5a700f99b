"""cnvrecon — reconcile focal and broad copy-number calls into a per-biospecimen status table."""

__version__ = "0.1.0"
