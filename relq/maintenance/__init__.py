"""COPY, EXPLAIN, VACUUM / ANALYZE and TRUNCATE builders."""

from relq.maintenance.copy import CopyFromBuilder, CopyToBuilder
from relq.maintenance.explain import ExplainBuilder
from relq.maintenance.truncate import TruncateBuilder
from relq.maintenance.vacuum import AnalyzeBuilder, VacuumBuilder

__all__ = [
    "AnalyzeBuilder",
    "CopyFromBuilder",
    "CopyToBuilder",
    "ExplainBuilder",
    "TruncateBuilder",
    "VacuumBuilder",
]
