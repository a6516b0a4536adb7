"""Input/output layer for offline scenarios.

Public API:
    load_input(directory)           -- read CSV input dir -> ScenarioInput
    write_output(result, dir)       -- write estimate.json (+ breakdown.txt)
    render_workload_xlsx(...)       -- Workload / Triage / Meta workbook
"""

from .reader import ScenarioInput, load_input
from .writer import write_output

__all__ = [
    "ScenarioInput",
    "load_input",
    "write_output",
]


# Lazy import for the optional heavy dependency (openpyxl).
def render_workload_xlsx(*args, **kwargs):
    from .xlsx import render_workload_xlsx as _fn
    return _fn(*args, **kwargs)
