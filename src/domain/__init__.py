"""Tax-position calculation core.

Pure, synchronous computations over in-memory records: capital gains (FIFO),
depreciation, work-from-home deductions, progressive income tax and the
aggregation of all of them into one tax position. Nothing in this package
reads storage or ambient settings; callers pass every input explicitly.
"""

__all__ = [
    "capital_gains",
    "depreciation",
    "errors",
    "records",
    "tax_brackets",
    "tax_position",
    "work_deductions",
]
