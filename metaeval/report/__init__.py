"""
Report rendering for metaeval.

Key exports:
    - format_comparison_table: Fixed-width text table of a backend comparison
    - run_to_dict: JSON-serializable summary of an evaluation run
"""

from .comparison import format_comparison_table, run_to_dict

__all__ = [
    "format_comparison_table",
    "run_to_dict",
]
