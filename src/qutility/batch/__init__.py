"""Batch execution over many input files.

Extended Summary
----------------
File collection, up-front precondition checks and the bounded-concurrency
runner shared by every batch command.

Routine Listings
----------------
run_batch : function
    Apply a worker to every item; ordered, per-item outcomes
resolve_concurrency : function
    Validate a worker count
collect_files : function
    Sorted files under a root matching comma-separated globs
split_patterns : function
    Split a comma-separated glob list
check_input_root : function
    Input path exists and is readable
check_output_root : function
    Output directory exists and is writable
"""

from .collector import collect_files, split_patterns
from .preconditions import check_input_root, check_output_root
from .runner import resolve_concurrency, run_batch

__all__ = [
    "run_batch",
    "resolve_concurrency",
    "collect_files",
    "split_patterns",
    "check_input_root",
    "check_output_root",
]
