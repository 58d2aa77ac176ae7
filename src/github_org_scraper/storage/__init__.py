"""Persistence of the per-user dataset and discussions."""

from github_org_scraper.storage.data_store import (
    load_data,
    load_discussions,
    merge_aggregate,
    merge_process_data,
    merged_data,
    save_discussions,
)

__all__ = [
    "load_data",
    "load_discussions",
    "merge_aggregate",
    "merge_process_data",
    "merged_data",
    "save_discussions",
]
