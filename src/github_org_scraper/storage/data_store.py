"""Load, merge and persist per-user activity data in a data directory."""

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from github_org_scraper.config import Config, get_config
from github_org_scraper.exceptions import PersistError
from github_org_scraper.models.activity import ActivityRecord, ProcessData, UserAggregate
from github_org_scraper.models.discussion import Discussion
from github_org_scraper.utils.file_lock import DirectoryLock, atomic_write_json

logger = logging.getLogger(__name__)

_process_data_adapter = TypeAdapter(ProcessData)
_discussions_adapter = TypeAdapter(list[Discussion])


def _union(
    existing: Iterable[ActivityRecord],
    new: Iterable[ActivityRecord],
    key_attr: str,
) -> list[ActivityRecord]:
    """Existing entries followed by new entries whose natural key is unseen."""
    merged: list[ActivityRecord] = []
    seen = set()
    for record in (*existing, *new):
        key = getattr(record, key_attr)
        if key in seen:
            continue
        seen.add(key)
        merged.append(record)
    return merged


def merge_aggregate(
    existing: Optional[UserAggregate],
    new: UserAggregate,
    updated_at: str,
) -> UserAggregate:
    """Merge one user's fresh aggregate into their persisted one.

    Authored items and activity are unioned by natural key, open PRs are
    replaced by the new snapshot, and ``last_updated`` is set to ``updated_at``.
    A missing snapshot (``open_prs`` is None) keeps the persisted one.
    """
    existing = existing or UserAggregate()
    open_prs = new.open_prs if new.open_prs is not None else existing.open_prs
    activity = _union(existing.activity, new.activity, "activity_key")
    activity.sort(key=lambda r: r.timestamp)

    return UserAggregate(
        authored_issue_and_pr=_union(
            existing.authored_issue_and_pr, new.authored_issue_and_pr, "reference_key"
        ),
        activity=activity,
        open_prs=list(open_prs or []),
        last_updated=updated_at,
    )


def merge_process_data(
    existing: ProcessData,
    new: ProcessData,
    updated_at: str,
) -> ProcessData:
    """Merge fresh data into persisted data; users absent from ``new`` are kept as-is."""
    merged = dict(existing)
    for user, aggregate in new.items():
        merged[user] = merge_aggregate(existing.get(user), aggregate, updated_at)
    return merged


def load_data(path: Path) -> ProcessData:
    """Load persisted data, or an empty mapping if the file does not exist.

    Raises:
        PersistError: If the file exists but cannot be read or parsed
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        return _process_data_adapter.validate_python(raw)
    except (OSError, ValueError, ValidationError) as e:
        raise PersistError(f"Cannot load existing data from {path}: {e}", path=str(path)) from e


def _save(path: Path, data: object) -> None:
    try:
        atomic_write_json(path, data)
    except (OSError, TypeError, ValueError) as e:
        raise PersistError(f"Cannot write data to {path}: {e}", path=str(path)) from e


def _lock(path: Path) -> DirectoryLock:
    return DirectoryLock(path.with_name(path.name + ".lock"))


def merged_data(
    data_dir: Path,
    new_data: ProcessData,
    now: Optional[datetime] = None,
    config: Optional[Config] = None,
) -> ProcessData:
    """Merge ``new_data`` into the data directory's persisted state and write it back.

    The load-merge-write sequence holds an exclusive lock on the directory's
    data file, and the write is atomic.

    Args:
        data_dir: Directory holding the dataset
        new_data: Freshly computed per-user data for this run
        now: Run time recorded as ``last_updated`` (defaults to current UTC time)
        config: Configuration (defaults to global config)

    Returns:
        The merged data as written

    Raises:
        PersistError: If the directory or file cannot be read or written
    """
    config = config or get_config()
    updated_at = (now or datetime.now(timezone.utc)).isoformat()
    path = Path(data_dir) / config.data_filename

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _lock(path):
            existing = load_data(path)
            merged = merge_process_data(existing, new_data, updated_at)
            _save(path, _process_data_adapter.dump_python(merged, mode="json"))
    except OSError as e:
        raise PersistError(f"Cannot lock data directory {data_dir}: {e}", path=str(path)) from e

    logger.info(
        "Saved data for %d users to %s (%d updated this run)",
        len(merged),
        path,
        len(new_data),
    )
    return merged


def discussions_file(data_dir: Path, end_date: date, config: Optional[Config] = None) -> Path:
    config = config or get_config()
    return Path(data_dir) / config.discussions_dirname / f"{end_date:%Y-%m-%d}.json"


def load_discussions(path: Path) -> list[Discussion]:
    """Load a discussions file, or an empty list if it does not exist."""
    if not path.exists():
        return []
    try:
        with open(path, encoding="utf-8") as f:
            return _discussions_adapter.validate_python(json.load(f))
    except (OSError, ValueError, ValidationError) as e:
        raise PersistError(f"Cannot load discussions from {path}: {e}", path=str(path)) from e


def save_discussions(
    data_dir: Path,
    end_date: date,
    discussions: list[Discussion],
    config: Optional[Config] = None,
) -> Path:
    """Merge discussions into the file for ``end_date``; fresh records replace old ones.

    Raises:
        PersistError: If the file cannot be read or written
    """
    path = discussions_file(data_dir, end_date, config)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _lock(path):
            by_key = {d.key: d for d in load_discussions(path)}
            by_key.update((d.key, d) for d in discussions)
            merged = sorted(by_key.values(), key=lambda d: (d.repo, d.number))
            _save(path, _discussions_adapter.dump_python(merged, mode="json"))
    except OSError as e:
        raise PersistError(f"Cannot lock {path}: {e}", path=str(path)) from e

    logger.info("Saved %d discussions to %s", len(merged), path)
    return path
