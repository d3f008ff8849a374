"""Cache purge operation - delete cached discovery artifacts.

This operation is not undoable: deleted files are not snapshotted
and undo does not bring them back.
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path

from scanquell.core.logging_config import log_action
from scanquell.core.models import OutcomeStatus, ResourceOutcome

logger = logging.getLogger("scanquell.actions.cache")

PURGE_CACHE = "purge-cached-artifacts"
NOT_UNDOABLE_NOTICE = "Deleted cache files are not restored by --undo."


@dataclass
class PurgeResult:
    """Result of a cache purge.

    Attributes:
        cache_dir: Directory that was searched
        deleted: Files that were deleted
        errors: Files that could not be deleted, with the reason
        dry_run: Whether deletions were simulated
    """

    cache_dir: Path
    deleted: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)


def purge_cached_artifacts(
    cache_dir: Path,
    patterns: list[str],
    dry_run: bool = False,
) -> PurgeResult:
    """Delete files below ``cache_dir`` whose names match any pattern.

    Matching is case-insensitive. A missing directory is not an error.

    Args:
        cache_dir: Application cache directory
        patterns: File name glob patterns
        dry_run: If True, only report what would be deleted

    Returns:
        PurgeResult with the deleted files and any errors
    """
    result = PurgeResult(cache_dir=cache_dir, dry_run=dry_run)

    if not cache_dir.is_dir():
        logger.info(f"Cache directory not found, nothing to purge: {cache_dir}")
        return result

    lowered = [p.lower() for p in patterns]

    try:
        candidates = sorted(p for p in cache_dir.rglob("*") if p.is_file())
    except OSError as e:
        logger.warning(f"Could not walk {cache_dir}: {e}")
        result.errors.append(f"{cache_dir}: {e}")
        return result

    for path in candidates:
        name = path.name.lower()
        if not any(fnmatch.fnmatchcase(name, pattern) for pattern in lowered):
            continue

        if dry_run:
            logger.info(f"[DRY RUN] Would delete {path}")
            result.deleted.append(path)
            continue

        try:
            path.unlink()
            result.deleted.append(path)
            logger.debug(f"Deleted {path}")
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")
            result.errors.append(f"{path}: {e}")

    log_action(
        "PURGE_CACHE",
        str(cache_dir),
        not result.errors,
        f"{result.deleted_count} file(s) deleted",
    )
    return result


def purge_outcomes(result: PurgeResult) -> list[ResourceOutcome]:
    """Turn a purge result into report lines."""
    outcomes = [
        ResourceOutcome(
            PURGE_CACHE,
            str(result.cache_dir),
            OutcomeStatus.SUCCESS,
            f"{result.deleted_count} file(s) deleted. {NOT_UNDOABLE_NOTICE}",
        )
    ]
    for error in result.errors:
        outcomes.append(ResourceOutcome(PURGE_CACHE, str(result.cache_dir), OutcomeStatus.FAILED, error))
    return outcomes
