import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_dir(path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    if not p.is_dir():
        raise RuntimeError(f"Could not create or find directory: {p}")
    return p


def remove_work_dir(path) -> bool:
    """
    Remove a per-job working directory.

    Safe to call any number of times: a missing directory is not an error.
    Returns True when something was actually removed.
    """
    p = Path(path)
    if not p.exists():
        return False
    try:
        shutil.rmtree(p)
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("Failed to remove working directory %s", p)
        return False
    logger.debug("Removed working directory %s", p)
    return True


def verify_file_written(file_path) -> bool:
    """Check that an output file actually landed on disk with some content."""
    p = Path(file_path)
    if not p.exists():
        logger.warning("File was not created at %s", p)
        return False
    if p.stat().st_size == 0:
        logger.warning("File at %s is empty (0 bytes)", p)
        return False
    return True
