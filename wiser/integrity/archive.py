"""Zip extraction confined to a target directory."""

import logging
import shutil
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 64 * 1024


def is_within(root: Path, candidate: Path) -> bool:
    """Return True if ``candidate`` resolves to a path inside ``root``."""
    return candidate.resolve().is_relative_to(root.resolve())


def extract_archive(archive_path: str | Path, target_dir: str | Path) -> bool:
    """Extract every safe entry of a zip archive into ``target_dir``.

    Entries whose resolved path would land outside ``target_dir`` are skipped
    and logged; the remaining entries are still extracted. Files written
    before a failure are left in place.

    Returns:
        True if the archive was read to the end, False if it is missing,
        not a zip file, or an I/O error occurred.
    """
    archive = Path(archive_path)
    root = Path(target_dir)

    if not archive.is_file():
        logger.error("Archive not found: %s", archive)
        return False

    try:
        root.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                destination = root / info.filename
                if not is_within(root, destination):
                    logger.warning(
                        "Skipping entry outside extraction root: %s (archive %s)",
                        info.filename,
                        archive.name,
                    )
                    continue

                if info.is_dir():
                    destination.mkdir(parents=True, exist_ok=True)
                    continue

                destination.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
                logger.debug("Extracted %s", destination)
    except zipfile.BadZipFile:
        logger.error("Not a valid zip archive: %s", archive)
        return False
    except OSError:
        logger.exception("I/O error while extracting %s", archive)
        return False

    logger.info("Extracted %s into %s", archive.name, root)
    return True
