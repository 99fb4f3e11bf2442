"""Create the application tables and import legacy JSON stores."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Tuple

from config.settings import DATABASE_URL, LEGACY_APPLICATIONS_FILE, LEGACY_ARCHIVE_FILE
from src.db import models  # noqa: F401
from src.schemas.application import Application, ArchivedApplication
from src.services.application_repository import ApplicationRepository, ArchiveRepository
from src.services.application_service import ApplicationService
from src.services.errors import Conflict

logger = logging.getLogger(__name__)


def _load_records(path: Path) -> List[dict]:
    if not path.exists():
        logger.info("No legacy file at %s", path)
        return []
    records = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON array")
    return records


def import_legacy(
    service: ApplicationService,
    repository: ApplicationRepository,
    archive: ArchiveRepository,
    applications_file: Path,
    archive_file: Path,
) -> Tuple[int, int]:
    """Copy legacy JSON records into the database, skipping ids already present.

    The archive is imported first so an id found in both legacy files stays
    archived only.
    """
    imported_archived = 0
    for record in _load_records(archive_file):
        try:
            archive.append(ArchivedApplication.from_dict(record))
            imported_archived += 1
        except Conflict:
            logger.info("Skipping archived application %s: already imported", record.get("id"))

    imported_active = 0
    for record in _load_records(applications_file):
        if archive.contains(record["id"]):
            logger.info("Skipping active application %s: already archived", record["id"])
            continue
        try:
            repository.append(Application.from_dict(record))
            imported_active += 1
        except Conflict:
            logger.info("Skipping active application %s: already imported", record["id"])

    service.reconcile()
    return imported_active, imported_archived


def migrate(database_url: str, applications_file: Path, archive_file: Path) -> Tuple[int, int]:
    repository = ApplicationRepository(database_url=database_url)
    archive = ArchiveRepository(database_url=database_url)
    service = ApplicationService(repository=repository, archive=archive)
    service.create_schema()
    return import_legacy(service, repository, archive, applications_file, archive_file)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create database tables for whitelist applications and import legacy JSON."
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=DATABASE_URL,
        help="SQLAlchemy database URL (default: %(default)s)",
    )
    parser.add_argument(
        "--applications-json",
        dest="applications_file",
        type=Path,
        default=LEGACY_APPLICATIONS_FILE,
        help="Legacy active applications file (default: %(default)s)",
    )
    parser.add_argument(
        "--archive-json",
        dest="archive_file",
        type=Path,
        default=LEGACY_ARCHIVE_FILE,
        help="Legacy archived applications file (default: %(default)s)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    active, archived = migrate(args.database_url, args.applications_file, args.archive_file)
    print(f"Database migrated at {args.database_url}")
    print(f"Imported {active} active and {archived} archived application(s)")


if __name__ == "__main__":
    main()
