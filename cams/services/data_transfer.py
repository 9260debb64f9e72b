"""Import of the data directory at startup and export at shutdown."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from cams.config.loader import get_data_settings
from cams.data.records import (
    CampCodec,
    EnquiryCodec,
    RecordCodec,
    SuggestionCodec,
    read_table,
    user_codec_for,
    write_table,
)
from cams.data.repository import Repository, RepositoryStore
from cams.errors import (
    ExportError,
    FormatError,
    LoadError,
    ReferentialIntegrityError,
    StoreStateError,
)
from cams.schemas import UserRole

from .resolver import CrossReferenceResolver, Violation

logger = logging.getLogger(__name__)

USER_TABLES = {
    "student": UserRole.STUDENT,
    "committee": UserRole.COMMITTEE,
    "staff": UserRole.STAFF,
}
# Users and camps first: enquiries and suggestions refer to both.
IMPORT_PHASES = (("student", "committee", "staff", "camp"), ("enquiry", "suggestion"))
EXPORT_ORDER = ("student", "committee", "staff", "camp", "enquiry", "suggestion")


@dataclass
class ImportReport:
    loaded: Dict[str, int] = field(default_factory=dict)
    missing_files: List[str] = field(default_factory=list)
    unreadable_files: List[str] = field(default_factory=list)
    format_errors: List[FormatError] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.format_errors and not self.violations

    def summary(self) -> str:
        counts = ", ".join(f"{table}={count}" for table, count in self.loaded.items())
        return (
            f"loaded [{counts}] missing={len(self.missing_files)} "
            f"unreadable={len(self.unreadable_files)} "
            f"format_errors={len(self.format_errors)} violations={len(self.violations)}"
        )


class TransferService:
    """Moves a :class:`Repository` to and from one data directory.

    The directory is supplied by the caller; when omitted it comes from the
    ``data`` section of the configuration.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        repository: Optional[Repository] = None,
        *,
        email_domain: Optional[str] = None,
        file_names: Optional[Mapping[str, str]] = None,
    ) -> None:
        settings = get_data_settings()
        self.data_dir = Path(data_dir) if data_dir is not None else settings["directory"]
        self.email_domain = email_domain or settings["email_domain"]
        self.file_names: Dict[str, str] = dict(settings["files"])
        self.file_names.update(file_names or {})
        self.repository = repository if repository is not None else Repository()
        self.resolver = CrossReferenceResolver(self.repository)
        self.resolver.attach()
        self.last_report: Optional[ImportReport] = None

    def path_for(self, table: str) -> Path:
        return self.data_dir / self.file_names[table]

    def codec_for(self, table: str) -> RecordCodec:
        if table in USER_TABLES:
            return user_codec_for(USER_TABLES[table], self.email_domain)
        if table == "camp":
            return CampCodec()
        if table == "enquiry":
            return EnquiryCodec()
        if table == "suggestion":
            return SuggestionCodec()
        raise ValueError(f"unknown table {table!r}")

    def store_for(self, table: str) -> RepositoryStore:
        if table in USER_TABLES:
            return self.repository.users
        return {
            "camp": self.repository.camps,
            "enquiry": self.repository.enquiries,
            "suggestion": self.repository.suggestions,
        }[table]

    # Import

    def import_all(self) -> ImportReport:
        """Load every table, then validate all cross-references.

        Raises LoadError when the data directory is missing, the first
        FormatError (carrying all of them) when rows were malformed, and
        ReferentialIntegrityError when references do not resolve. In both
        error cases the well-formed rows stay loaded but the stores are not
        ready until :meth:`acknowledge` is called.
        """
        if not self.data_dir.is_dir():
            raise LoadError(f"data directory {self.data_dir} does not exist")

        for store in self.repository.stores():
            store.begin_load()
        report = ImportReport()
        self.last_report = report

        for phase in IMPORT_PHASES:
            for table in phase:
                self._import_table(table, report)

        report.violations = self.resolver.validate()
        logger.info("Import from %s: %s", self.data_dir, report.summary())

        if report.format_errors:
            for error in report.format_errors:
                logger.error("Format error: %s", error)
            raise FormatError.collect(report.format_errors)
        if report.violations:
            for violation in report.violations:
                logger.error("Integrity violation: %s", violation.describe())
            raise ReferentialIntegrityError(report.violations)

        self.resolver.link()
        for store in self.repository.stores():
            store.finish_load()
        return report

    def _import_table(self, table: str, report: ImportReport) -> None:
        path = self.path_for(table)
        store = self.store_for(table)
        codec = self.codec_for(table)
        report.loaded[table] = 0
        if not path.exists():
            logger.info("No %s file at %s; starting with no %s records", table, path, table)
            report.missing_files.append(path.name)
            return
        try:
            result = read_table(path, codec)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read %s (%s); treating it as empty", path, exc)
            report.unreadable_files.append(path.name)
            return

        for row, entity in result.records:
            entity_id = store.key_of(entity)
            if entity_id in store:
                report.format_errors.append(
                    FormatError(
                        path.name,
                        row,
                        codec.id_column,
                        f"duplicate {store.entity_type} ID {entity_id!r}",
                    )
                )
                continue
            store.load(entity)
            report.loaded[table] += 1
        report.format_errors.extend(result.errors)

    def acknowledge(self) -> List[Violation]:
        """Accept the data of a failed import and make the stores ready.

        Dangling references are pruned; any remaining consistency problems
        are logged and returned. The stores stay loading if a dangling
        reference survives pruning.
        """
        if self.repository.ready:
            return []
        if self.last_report is None:
            raise StoreStateError("nothing has been imported yet")
        self.resolver.prune()
        remaining = self.resolver.validate()
        dangling = [violation for violation in remaining if violation.dangling]
        if dangling:
            raise ReferentialIntegrityError(dangling)
        for violation in remaining:
            logger.warning("Accepted integrity violation: %s", violation.describe())
        self.resolver.link()
        for store in self.repository.stores():
            store.finish_load()
        return remaining

    # Export

    def export_all(self) -> List[Path]:
        """Write every table; existing files are only replaced when all were written.

        Should moving a file into place fail, the files moved before it stay
        replaced, the remaining temp files are removed and ExportError is
        raised.
        """
        if not self.repository.ready:
            raise StoreStateError("stores must be ready before they can be exported")
        if not self.data_dir.is_dir():
            raise ExportError(f"data directory {self.data_dir} does not exist")

        written: List[Tuple[Path, Path]] = []
        try:
            for table in EXPORT_ORDER:
                target = self.path_for(table)
                temp_path = write_table(target, self.codec_for(table), self._rows_for(table))
                written.append((temp_path, target))
        except (OSError, ValueError) as exc:
            for temp_path, _ in written:
                temp_path.unlink(missing_ok=True)
            logger.error("Export to %s failed: %s", self.data_dir, exc)
            raise ExportError(f"export to {self.data_dir} failed: {exc}") from exc

        replaced = 0
        try:
            for temp_path, target in written:
                os.replace(temp_path, target)
                replaced += 1
        except OSError as exc:
            for temp_path, _ in written[replaced:]:
                temp_path.unlink(missing_ok=True)
            logger.error(
                "Export to %s stopped after replacing %d of %d file(s): %s",
                self.data_dir,
                replaced,
                len(written),
                exc,
            )
            raise ExportError(
                f"export to {self.data_dir} replaced {replaced} of {len(written)} file(s): {exc}"
            ) from exc

        for store in self.repository.stores():
            store.mark_saved()
        logger.info("Exported %d file(s) to %s", len(written), self.data_dir)
        return [target for _, target in written]

    def _rows_for(self, table: str) -> List:
        if table in USER_TABLES:
            role = USER_TABLES[table]
            return [user for user in self.repository.users if user.role == role]
        return self.store_for(table).list()

    @contextmanager
    def session(self) -> Iterator[Repository]:
        """Import, hand the repository to the caller, export changes on clean exit."""
        self.import_all()
        yield self.repository
        if self.repository.dirty:
            self.export_all()
