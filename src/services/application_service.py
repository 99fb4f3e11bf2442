"""Whitelist application lifecycle: submission, review and decision."""

import logging
import uuid
from contextlib import ExitStack
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from src.schemas.application import (
    DECISIONS,
    Application,
    ApplicationSubmission,
    ArchivedApplication,
    DiscordProfile,
    utcnow,
)
from src.services.application_repository import ApplicationRepository, ArchiveRepository
from src.services.auth_service import AdminAuthorizer, admin_authorizer
from src.services.errors import ValidationError

logger = logging.getLogger(__name__)

# Wire names used in per-field validation messages.
_FIELD_ALIASES = {
    "steam_id": "steamId",
    "discord_id": "discordId",
    "cfx_account": "cfxAccount",
}


def _collect_field_errors(error: PydanticValidationError) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for detail in error.errors():
        location = [str(part) for part in detail.get("loc", ())]
        name = ".".join(_FIELD_ALIASES.get(part, part) for part in location) or "__root__"
        ctx_error = (detail.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error is not None else detail.get("msg", "Invalid value")
        fields.setdefault(name, message)
    return fields


class ApplicationService:
    """Move applications from the active store into the archive.

    Both stores sit behind the same whole-store lock, so a decision is a
    compare-and-swap on presence in the active store: the archive append is
    committed first, the active remove second, and no reader observes the
    application in both or neither.
    """

    def __init__(
        self,
        repository: Optional[ApplicationRepository] = None,
        archive: Optional[ArchiveRepository] = None,
        authorizer: Optional[AdminAuthorizer] = None,
    ) -> None:
        self._repository = repository or ApplicationRepository()
        self._archive = archive or ArchiveRepository()
        self._authorizer = authorizer or admin_authorizer

    @property
    def authorizer(self) -> AdminAuthorizer:
        return self._authorizer

    def create_schema(self) -> None:
        self._repository.create_schema()
        self._archive.create_schema()

    def submit(
        self,
        payload: Dict[str, Any],
        discord_profile: Optional[Dict[str, Any]] = None,
    ) -> Application:
        """Validate a submission and store it as a pending application.

        Args:
            payload: Raw submission body using wire (camelCase) field names.
            discord_profile: Verified Discord profile; overrides any
                ``discord`` block in the payload.

        Returns:
            The stored Application.

        Raises:
            ValidationError: If any field is invalid. Nothing is stored.
        """
        data = dict(payload or {})
        if discord_profile is not None:
            data["discord"] = discord_profile

        try:
            submission = ApplicationSubmission.model_validate(data)
        except PydanticValidationError as error:
            fields = _collect_field_errors(error)
            logger.info("Rejected submission with invalid fields: %s", sorted(fields))
            raise ValidationError("Invalid application", fields=fields) from error

        application = Application(
            id=uuid.uuid4().hex,
            timestamp=utcnow(),
            username=submission.username,
            age=submission.age,
            steam_id=submission.steam_id,
            cfx_account=submission.cfx_account,
            experience=submission.experience,
            character=submission.character,
            discord_id=submission.discord_id,
            discord=self._profile_to_dict(submission.discord),
        )
        self._repository.append(application)
        logger.info("Stored application %s from %s", application.id, application.username)
        return application

    def list_active(self) -> List[Application]:
        return self._repository.list()

    def get_active(self, application_id: str) -> Application:
        return self._repository.get(application_id)

    def count_active(self) -> int:
        return self._repository.count()

    def list_archived(self, status: Optional[str] = None) -> List[ArchivedApplication]:
        if status is not None and status not in DECISIONS:
            raise ValidationError(
                "Invalid status filter",
                fields={"status": "Status must be 'approved' or 'denied'."},
            )
        return self._archive.list(status=status)

    def decide(
        self,
        application_id: str,
        decision: str,
        reason: Optional[str] = None,
        actor_identity: Optional[str] = None,
    ) -> ArchivedApplication:
        """Approve or deny a pending application and archive it.

        Raises:
            Unauthorized: If ``actor_identity`` is missing.
            Forbidden: If ``actor_identity`` is not an admin.
            ValidationError: If ``decision`` is not approved/denied.
            NotFound: If the application is not in the active store.
        """
        self._authorizer.require_admin(actor_identity)
        if decision not in DECISIONS:
            raise ValidationError(
                "Invalid decision",
                fields={"status": "Status must be 'approved' or 'denied'."},
            )

        with self._store_locks():
            application = self._repository.get(application_id)
            if self._archive.contains(application_id):
                # An earlier attempt archived it but failed to remove it; the archive wins.
                archived = self._archive.get(application_id)
                logger.warning(
                    "Application %s already archived as %s; dropping active copy",
                    application_id,
                    archived.status,
                )
            else:
                archived = ArchivedApplication.from_application(
                    application,
                    status=decision,
                    reason=reason or "",
                    updated_at=utcnow(),
                )
                self._archive.append(archived)
            self._repository.remove(application_id)

        logger.info(
            "Application %s %s by %s", application_id, decision, actor_identity
        )
        return archived

    def reconcile(self) -> List[str]:
        """Drop active entries that already made it into the archive.

        A crash between the archive append and the active remove leaves an
        application in both stores; the archive copy wins.
        """
        dropped: List[str] = []
        with self._store_locks():
            for application in self._repository.list():
                if not self._archive.contains(application.id):
                    continue
                self._repository.remove(application.id)
                dropped.append(application.id)
                logger.info("Reconciled application %s: already archived", application.id)
        return dropped

    def _store_locks(self) -> ExitStack:
        stack = ExitStack()
        stack.enter_context(self._repository.lock)
        stack.enter_context(self._archive.lock)
        return stack

    @staticmethod
    def _profile_to_dict(profile: Optional[DiscordProfile]) -> Optional[Dict[str, Any]]:
        if profile is None:
            return None
        return profile.model_dump(by_alias=True)


application_service = ApplicationService()
