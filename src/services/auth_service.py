"""Admin authorization check."""

import logging
from typing import FrozenSet, Iterable, Optional

from config.settings import ADMIN_DISCORD_IDS
from src.services.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


class AdminAuthorizer:
    """Decide whether a caller identity belongs to the configured admin set."""

    def __init__(self, admin_ids: Optional[Iterable[str]] = None) -> None:
        source = ADMIN_DISCORD_IDS if admin_ids is None else admin_ids
        self._admin_ids: FrozenSet[str] = frozenset(source)

    @property
    def admin_ids(self) -> FrozenSet[str]:
        return self._admin_ids

    def is_admin(self, identity: Optional[str]) -> bool:
        return bool(identity) and identity in self._admin_ids

    def require_admin(self, identity: Optional[str]) -> str:
        """Return ``identity`` if it is an admin.

        Raises:
            Unauthorized: If no identity was supplied.
            Forbidden: If the identity is not an admin.
        """
        if not identity:
            raise Unauthorized()
        if identity not in self._admin_ids:
            logger.warning("Rejected admin action for non-admin identity %s", identity)
            raise Forbidden()
        return identity


admin_authorizer = AdminAuthorizer()
