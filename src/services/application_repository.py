"""Database repositories for active and archived applications."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import DATABASE_URL
from src.db.base import Base, get_engine, get_session_factory, get_store_lock
from src.db.models import ApplicationModel, ArchivedApplicationModel
from src.schemas.application import Application, ArchivedApplication
from src.services.errors import Conflict, NotFound, StoreIOError

logger = logging.getLogger(__name__)


class _Repository:
    """Session and lock handling shared by both stores."""

    def __init__(self, database_url: str = DATABASE_URL) -> None:
        self._engine = get_engine(database_url)
        self._session_factory = get_session_factory(database_url)
        self._lock = get_store_lock(database_url)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as error:
            logger.error("Failed to create schema: %s", error, exc_info=True)
            raise StoreIOError(f"Failed to create schema: {error}") from error

    @contextmanager
    def session_scope(self) -> Iterable[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as error:
            session.rollback()
            logger.error("Store operation failed: %s", error, exc_info=True)
            raise StoreIOError(f"Store operation failed: {error}") from error
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _copy_columns(record: Application, model) -> None:
        model.id = record.id
        model.timestamp = record.timestamp
        model.username = record.username
        model.age = record.age
        model.steam_id = record.steam_id
        model.discord_id = record.discord_id
        model.cfx_account = record.cfx_account
        model.experience = record.experience
        model.character = record.character
        model.discord_json = json.dumps(record.discord) if record.discord is not None else None

    @staticmethod
    def _deserialize_discord(raw: Optional[str]) -> Optional[dict]:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable discord profile: %r", raw)
            return None


class ApplicationRepository(_Repository):
    """Active store: pending applications keyed by id."""

    def list(self) -> List[Application]:
        stmt = select(ApplicationModel).order_by(ApplicationModel.timestamp.asc())
        with self._lock, self.session_scope() as session:
            return [self._model_to_application(model) for model in session.scalars(stmt).all()]

    def get(self, application_id: str) -> Application:
        with self._lock, self.session_scope() as session:
            model = session.get(ApplicationModel, application_id)
            if model is None:
                raise NotFound(f"Application {application_id} not found")
            return self._model_to_application(model)

    def contains(self, application_id: str) -> bool:
        with self._lock, self.session_scope() as session:
            return session.get(ApplicationModel, application_id) is not None

    def count(self) -> int:
        with self._lock, self.session_scope() as session:
            return session.scalar(select(func.count()).select_from(ApplicationModel)) or 0

    def append(self, application: Application) -> None:
        with self._lock, self.session_scope() as session:
            if session.get(ApplicationModel, application.id) is not None:
                raise Conflict(f"Application {application.id} already exists")
            model = ApplicationModel()
            self._copy_columns(application, model)
            session.add(model)

    def remove(self, application_id: str) -> None:
        with self._lock, self.session_scope() as session:
            model = session.get(ApplicationModel, application_id)
            if model is None:
                raise NotFound(f"Application {application_id} not found")
            session.delete(model)

    def _model_to_application(self, model: ApplicationModel) -> Application:
        return Application(
            id=model.id,
            timestamp=model.timestamp,
            username=model.username,
            age=model.age,
            steam_id=model.steam_id,
            cfx_account=model.cfx_account,
            experience=model.experience,
            character=model.character,
            discord_id=model.discord_id,
            discord=self._deserialize_discord(model.discord_json),
        )


class ArchiveRepository(_Repository):
    """Archive store: decided applications keyed by id."""

    def list(self, status: Optional[str] = None) -> List[ArchivedApplication]:
        stmt = select(ArchivedApplicationModel).order_by(ArchivedApplicationModel.updated_at.desc())
        if status:
            stmt = stmt.where(ArchivedApplicationModel.status == status)

        with self._lock, self.session_scope() as session:
            return [self._model_to_archived(model) for model in session.scalars(stmt).all()]

    def get(self, application_id: str) -> ArchivedApplication:
        with self._lock, self.session_scope() as session:
            model = session.get(ArchivedApplicationModel, application_id)
            if model is None:
                raise NotFound(f"Archived application {application_id} not found")
            return self._model_to_archived(model)

    def contains(self, application_id: str) -> bool:
        with self._lock, self.session_scope() as session:
            return session.get(ArchivedApplicationModel, application_id) is not None

    def append(self, archived: ArchivedApplication) -> None:
        with self._lock, self.session_scope() as session:
            if session.get(ArchivedApplicationModel, archived.id) is not None:
                raise Conflict(f"Application {archived.id} is already archived")
            model = ArchivedApplicationModel()
            self._copy_columns(archived, model)
            model.status = archived.status
            model.status_reason = archived.status_reason
            model.updated_at = archived.updated_at
            session.add(model)

    def _model_to_archived(self, model: ArchivedApplicationModel) -> ArchivedApplication:
        return ArchivedApplication(
            id=model.id,
            timestamp=model.timestamp,
            username=model.username,
            age=model.age,
            steam_id=model.steam_id,
            cfx_account=model.cfx_account,
            experience=model.experience,
            character=model.character,
            discord_id=model.discord_id,
            discord=self._deserialize_discord(model.discord_json),
            status=model.status,
            status_reason=model.status_reason or "",
            updated_at=model.updated_at,
        )
