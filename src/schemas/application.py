"""Application payloads and records."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

STEAM_ID_PATTERN = re.compile(r"[0-9]{17}")

DECISIONS = ("approved", "denied")


def utcnow() -> datetime:
    """Naive UTC now, matching what SQLite DateTime columns hand back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() + "Z"


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class DiscordProfile(BaseModel):
    """Verified Discord identity attached to an application at submission."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Discord user ID")
    username: str = Field(description="Discord display name")
    discriminator: Optional[str] = Field(default=None, description="Legacy tag suffix")
    avatar: Optional[str] = Field(default=None, description="Avatar hash or URL")
    verified: bool = Field(default=False, description="Whether Discord verified the email")
    email: Optional[str] = Field(default=None, description="Account email")
    created_at: Optional[str] = Field(
        default=None, alias="createdAt", description="Account creation time"
    )


class ApplicationSubmission(BaseModel):
    """Whitelist application as typed into the submission form."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(description="In-game username")
    age: int = Field(description="Applicant age in years")
    steam_id: str = Field(alias="steamId", description="17-digit Steam ID")
    discord_id: Optional[str] = Field(
        default=None, alias="discordId", description="Discord handle typed by the applicant"
    )
    cfx_account: str = Field(alias="cfxAccount", description="CFX forum account URL")
    experience: str = Field(description="Previous roleplay experience")
    character: str = Field(description="Character backstory")
    discord: Optional[DiscordProfile] = Field(default=None, description="Verified Discord profile")

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        if len(value) < 3:
            raise ValueError("Username must be at least 3 characters.")
        return value

    @field_validator("age")
    @classmethod
    def _check_age(cls, value: int) -> int:
        if value < 18:
            raise ValueError("You must be at least 18 years old.")
        return value

    @field_validator("steam_id")
    @classmethod
    def _check_steam_id(cls, value: str) -> str:
        if not STEAM_ID_PATTERN.fullmatch(value):
            raise ValueError("Invalid Steam ID. It should be a 17-digit number.")
        return value

    @field_validator("discord_id")
    @classmethod
    def _check_discord_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) < 3:
            raise ValueError("Discord ID must be at least 3 characters.")
        return value

    @field_validator("cfx_account")
    @classmethod
    def _check_cfx_account(cls, value: str) -> str:
        parsed = urlparse(value or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid CFX account URL.")
        return value

    @field_validator("experience")
    @classmethod
    def _check_experience(cls, value: str) -> str:
        if len(value) < 50:
            raise ValueError("Please provide at least 50 characters about your RP experience.")
        return value

    @field_validator("character")
    @classmethod
    def _check_character(cls, value: str) -> str:
        if len(value) < 100:
            raise ValueError(
                "Please provide at least 100 characters about your character backstory."
            )
        return value


class DecisionRequest(BaseModel):
    """Admin decision on a pending application."""

    status: Literal["approved", "denied"]
    reason: Optional[str] = Field(default="", description="Optional rationale shown in the archive")


@dataclass
class Application:
    """A submitted application sitting in the active store."""

    id: str
    timestamp: datetime
    username: str
    age: int
    steam_id: str
    cfx_account: str
    experience: str
    character: str
    discord_id: Optional[str] = None
    discord: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "username": self.username,
            "age": self.age,
            "steamId": self.steam_id,
            "cfxAccount": self.cfx_account,
            "experience": self.experience,
            "character": self.character,
            "discord": self.discord,
            "status": "pending",
        }
        if self.discord_id is not None:
            payload["discordId"] = self.discord_id
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        return cls(
            id=data["id"],
            timestamp=parse_timestamp(data.get("timestamp")) or utcnow(),
            username=data["username"],
            age=int(data["age"]),
            steam_id=data["steamId"],
            cfx_account=data["cfxAccount"],
            experience=data["experience"],
            character=data["character"],
            discord_id=data.get("discordId"),
            discord=data.get("discord"),
        )


@dataclass
class ArchivedApplication(Application):
    """A decided application sitting in the archive store."""

    status: str = "approved"
    status_reason: str = ""
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["status"] = self.status
        payload["statusReason"] = self.status_reason
        payload["updatedAt"] = format_timestamp(self.updated_at)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchivedApplication":
        base = Application.from_dict(data)
        return cls.from_application(
            base,
            status=data["status"],
            reason=data.get("statusReason") or "",
            updated_at=parse_timestamp(data.get("updatedAt")) or utcnow(),
        )

    @classmethod
    def from_application(
        cls,
        application: Application,
        *,
        status: str,
        reason: str = "",
        updated_at: Optional[datetime] = None,
    ) -> "ArchivedApplication":
        discord = dict(application.discord) if application.discord is not None else None
        return cls(
            id=application.id,
            timestamp=application.timestamp,
            username=application.username,
            age=application.age,
            steam_id=application.steam_id,
            cfx_account=application.cfx_account,
            experience=application.experience,
            character=application.character,
            discord_id=application.discord_id,
            discord=discord,
            status=status,
            status_reason=reason,
            updated_at=updated_at or utcnow(),
        )
