"""User Session and Authentication Models

Represents authenticated users and the error codes returned when a request
cannot be authorized.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class AuthenticationErrorCode(str, Enum):
    """Standardized error codes for authentication failures."""
    AUTH_MISSING = "AUTH_MISSING"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    AUTH_USER_IDENTITY_FAILED = "AUTH_USER_IDENTITY_FAILED"


class UserIdentity(BaseModel):
    """User identity extracted from Databricks authentication.

    `groups` keeps the workspace's ordering; the first entry is the user's
    role as recorded on samples.
    """
    user_id: str = Field(..., description="User identifier (email or UUID)")
    display_name: str = Field(..., description="User's display name")
    groups: List[str] = Field(default_factory=list, description="Workspace group names")
    extracted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When identity was extracted"
    )

    @property
    def role(self) -> str:
        return self.groups[0] if self.groups else 'guest'

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": "user@example.com",
                "display_name": "Jane Doe",
                "groups": ["admins", "users"],
                "extracted_at": "2025-10-10T12:34:56Z"
            }
        }
    }
