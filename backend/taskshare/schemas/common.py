"""Schemas shared by lists, tasks and shares."""

from pydantic import BaseModel, EmailStr, model_validator

from taskshare.auth.permissions import DEFAULT_SHARE_PERMISSION, SharePermission


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    image: str | None = None

    model_config = {"from_attributes": True}


class ShareCreate(BaseModel):
    """Payload for POST /{id}/share. Grantee by email or by id."""
    email: EmailStr | None = None
    user_id: str | None = None
    permission: SharePermission = DEFAULT_SHARE_PERMISSION

    @model_validator(mode="after")
    def exactly_one_grantee(self):
        if (self.email is None) == (self.user_id is None):
            raise ValueError("Provide exactly one of email or user_id")
        return self


class ShareUpdate(BaseModel):
    permission: SharePermission
