# laravel_session/models/session.py

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr

from laravel_session.decoders.php_serializer import to_builtin


class SessionRecord(BaseModel):
    """One row of Laravel's sessions table (or its Redis equivalent)"""
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    payload: str
    last_activity: int


class LaravelUser(BaseModel):
    """
    A users row. Columns beyond the known ones are kept as extra fields,
    reachable as attributes and through ``model_extra``.
    """
    model_config = ConfigDict(extra="allow")

    id: int
    email: Optional[str] = None
    name: Optional[str] = None
    # Session id the user last logged in with (single-session enforcement)
    session_id: Optional[str] = None
    google2fa_enable: Optional[Union[StrictBool, StrictInt, StrictStr]] = None


class PermissionSet(BaseModel):
    """Roles and permissions assembled from the role/permission tables"""
    role: Optional[str] = None
    role_arr: List[str] = Field(default_factory=list)
    modules: List[Any] = Field(default_factory=list)
    links: List[Any] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Outcome of validating one session cookie"""
    valid: bool
    user: Optional[LaravelUser] = None
    role: Optional[str] = None
    permissions: Any = None
    session_id: Optional[str] = None
    csrf_token: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def invalid(cls, error: str, reason: Optional[str] = None) -> "ValidationResult":
        return cls(valid=False, error=error, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, unset fields dropped"""
        permissions = self.permissions
        if isinstance(permissions, BaseModel):
            permissions = permissions.model_dump()
        else:
            permissions = to_builtin(permissions)

        data = {
            "valid": self.valid,
            "user": self.user.model_dump(mode="json") if self.user else None,
            "role": self.role,
            "permissions": permissions,
            "sessionId": self.session_id,
            "csrfToken": self.csrf_token,
            "error": self.error,
            "reason": self.reason,
        }
        return {key: value for key, value in data.items() if value is not None or key == "valid"}
