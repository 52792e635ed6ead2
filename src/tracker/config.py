"""Validated settings for a Tracker."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_VERSION = "1.0.0"
DEFAULT_TIMEOUT = 10.0


class UserPropertiesPolicy(str, Enum):
    """Where properties passed to ``identify`` end up.

    ALWAYS merges them into every later capture until the next identify or
    reset. IDENTIFY_ONLY and NEVER keep them out of ordinary captures; the
    ``$identify`` event's ``$set`` carries them under every policy.
    """

    ALWAYS = "always"
    IDENTIFY_ONLY = "identify_only"
    NEVER = "never"


class TrackerConfig(BaseModel):
    """Immutable configuration captured at ``init`` time."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    host: str
    debug: bool = False
    version: str = DEFAULT_VERSION
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    user_properties_policy: UserPropertiesPolicy = UserPropertiesPolicy.ALWAYS
    identify_on_init: bool = False

    @field_validator("api_key")
    @classmethod
    def api_key_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("api_key must not be empty")
        return v.strip()

    @field_validator("host")
    @classmethod
    def host_is_http_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("host must start with http:// or https://")
        return v.rstrip("/")

    @property
    def capture_url(self) -> str:
        return f"{self.host}/capture/"
