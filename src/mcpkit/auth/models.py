"""Data models for the authentication flow."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AuthStrategy = Literal["autofill", "manual", "passwordless", "unknown"]


class MFAInfo(BaseModel):
    """Multi-factor authentication details."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    required: bool
    description: str | None = None


class AuthAnalysis(BaseModel):
    """Classification of the current page's authentication requirement.

    Serialized with camelCase keys (``requiresAuth``, ``loginButton``...) so the
    schema handed to the model reads naturally; Python code uses snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    requires_auth: bool = Field(description="Whether the user must sign in to use the site")
    login_button: str | None = Field(default=None, description='Action that starts login, e.g. "Click the Sign In button"')
    can_autofill: bool | None = Field(default=None, description="Whether username/password fields can be filled automatically")
    recommended_strategy: AuthStrategy | None = None
    steps: list[str] | None = None
    blockers: list[str] | None = Field(default=None, description="Issues such as MFA, SSO or captchas")
    mfa: MFAInfo | None = None
    summary: str | None = None


class AnalysisSource(str, Enum):
    """Which path produced an AuthAnalysis."""

    DERIVED = "derived"  # structured extraction by the model
    HEURISTIC = "heuristic"  # URL keyword fallback


@dataclass(frozen=True)
class Analysis:
    """An AuthAnalysis tagged with the path that produced it."""

    source: AnalysisSource
    analysis: AuthAnalysis

    @property
    def requires_auth(self) -> bool:
        return self.analysis.requires_auth

    @property
    def is_heuristic(self) -> bool:
        return self.source is AnalysisSource.HEURISTIC


class AuthState(str, Enum):
    """States of the authentication state machine."""

    UNAUTHENTICATED = "unauthenticated"
    ANALYZING_INITIAL = "analyzing_initial"
    CLICKING_LOGIN = "clicking_login"
    ATTEMPTING_AUTOFILL = "attempting_autofill"
    WAITING_FOR_MANUAL_LOGIN = "waiting_for_manual_login"
    VERIFIED = "verified"
    SKIPPED = "skipped"
    FAILED = "failed"


class AuthOutcome(str, Enum):
    """Non-fatal end results of authentication."""

    NOT_REQUIRED = "not_required"
    VERIFIED = "verified"
    SKIPPED = "skipped"


@dataclass
class AuthResult:
    """Result of one orchestration run."""

    outcome: AuthOutcome
    analysis: Analysis | None = None
    states: list[AuthState] = field(default_factory=list)

    @property
    def authenticated(self) -> bool:
        return self.outcome in (AuthOutcome.NOT_REQUIRED, AuthOutcome.VERIFIED)
