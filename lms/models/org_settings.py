from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from lms.models.organization import Branding, utcnow


@dataclass(frozen=True, slots=True)
class AuthPreferences:
    allow_email_password_login: bool = True
    allow_phone_otp_login: bool = False
    b2c_learner_signup_enabled: bool = True
    b2c_instructor_signup_enabled: bool = False


@dataclass(frozen=True, slots=True)
class CourseBuilderSettings:
    max_active_courses: int = 100
    max_draft_courses: int = 200


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    email_from_name: str | None = None
    email_from_address: str | None = None
    send_welcome_email: bool = True
    send_enrollment_email: bool = True
    send_course_completion_email: bool = True


@dataclass(frozen=True, slots=True)
class OrgSettings:
    """Per-tenant settings document (one row per tenant database)."""

    branding: Branding = field(default_factory=Branding)
    auth_preferences: AuthPreferences = field(default_factory=AuthPreferences)
    course_builder: CourseBuilderSettings = field(default_factory=CourseBuilderSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    updated_at: datetime = field(default_factory=utcnow)
