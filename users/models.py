"""
Diner and admin accounts.

Diners sign in through an external identity provider and are known here by email only. Admins are
the only accounts with a usable password.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


MAX_DISPLAY_NAME_LENGTH = 100
COUNTRY_CODE_LENGTH = 2


class InvalidEmailError(Exception):
    """Raised when an account is created with a missing, malformed or taken email."""

    def __init__(self, email: str) -> None:
        """Keep the rejected email on the error."""
        self.email = email
        super().__init__(f"Invalid email address: {email}")


class CustomUserManager(BaseUserManager):
    """Create accounts keyed by a normalized, lowercase email."""

    def create_user(
        self,
        email: str,
        password: str | None = None,
        **extra_fields: Any,
    ) -> CustomUser:
        """
        Create a diner, or an admin when ``is_superuser`` is passed.

        The password is ignored for diners. Any model validation failure, a duplicate email
        included, is reported as InvalidEmailError.
        """
        if not email:
            raise InvalidEmailError(email) from None

        email = self.normalize_email(email.strip()).lower()
        user = self.model(email=email, **extra_fields)
        if extra_fields.get("is_superuser"):
            if not password:
                msg = "Superuser must have a password"
                raise ValueError(msg)
            user.set_password(password)
        else:
            user.set_unusable_password()

        try:
            user.full_clean()
        except ValidationError as exc:
            raise InvalidEmailError(email) from exc
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None, **extra_fields: Any) -> CustomUser:
        """Create an active admin with staff and superuser flags set."""
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)

        for flag in ("is_staff", "is_superuser"):
            if not extra_fields.get(flag):
                msg = f"Superuser must have {flag}=True"
                raise ValidationError(msg)

        if not password:
            msg = "Superuser must have a password"
            raise ValueError(msg)

        return self.create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """Diner or admin account, identified by email instead of username."""

    username = None
    email = models.EmailField(
        _("email address"),
        unique=True,
        error_messages={"unique": _("A user with that email already exists.")},
    )
    display_name = models.CharField(
        max_length=MAX_DISPLAY_NAME_LENGTH,
        blank=True,
        help_text=_("Public name shown next to rankings (optional)."),
    )
    country_code = models.CharField(
        max_length=COUNTRY_CODE_LENGTH,
        blank=True,
        help_text=_("ISO 3166-1 alpha-2 code of the diner's home country"),
    )
    date_joined = models.DateTimeField(default=timezone.now)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: ClassVar[list] = []

    objects = CustomUserManager()

    class Meta:
        """Metadata for CustomUser model."""

        verbose_name = "user"
        verbose_name_plural = "users"

    def __str__(self) -> str:
        """Return the email."""
        return self.email

    @property
    def public_name(self) -> str:
        """Return the name shown next to the user's rankings."""
        return self.display_name.strip() or self.get_full_name().strip() or self.email

    def clean(self) -> None:
        """Lowercase the email and uppercase the country code."""
        super().clean()
        self.email = self.email.lower()
        self.country_code = self.country_code.upper()

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Refuse admins without a password and drop any password a diner was given."""
        if self.is_superuser and not self.password:
            msg = "Superusers must have a password"
            raise ValidationError(msg)
        if not self.is_superuser and self.has_usable_password():
            self.set_unusable_password()
        super().save(*args, **kwargs)
