# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Configuration models for LDAP Rebind."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class RebindConfig(BaseModel):
    """Referral rebind configuration."""

    callback_style: Literal["bind", "supply", "none"] = Field(
        default="bind",
        description=(
            "SDK rebind calling convention: 'bind' performs the bind inside the callback "
            "(OpenLDAP style), 'supply' hands credentials back to the SDK (Tivoli style), "
            "'none' disables rebinding"
        ),
    )
    audit: bool = Field(default=True, description="Audit-log every rebind callback")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file: str | None = Field(default=None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Level must be one of: {valid_levels}")
        return v.upper()


class Config(BaseModel):
    """Main configuration class for LDAP Rebind."""

    rebind: RebindConfig = Field(default_factory=RebindConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Predefined configurations for the supported SDK calling conventions
OPENLDAP_DEFAULTS = {
    "rebind": {
        "callback_style": "bind",
        "audit": True,
    }
}

TIVOLI_DEFAULTS = {
    "rebind": {
        "callback_style": "supply",
        "audit": True,
    }
}
