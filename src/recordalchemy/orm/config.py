# src/recordalchemy/orm/config.py
"""Configuration for data sessions."""

from pydantic import BaseModel, ConfigDict, Field


class SessionConfig(BaseModel):
    """
    Behavior switches of a DataSession.

    Relationships declared without an explicit ``async`` value use
    ``default_async``; with ``warn_implicit_async`` each of them is reported
    once when its type is registered.
    """

    default_async: bool = Field(
        default=True,
        description="Mode of relationships declared without `async`"
    )
    warn_implicit_async: bool = Field(
        default=True,
        description="Log a warning at registration for relationships relying on the default mode"
    )
    validate_on_register: bool = Field(
        default=False,
        description="Resolve every inverse as soon as types are registered instead of on first use"
    )

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
    )
