"""Base Pydantic models for the litepipe SDK.

This module provides the base model class that all SDK Pydantic models should inherit from.
It establishes consistent configuration across all models including:

- Strict field validation (no extra fields allowed)
- Immutable instances so a config can be shared by every session

Example:
    >>> from litepipe.sdk.models import SdkBaseModel
    >>>
    >>> class MyModel(SdkBaseModel):
    ...     program: str = "sqlite3"
    >>>
    >>> MyModel().model_dump()
    {'program': 'sqlite3'}
"""

from pydantic import BaseModel, ConfigDict


class SdkBaseModel(BaseModel):
    """Base model for all litepipe SDK Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
