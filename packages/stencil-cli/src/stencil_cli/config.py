"""Local deployment configuration (the ``.stencil`` file)."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from stencil_cli.errors import StencilConfigReadError

DOT_STENCIL_FILENAME = ".stencil"
DEFAULT_API_HOST = "https://api.bigcommerce.com"


class StencilConfig(BaseModel):
    """Store connection settings read from ``.stencil``.

    Attributes:
        normal_store_url: Public storefront URL (``normalStoreUrl`` in JSON).
        access_token: API token with theme scope (``accessToken`` in JSON).

    Example:
        >>> StencilConfig.model_validate(
        ...     {"normalStoreUrl": "https://shop.example", "accessToken": "abc"}
        ... ).normal_store_url
        'https://shop.example'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    normal_store_url: str = Field(..., alias="normalStoreUrl", min_length=1)
    access_token: str = Field(..., alias="accessToken", min_length=1)

    @field_validator("normal_store_url")
    @classmethod
    def validate_store_url(cls, v: str) -> str:
        """Validate URL format (must be http:// or https://)."""
        if not v.startswith(("http://", "https://")):
            msg = f"Store URL must start with http:// or https://, got: {v}"
            raise ValueError(msg)
        return v


def read_stencil_config(path: Path) -> StencilConfig:
    """Load and validate a ``.stencil`` file.

    Raises:
        StencilConfigReadError: If the file is missing, unparsable or invalid.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise StencilConfigReadError(
            f"{path.name} not found. Create it with normalStoreUrl and accessToken."
        ) from None
    except (OSError, json.JSONDecodeError) as e:
        raise StencilConfigReadError(
            f"Could not read {path.name}",
            internal_details=f"{type(e).__name__}: {e}",
        ) from e

    try:
        return StencilConfig.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(x) for x in err["loc"]) for err in e.errors())
        raise StencilConfigReadError(
            f"Invalid {path.name}: check {fields}",
            internal_details=str(e),
        ) from e
