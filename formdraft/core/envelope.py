"""
Persistence envelope for drafts.
Wire form: {"state": {"formData": {...}}, "version": 0}
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import get_schema_version
from ..util.logging import logger


class DraftState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_data: Dict[str, Any] = Field(default_factory=dict, alias="formData")


class DraftEnvelope(BaseModel):
    state: DraftState = Field(default_factory=DraftState)
    version: int = 0

    @field_validator('version')
    @classmethod
    def version_must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('version cannot be negative')
        return v


def encode_draft(form_data: Dict[str, Any], version: Optional[int] = None) -> str:
    """Serialize a draft mapping into its envelope."""
    envelope = DraftEnvelope(
        state=DraftState(form_data=form_data),
        version=get_schema_version() if version is None else version,
    )
    return json.dumps(envelope.model_dump(by_alias=True))


def decode_draft(key: str, raw: Optional[str]) -> Dict[str, Any]:
    """Deserialize an envelope; malformed or incompatible payloads read as an empty draft."""
    if raw is None:
        return {}

    try:
        envelope = DraftEnvelope.model_validate(json.loads(raw))
    except (ValueError, TypeError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning(f"Malformed draft payload for key '{key}', treating as empty: {str(e)[:100]}")
        return {}

    if envelope.version != get_schema_version():
        logger.warning(
            f"Incompatible draft version for key '{key}': {envelope.version} != {get_schema_version()}"
        )
        return {}

    return dict(envelope.state.form_data)
