"""
Shared model base - snake_case attributes, camelCase on the wire.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time used for every timestamp field."""
    return datetime.now(timezone.utc)


def _assume_utc(value: datetime) -> datetime:
    # Records written by other clients may carry naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_assume_utc)]


class CamelModel(BaseModel):
    """Base model whose JSON form matches the remote API and exported files."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
