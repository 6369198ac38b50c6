"""Base model class for pipeline records."""

from pydantic import BaseModel, ConfigDict


class RecordModel(BaseModel):
    """Base model for all pipeline records."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)
