from typing import ClassVar

from pydantic import BaseModel, model_validator


class PatchModel(BaseModel):
    """Partial update payload.

    Omitted fields are left untouched and an explicit ``null`` clears a
    field, except for the ones named in ``required_fields``, which back NOT
    NULL columns.
    """

    required_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_null_required(self):
        nulls = sorted(
            name for name in self.required_fields & self.model_fields_set if getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self
