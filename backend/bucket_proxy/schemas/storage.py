from pydantic import BaseModel, ConfigDict, Field


class ObjectDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., alias="Key")
    size: int = Field(..., alias="Size")
