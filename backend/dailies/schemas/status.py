from pydantic import BaseModel


class StatusOut(BaseModel):
    id: str
    code: str
    name: str
    description: str | None
    color: str
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True
