from pydantic import BaseModel
from typing import Optional


class Principal(BaseModel):
    """Authenticated caller as resolved from the bearer token."""
    id: str
    email: Optional[str] = None
