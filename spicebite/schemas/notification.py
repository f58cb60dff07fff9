from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Notification(BaseModel):
    id: str
    title: str = ""
    body: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False
    type: str = "general"

    @property
    def order_id(self) -> Optional[Any]:
        return self.data.get("orderId") or self.data.get("order_id")
