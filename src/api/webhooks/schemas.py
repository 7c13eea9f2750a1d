from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool
    event_id: str
    duplicate: bool = False
