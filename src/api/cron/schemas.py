from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResetStats(CamelModel):
    total_found: int
    success_count: int
    error_count: int
    skipped_count: int


class ResetError(CamelModel):
    subscription_id: str
    user_id: str
    error: str


class ResetCreditsResponse(CamelModel):
    success: bool
    timestamp: datetime
    stats: ResetStats
    errors: list[ResetError] | None = None


class AwardReferralsResponse(CamelModel):
    success: bool
    users_processed: int
    total_credits_awarded: int
    timestamp: datetime
