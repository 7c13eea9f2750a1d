from .service import PeriodResetError, PeriodResetSummary, SubscriptionPeriodService

__all__ = ["PeriodResetError", "PeriodResetSummary", "SubscriptionPeriodService"]
