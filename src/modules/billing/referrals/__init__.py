from .service import ReferralAwardSummary, ReferralService

__all__ = ["ReferralAwardSummary", "ReferralService"]
