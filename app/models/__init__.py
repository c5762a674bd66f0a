from app.models.analysis_cache import AnalysisCache
from app.models.usage_counter import UsageCounter
from app.models.api_usage_log import ApiUsageLog
from app.models.user_subscription import UserSubscription, PlanTier, SubscriptionStatus
from app.models.analysis_feedback import AnalysisFeedback, FeedbackVote

__all__ = [
    "AnalysisCache", "UsageCounter", "ApiUsageLog",
    "UserSubscription", "PlanTier", "SubscriptionStatus",
    "AnalysisFeedback", "FeedbackVote",
]
