from .feedback_store import (
    FeedbackStore,
    FeedbackStoreError,
    JsonlFeedbackStore,
    SupabaseFeedbackStore,
    build_feedback_store,
)

__all__ = [
    "FeedbackStore",
    "FeedbackStoreError",
    "JsonlFeedbackStore",
    "SupabaseFeedbackStore",
    "build_feedback_store",
]
