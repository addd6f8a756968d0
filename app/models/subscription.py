import enum


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"  # grace period after end date
    EXPIRED = "expired"
    PAYMENT_PENDING = "payment_pending"  # plan inquiry awaiting admin action
