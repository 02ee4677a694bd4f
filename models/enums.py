from enum import Enum


class PolicyAction(Enum):
    NONE = "None"
    WARNING = "Warning"
    FAILURE = "Failure"

    @classmethod
    def parse(cls, value):
        for member in cls:
            if member.value == value:
                return member
        return None


class PollState(Enum):
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRIES_EXHAUSTED = "retries_exhausted"
    CANCELLED = "cancelled"
