from abc import ABC, abstractmethod
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class OtpStatus(str, Enum):
    """
    Challenge states as reported by a provider.

    request_code answers PENDING or FAILED; check_code answers APPROVED,
    REJECTED or EXPIRED.
    """
    PENDING = "pending"
    FAILED = "failed"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class OtpProvider(ABC):
    """
    Abstract phone-verification provider.

    Contract:
    - Input phone numbers are already E.164-normalized.
    - Ordinary refusals (bad number, wrong code) come back as a status.
    - An unreachable or erroring backend raises UpstreamFailure.
    - The provider owns all challenge state; callers keep none.
    """

    name = "base"

    @abstractmethod
    def request_code(self, phone: str) -> OtpStatus:
        raise NotImplementedError

    @abstractmethod
    def check_code(self, phone: str, code: str) -> OtpStatus:
        raise NotImplementedError
