from parkshare.services.booking_service import BookingService
from parkshare.services.commission_service import CommissionService
from parkshare.services.conflict_service import ConflictService
from parkshare.services.job_service import JobService
from parkshare.services.listing_policy_service import ListingPolicyService
from parkshare.services.payout_service import PayoutService
from parkshare.services.pricing_service import PricingService
from parkshare.services.sweeper_service import SweeperService

__all__ = [
    "BookingService",
    "CommissionService",
    "ConflictService",
    "JobService",
    "ListingPolicyService",
    "PayoutService",
    "PricingService",
    "SweeperService",
]
