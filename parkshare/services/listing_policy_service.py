from dataclasses import dataclass
from decimal import Decimal

from parkshare.constants import ApprovalMode
from parkshare.errors import AppError, NotFoundError
from parkshare.extensions import db
from parkshare.models import Listing


@dataclass(frozen=True)
class ListingPolicy:
    listing_id: int
    owner_id: int
    approval_mode: ApprovalMode
    tiered_pricing: dict | None
    legacy_hourly_rate: Decimal


class ListingPolicyService:
    """Read side of the listings collaborator, normalized once for the booking core."""

    @staticmethod
    def _get_listing(listing_id):
        listing = db.session.get(Listing, listing_id) if listing_id is not None else None
        if not listing:
            raise NotFoundError("Listing not found.")
        return listing

    @staticmethod
    def normalize_approval_mode(approval_mode, requires_manual_approval=False):
        raw = (approval_mode or "").strip().lower()
        if raw in {mode.value for mode in ApprovalMode}:
            return ApprovalMode(raw)
        return ApprovalMode.MANUAL if requires_manual_approval else ApprovalMode.AUTO

    @staticmethod
    def get_approval_mode(listing_id):
        listing = ListingPolicyService._get_listing(listing_id)
        return ListingPolicyService.normalize_approval_mode(listing.approval_mode, listing.requires_manual_approval)

    @staticmethod
    def get_tiered_pricing(listing_id):
        listing = ListingPolicyService._get_listing(listing_id)
        return dict(listing.pricing) if listing.pricing else None

    @staticmethod
    def get_legacy_hourly_rate(listing_id):
        listing = ListingPolicyService._get_listing(listing_id)
        return Decimal(str(listing.price_per_hour or 0))

    @staticmethod
    def get_owner_id(listing_id):
        return ListingPolicyService._get_listing(listing_id).owner_id

    @staticmethod
    def resolve(listing_id, require_active=False):
        listing = ListingPolicyService._get_listing(listing_id)
        if require_active and not listing.is_active:
            raise AppError("Listing is not accepting bookings.", 409)
        return ListingPolicy(
            listing_id=listing.id,
            owner_id=listing.owner_id,
            approval_mode=ListingPolicyService.normalize_approval_mode(
                listing.approval_mode, listing.requires_manual_approval
            ),
            tiered_pricing=dict(listing.pricing) if listing.pricing else None,
            legacy_hourly_rate=Decimal(str(listing.price_per_hour or 0)),
        )
