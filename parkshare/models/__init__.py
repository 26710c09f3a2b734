from parkshare.models.booking import Booking
from parkshare.models.booking_event import BookingEvent
from parkshare.models.commission import Commission
from parkshare.models.listing import Listing
from parkshare.models.payout import Payout

__all__ = [
    "Listing",
    "Booking",
    "BookingEvent",
    "Commission",
    "Payout",
]
