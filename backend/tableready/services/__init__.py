# Services module

from tableready.services.availability import (
    check_venue_status,
    find_next_opening,
    get_available_reservation_times,
    is_within_operating_hours,
)
from tableready.services.wait_time import (
    WaitEstimate,
    WaitTimeService,
    calculate_prep_estimate,
    calculate_wait_estimate,
)
from tableready.services.table_matcher import (
    TableAssignmentService,
    TableConfig,
    TableMatch,
    find_single_table,
    find_table_combination,
    match_tables,
)
from tableready.services.venue_service import VenueService
from tableready.services.waitlist_service import WaitlistService, ReservationResult
from tableready.services.expiry_sweep import ExpirySweepService, run_expiry_sweep
