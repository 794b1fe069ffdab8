"""Business constants for rent, notices and caps. Change policy here, nowhere else."""

from decimal import Decimal

# Average days per month used to pro-rate non-monthly rent
DAYS_PER_MONTH = Decimal("30.44")

# First payment is current period + one period in advance
ADVANCE_MULTIPLIER = 2

# Cycle frequencies -> days between due dates ("monthly" steps by calendar month)
FREQUENCY_DAYS = {
    "weekly": 7,
    "bi-weekly": 14,
    "monthly": 30,
    "4-weekly": 28,
}
DEFAULT_FREQUENCY = "4-weekly"

# Frequencies charged as a pro-rated share of the monthly rent
PRORATED_FREQUENCIES = frozenset({"weekly", "bi-weekly"})

# Statutory notice periods (days). 0 = immediate termination
NOTICE_PERIOD_DAYS = (0, 3, 7, 14, 28)
BREACH_REMEDY_DAYS = 7
ESCALATION_NOTICE_DAYS = 7
EXTENSION_RESPONSE_DAYS = 14

# Rent may rise at most 5% per annum, pro-rated over the extension length
ANNUAL_RENT_CAP_RATE = Decimal("0.05")

# Open tenancies (DRAFT, ACTIVE, EXTENDED) per landlord
MAX_OPEN_TENANCIES = 2

# Deduction split must match its total within one penny
ALLOCATION_TOLERANCE_PENCE = 1

# UK Rent-a-Room scheme
RENT_A_ROOM_ALLOWANCE = Decimal("7500.00")
TAX_YEAR_START = (4, 6)  # 6 April

NOTICE_REASONS = {
    "breach": "Breach of Agreement",
    "end_term": "End of Agreed Term",
    "landlord_needs": "Landlord Needs",
    "other": "Other",
}

BREACH_TYPES = {
    "non_payment": "Non-payment of rent",
    "damage_to_property": "Damage to property",
    "nuisance": "Causing nuisance to others",
    "unauthorized_occupants": "Unauthorized occupants",
    "smoking": "Smoking in the property",
    "pets": "Unauthorized pets",
    "other": "Other breach of terms",
}

DEDUCTION_TYPES = ("damage", "unpaid_rent", "cleaning", "other")

SHARED_AREAS = ("kitchen", "bathroom", "living_room", "garden", "laundry", "parking")
