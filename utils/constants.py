"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Booking rules
MIN_REASON_LENGTH = 5
DEFAULT_REASON_TEMPLATE = "Cita para {service}"
MAX_REASON_LENGTH = 500

# Forms
MIN_PASSWORD_LENGTH = 6
DEFAULT_DOCUMENT_TYPE = "CC"

# Display formatting
LIST_DISPLAY_LIMIT = 10  # Maximum rows shown in list pages
SLOTS_PER_ROW = 4
UPCOMING_DISPLAY_LIMIT = 5

# Session storage keys (mirroring the browser's localStorage keys)
TOKEN_KEY = "token"
USER_KEY = "user"
REPORT_RANGE_KEY = "report_range"  # Admin report range, kept until logout
