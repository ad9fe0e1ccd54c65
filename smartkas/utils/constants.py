"""
Ledger constants shared by the assistant core and the Supabase adapter.

Category names and the default unit match what the web client renders, so
they stay in Indonesian.
"""

# Default unit for scanned products when the note does not say
DEFAULT_UNIT = "pcs"

# Default category for assistant-recorded transactions
DEFAULT_CATEGORY = "Lainnya"

# Categories the assistant is told about (free text is still accepted)
TRANSACTION_CATEGORIES = ("Penjualan", "Operasional", "Lainnya")

# Transaction.type values
TRANSACTION_TYPES = ("in", "out")

# Transaction.status for rows written by the assistant
TRANSACTION_STATUS_COMPLETED = "completed"

# Alert.status for rows written by the anomaly scan
ALERT_STATUS_NEW = "new"

# Business row created on first use
DEFAULT_BUSINESS_NAME = "My Business"
DEFAULT_BUSINESS_TYPE = "General"
