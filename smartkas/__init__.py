"""
SmartKas Backend.

Bookkeeping assistant for small businesses: chat-driven ledger actions,
receipt and stock-note OCR, and anomaly scanning over recent transactions.
"""
