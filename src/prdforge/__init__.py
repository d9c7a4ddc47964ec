"""prdforge – product-requirement generation with structured-output recovery.

LLM responses for features, tasks and template sections are recovered into
typed records by :mod:`prdforge.recovery` and :mod:`prdforge.records`.
"""

__version__ = "0.1.0"
