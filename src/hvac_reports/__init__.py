"""
HVAC qualification reports: cleanroom test records, compliance evaluation
and PDF/Excel export.
"""

__version__ = "1.0.0"
