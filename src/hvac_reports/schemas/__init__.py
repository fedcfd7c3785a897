"""
Pydantic schemas for HVAC qualification reports
"""
