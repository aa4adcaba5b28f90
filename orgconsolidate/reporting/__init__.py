"""
Reporting helpers for OrgConsolidate.
"""
