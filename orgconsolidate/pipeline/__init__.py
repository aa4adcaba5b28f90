"""
Batch pipeline for OrgConsolidate.
"""
