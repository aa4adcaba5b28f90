"""
Data model for OrgConsolidate.

Read-only entities consumed by the matching engine and the result records
it produces.
"""
