"""
Data ingestion for OrgConsolidate.

Loads organization, contact and form record CSV exports and turns them into
validated entities.
"""
