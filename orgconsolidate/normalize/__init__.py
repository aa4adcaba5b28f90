"""
Normalization utilities for OrgConsolidate.

Text normalization policy and configuration loading shared by the matching
engine and the ingestion layer.
"""
