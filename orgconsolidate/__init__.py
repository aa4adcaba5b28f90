"""
OrgConsolidate - Health Organization Record Consolidation Engine

Fuzzy-matching and suggestion engine for cleaning imported records of parent
organizations, facilities, contact persons and external form records.
"""

__version__ = "1.0.0"
__author__ = "OrgConsolidate Team"
