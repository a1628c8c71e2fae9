"""
Workspace Inactive License Audit
================================
Finds Google Workspace accounts that have not signed in for a configurable
number of days but still hold a given license, and writes them to a report.

Tenant APIs are only ever read. The sole write target is the report
artifact (Google Sheets or a local CSV file).
"""

__version__ = "1.0.0"
__author__ = "Workspace License Audit"
__mode__ = "READ-ONLY"
