"""Models package - Re-exports all models for convenient importing."""
from centralization.extensions import db
from centralization.models.report_request import ReportRequest, STATUSES

__all__ = ['db', 'ReportRequest', 'STATUSES']
