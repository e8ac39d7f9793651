"""ReportRequest model - the queue of requested reports."""
from datetime import datetime
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from centralization.extensions import db
from centralization.reports.wizard import BASE_KEYS

JSONType = JSON().with_variant(JSONB(), 'postgresql')

STATUSES = {
    'pending': 'В очереди',
    'processing': 'Выполняется',
    'completed': 'Готово',
    'failed': 'Ошибка',
}


class ReportRequest(db.Model):
    __tablename__ = 'report_requests'

    id = db.Column(db.Integer, primary_key=True)
    report_type = db.Column(db.String(50), nullable=False, index=True)

    # Backend user who asked for the report (users live in the REST backend)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    username = db.Column(db.String(100))

    organization_ids = db.Column(JSONType, nullable=False)
    params = db.Column(JSONType, nullable=False)  # Report-specific field values
    email_notification = db.Column(db.Boolean, default=False)
    recipients = db.Column(JSONType)

    status = db.Column(db.String(20), default='pending')  # pending, processing, completed, failed
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime)

    @classmethod
    def from_form_data(cls, form_data, user):
        """Build a pending request from the wizard's form data."""
        return cls(
            report_type=form_data['reportType'],
            user_id=user.id,
            username=user.username,
            organization_ids=list(form_data.get('organizationIds') or []),
            params={k: v for k, v in form_data.items() if k not in BASE_KEYS},
            email_notification=bool(form_data.get('emailNotification')),
            recipients=list(form_data.get('recipients') or []) if form_data.get('emailNotification') else [],
            status='pending',
        )
