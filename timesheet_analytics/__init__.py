"""Project analytics service backed by a remote ERP timesheet API."""
