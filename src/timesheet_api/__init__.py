"""
Timesheet backend package.

The ASGI application lives in ``timesheet_api.main`` (``timesheet_api.main:app``);
``timesheet_api.main.create_app`` builds a fresh one.
"""
