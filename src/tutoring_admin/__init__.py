"""Administrative backend for a student-tutoring coordination program.

State lives in a spreadsheet workbook (one sheet per table); the RPC surface
is ``tutoring_admin.services.dispatcher.Dispatcher.handle``.
"""

__version__ = "0.1.0"
