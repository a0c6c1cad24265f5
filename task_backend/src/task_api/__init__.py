"""
Task Management API package.

Validation, persistence and HTTP layers for a single `tasks` table. The ASGI
application lives in `task_api.main` (`task_api.main:app`, or build one with
`task_api.main.create_app`).
"""

__version__ = "1.0.0"
