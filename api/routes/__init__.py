"""
API Routes Package

Route handlers organized by feature:
- enrollment.py: POST /api/enroll
- authentication.py: POST /api/authenticate
"""

from api.routes.enrollment import router as enrollment_router
from api.routes.authentication import router as authentication_router

__all__ = [
    "enrollment_router",
    "authentication_router",
]
