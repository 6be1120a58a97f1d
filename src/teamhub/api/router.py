# src/teamhub/api/router.py

from fastapi import APIRouter
from teamhub.api.v1 import team
from teamhub.api.v1 import invitation

# The main router for API v1
router = APIRouter(prefix="/api/v1")

# ===================================================================
# Team, Membership & Invitation Routes
# ===================================================================

router.include_router(team.router, prefix="/teams", tags=["Teams"])
router.include_router(invitation.router, prefix="/invitations", tags=["Invitations"])
