"""
Caller-facing endpoints: profile and navigation.
"""
from fastapi import APIRouter, Depends

from clubhouse.api.deps import get_current_user_context
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.utils.feature_flags import get_feature_flags
from clubhouse.utils.navigation import NAVIGATION, filter_navigation

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/me")
def get_me(user_context=Depends(get_current_user_context)):
    profile, current_user = user_context
    return success({
        **schemas.UserProfile.model_validate(profile).model_dump(),
        "roles": current_user["roles"],
        "features": dict(get_feature_flags()),
    })


@router.get("/navigation")
def get_navigation(user_context=Depends(get_current_user_context)):
    _, current_user = user_context
    return success(filter_navigation(NAVIGATION, current_user["roles"]))
