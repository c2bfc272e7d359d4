from fastapi import APIRouter

from admissions.modules.applicants import admin_router as admin_applicants_router
from admissions.modules.applicants import router as applications_router
from admissions.modules.coupons import router as coupons_router
from admissions.modules.incentives import router as admin_claims_router
from admissions.modules.youtube_rewards import router as youtube_router

api_router = APIRouter()

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(coupons_router, prefix="/coupons", tags=["Coupons"])

api_router.include_router(youtube_router, prefix="/youtube", tags=["YouTube Rewards"])

api_router.include_router(
    admin_applicants_router,
    prefix="/admin/applicants",
    tags=["Admin - Applicants"],
)

api_router.include_router(
    admin_claims_router,
    prefix="/admin/claims",
    tags=["Admin - Cashback Claims"],
)
