# Main Router - app/api/v1/routes/router.py
from fastapi import APIRouter
from app.api.v1.routes.auth.auth import router as auth_router
from app.api.v1.routes.user.user import router as user_router
from app.api.v1.routes.subjects.subjects import router as subjects_router
from app.api.v1.routes.permissions.permissions import router as permissions_router
from app.api.v1.routes.lessons.lessons import router as lessons_router
from app.api.v1.routes.quizzes.quizzes import router as quizzes_router
from app.api.v1.routes.grading.grading import router as grading_router
from app.api.v1.routes.tutoring.tutoring import router as tutoring_router
from app.api.v1.routes.discounts.discounts import router as discounts_router

router = APIRouter()

# Public/Auth routes
router.include_router(auth_router)

# Authenticated routes (role checks live on each router)
router.include_router(user_router)
router.include_router(subjects_router)
router.include_router(permissions_router)
router.include_router(lessons_router)
router.include_router(quizzes_router)
router.include_router(grading_router)
router.include_router(tutoring_router)
router.include_router(discounts_router)
