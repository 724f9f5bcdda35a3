"""Top-level API router."""

from fastapi import APIRouter

from resplan.api.routes.dashboards import router as dashboards_router
from resplan.api.routes.evaluations import router as evaluations_router
from resplan.api.routes.exports import router as exports_router
from resplan.api.routes.health import router as health_router
from resplan.api.routes.narratives import router as narratives_router
from resplan.api.routes.people import router as people_router
from resplan.api.routes.projects import router as projects_router
from resplan.api.routes.resources import router as resources_router
from resplan.api.routes.worklogs import router as worklogs_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(people_router)
api_router.include_router(projects_router)
api_router.include_router(worklogs_router)
api_router.include_router(dashboards_router)
api_router.include_router(resources_router)
api_router.include_router(exports_router)
api_router.include_router(narratives_router)
api_router.include_router(evaluations_router)
