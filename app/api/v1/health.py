from fastapi import APIRouter, Depends

from app.api.deps import get_container
from app.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(container: Container = Depends(get_container)):
    return {
        "status": "ok",
        "environment": container.settings.ENVIRONMENT,
        "scheduler": container.scheduler.running,
        "sms": container.sms.configured,
    }
