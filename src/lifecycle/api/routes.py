"""API route handlers for lifecycle status and commands.

Command endpoints only acknowledge that an operation was claimed and
scheduled; progress and failures of long-running work are observed by
polling the status endpoints.
"""

from fastapi import APIRouter, Depends, Request

from lifecycle.api.models import (
    FactoryResetRequest,
    ReleaseChannelRequest,
    SuccessResponse,
)
from lifecycle.services.container import LifecycleServices

router = APIRouter(prefix="/api/v1.0/system")


def get_services(request: Request) -> LifecycleServices:
    """Dependency returning the services built at startup."""
    return request.app.state.services


def _ok(data=None) -> SuccessResponse:
    return SuccessResponse(data=data)


# -----------------------------------------------------------------------
# Polling surfaces
# -----------------------------------------------------------------------


@router.get("/status", response_model=SuccessResponse)
async def get_status(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/status - Current exclusive operation.

    Response format:
        {"code": 200, "msg": "success", "data": "running"}
    """
    return _ok(services.registry.get().value)


@router.get("/update-status", response_model=SuccessResponse)
async def get_update_status(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/update-status - Progress of the last update.

    Response format:
        {
            "code": 200,
            "msg": "success",
            "data": {
                "running": true,
                "progress": 50,
                "description": "Updating...",
                "error": false
            }
        }
    """
    return _ok(services.updater.get_status())


@router.get("/migration-status", response_model=SuccessResponse)
async def get_migration_status(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/migration-status - Progress of the data migration.

    Reachable before any user exists (first-boot recovery).
    """
    return _ok(services.migration.get_status())


@router.get("/factory-reset-status", response_model=SuccessResponse)
async def get_factory_reset_status(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/factory-reset-status - Progress of the factory reset.

    Unauthenticated: the user is deleted during the reset.
    """
    return _ok(services.reset.get_status())


@router.get("/check-update", response_model=SuccessResponse)
async def get_check_update(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/check-update - Compare with the latest release."""
    check = await services.resolver.check_update()
    return _ok(check.model_dump(by_alias=True))


@router.get("/release-channel", response_model=SuccessResponse)
async def get_release_channel(services: LifecycleServices = Depends(get_services)):
    """GET /api/v1.0/system/release-channel - Configured release channel."""
    return _ok(await services.resolver.get_channel())


# -----------------------------------------------------------------------
# Command surfaces
# -----------------------------------------------------------------------


@router.post("/release-channel", response_model=SuccessResponse)
async def post_release_channel(
    request: ReleaseChannelRequest,
    services: LifecycleServices = Depends(get_services),
):
    """POST /api/v1.0/system/release-channel - Switch release channel."""
    return _ok(await services.resolver.set_channel(request.channel.value))


@router.post("/update", response_model=SuccessResponse)
async def post_update(services: LifecycleServices = Depends(get_services)):
    """POST /api/v1.0/system/update - Start a software update.

    Returns code=409 if another exclusive operation is in progress.
    """
    return _ok(services.updater.update())


@router.post("/can-migrate", response_model=SuccessResponse)
async def post_can_migrate(services: LifecycleServices = Depends(get_services)):
    """POST /api/v1.0/system/can-migrate - Run migration pre-flight checks.

    Returns code=412 with the failed check if migration is not possible.
    """
    return _ok(await services.migration.can_migrate())


@router.post("/migrate", response_model=SuccessResponse)
async def post_migrate(services: LifecycleServices = Depends(get_services)):
    """POST /api/v1.0/system/migrate - Start migrating data from a USB drive.

    Pre-flight checks are rerun before the copy starts.
    """
    return _ok(await services.migration.migrate())


@router.post("/factory-reset", response_model=SuccessResponse)
async def post_factory_reset(
    request: FactoryResetRequest,
    services: LifecycleServices = Depends(get_services),
):
    """POST /api/v1.0/system/factory-reset - Wipe data and reboot.

    Returns code=401 on a wrong password, without changing any state.
    """
    return _ok(await services.reset.factory_reset(request.password))


@router.post("/shutdown", response_model=SuccessResponse)
async def post_shutdown(services: LifecycleServices = Depends(get_services)):
    """POST /api/v1.0/system/shutdown - Power off the host."""
    return _ok(services.power.shutdown())


@router.post("/restart", response_model=SuccessResponse)
async def post_restart(services: LifecycleServices = Depends(get_services)):
    """POST /api/v1.0/system/restart - Reboot the host."""
    return _ok(services.power.restart())
