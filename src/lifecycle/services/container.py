"""Wiring of the lifecycle services for one process."""

from dataclasses import dataclass

from lifecycle.config import Settings
from lifecycle.services.auth import StoreAuthenticator
from lifecycle.services.device import DeviceDetector
from lifecycle.services.migration import MigrationCoordinator
from lifecycle.services.power import PowerController
from lifecycle.services.release import ReleaseResolver
from lifecycle.services.reset import ResetCoordinator
from lifecycle.services.status_registry import StatusRegistry
from lifecycle.services.store import JsonStore
from lifecycle.services.system import SystemControl
from lifecycle.services.tasks import TaskRunner
from lifecycle.services.update import UpdateOrchestrator
from lifecycle.services.wipe import DataWiper


@dataclass
class LifecycleServices:
    """Everything the HTTP layer needs, built once at startup."""

    settings: Settings
    registry: StatusRegistry
    tasks: TaskRunner
    store: JsonStore
    resolver: ReleaseResolver
    updater: UpdateOrchestrator
    migration: MigrationCoordinator
    reset: ResetCoordinator
    power: PowerController


def build_services(settings: Settings) -> LifecycleServices:
    """Create the service graph from settings.

    Args:
        settings: Loaded configuration

    Returns:
        LifecycleServices sharing one registry, task runner and store
    """
    registry = StatusRegistry()
    tasks = TaskRunner()
    store = JsonStore(settings.paths.store_file)
    device = DeviceDetector(base_dir=settings.paths.base)
    system = SystemControl(settings.managed_services)
    resolver = ReleaseResolver(settings, device, store)

    return LifecycleServices(
        settings=settings,
        registry=registry,
        tasks=tasks,
        store=store,
        resolver=resolver,
        updater=UpdateOrchestrator(
            resolver,
            system,
            tasks,
            registry=registry,
            grace_seconds=settings.update_grace_seconds,
        ),
        migration=MigrationCoordinator(
            settings.version,
            settings.paths.data,
            device,
            system,
            tasks,
            registry=registry,
        ),
        reset=ResetCoordinator(
            StoreAuthenticator(store),
            DataWiper(settings.paths.data),
            system,
            tasks,
            registry=registry,
            grace_seconds=settings.update_grace_seconds,
        ),
        power=PowerController(system, tasks, registry=registry),
    )
