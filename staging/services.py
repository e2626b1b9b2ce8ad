"""
Service wiring. Built once by StagingConfig.ready() and shared by views,
management commands and tests through get_services().
"""
from dataclasses import dataclass

from .guard import StagedSnapshotGuard
from .repository import StagedRevisionRepository
from .scheduler import PublishScheduler, ScheduledPublishHandler
from .workflow import StagingWorkflow


@dataclass
class StagingServices:
    store: object
    repository: StagedRevisionRepository
    scheduler: PublishScheduler
    workflow: StagingWorkflow
    fire_handler: ScheduledPublishHandler
    guard: StagedSnapshotGuard


def build_services(store, hook):
    repository = StagedRevisionRepository(store)
    scheduler = PublishScheduler(hook)
    workflow = StagingWorkflow(repository, scheduler)
    return StagingServices(
        store=store,
        repository=repository,
        scheduler=scheduler,
        workflow=workflow,
        fire_handler=ScheduledPublishHandler(repository, workflow),
        guard=StagedSnapshotGuard(repository),
    )


def get_services() -> StagingServices:
    from django.apps import apps
    return apps.get_app_config('staging').services
