"""Builds the locator services from a config class."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .config import get_config
from .location import FixedLocationProvider, LocationProvider, PlyerLocationProvider
from .logging_setup import configure_logging
from .reporter import Reporter
from .scheduler import BackgroundScheduler
from .settings_store import FileStorage, MemoryStorage, SettingsStore
from .workflow import ReportingWorkflow


logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: type
    settings_store: SettingsStore
    provider: LocationProvider
    reporter: Reporter
    scheduler: BackgroundScheduler
    workflow: ReportingWorkflow

    def shutdown(self) -> None:
        self.scheduler.shutdown()


def build_provider(cfg, platform: Optional[str] = None) -> LocationProvider:
    if cfg.FIXED_LOCATION:
        logger.info("Using fixed location %s", cfg.FIXED_LOCATION)
        return FixedLocationProvider.from_string(cfg.FIXED_LOCATION)
    return PlyerLocationProvider(platform=platform, permission_timeout=cfg.PERMISSION_TIMEOUT_SECONDS)


def build_storage(cfg):
    if cfg.STORAGE_BACKEND == "memory":
        return MemoryStorage()
    return FileStorage(cfg.DATA_DIR)


def create_services(config_name: Optional[str] = None, provider: Optional[LocationProvider] = None,
                    reporter: Optional[Reporter] = None, start_scheduler: bool = True,
                    paused: bool = False) -> Services:
    cfg = get_config(config_name)
    if cfg.STORAGE_BACKEND != "memory":
        os.makedirs(cfg.DATA_DIR, exist_ok=True)
    configure_logging(cfg)

    settings_store = SettingsStore(build_storage(cfg))
    provider = provider or build_provider(cfg)
    reporter = reporter or Reporter(timeout=cfg.HTTP_TIMEOUT_SECONDS)
    scheduler = BackgroundScheduler(cfg.jobstore_url(), enabled=cfg.BACKGROUND_FETCH_ENABLED)

    workflow = ReportingWorkflow(
        settings_store,
        provider,
        reporter,
        scheduler=scheduler,
        task_id=cfg.TASK_ID,
        minimum_interval_seconds=cfg.MINIMUM_INTERVAL_SECONDS,
        fix_timeout=cfg.FIX_TIMEOUT_SECONDS,
        deadline_seconds=cfg.REPORT_DEADLINE_SECONDS,
    )
    # Background wake-ups share the workflow, and with it the in-flight guard
    scheduler.define_task(cfg.TASK_ID, workflow.background_task)

    if start_scheduler:
        scheduler.start(paused=paused)
    return Services(cfg, settings_store, provider, reporter, scheduler, workflow)
