"""
HealthLink storage bootstrap.

Configures logging from settings, builds the storage backend and optionally
seeds demo data, the same startup sequence a hosting service runs once per
process.
"""
import logging
from typing import Optional

from .core.config import Settings, settings as default_settings
from .core.logging_config import setup_logging
from .seed_demo import seed_demo_data
from .services.storage import Storage, create_storage

logger = logging.getLogger(__name__)


def bootstrap(settings: Optional[Settings] = None) -> Storage:
    settings = settings or default_settings
    setup_logging(use_json=settings.LOG_JSON, log_level=settings.LOG_LEVEL)

    storage = create_storage(settings)

    # Seed demo users and sample data (idempotent)
    if settings.SEED_DEMO_DATA:
        seed_demo_data(storage)

    logger.info("%s %s started", settings.APP_NAME, settings.VERSION)
    return storage
