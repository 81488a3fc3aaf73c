"""Admin services package."""

from blueprints.admin.services.backup_service import (  # noqa: F401
    create_backup,
    download_backup,
    wait_for_backup,
    shutdown_executor,
)
