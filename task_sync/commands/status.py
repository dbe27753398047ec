"""Status command - show the sync watermark and pending local changes."""

import logging
from typing import Optional

from ..core.config import SyncConfig
from ..sync.service import RemoteDataService
from ..utils.date import format_millis


class StatusCommand:
    """Command for reporting what the next sync round would push."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 service: Optional[RemoteDataService] = None):
        self.config = config
        self.verbose = verbose
        self.service = service
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self) -> bool:
        service = self.service or RemoteDataService.from_config(self.config, logger=self.logger)
        try:
            status = service.status()
            print(f"\n🔄 Last sync: {format_millis(status['last_sync_date'])}")
            print(f"   Local tasks:        {status['tasks']}")
            print(f"   Never synced:       {status['never_synced']}")
            print(f"   Updated since sync: {status['locally_updated']}")

            if self.verbose:
                created, updated = service.collect_outgoing()
                for label, containers in (("create", created), ("update", updated)):
                    for container in containers:
                        print(f"   [{label}] #{container.task.id} {container.task.title} "
                              f"({len(container.metadata)} metadata)")
            return True

        except Exception as exc:
            self.logger.error("Status command failed: %s", exc)
            if self.verbose:
                import traceback
                traceback.print_exc()
            return False
        finally:
            if self.service is None:
                service.close()
