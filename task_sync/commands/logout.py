"""Logout command - disconnect local tasks from the remote service."""

import logging
from typing import Optional

from ..core.config import SyncConfig
from ..sync.service import RemoteDataService


class LogoutCommand:
    """Command for clearing every task's remote identity."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 service: Optional[RemoteDataService] = None):
        self.config = config
        self.verbose = verbose
        self.service = service
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self, reset_watermark: bool = False) -> bool:
        """
        Clear remote ids on all tasks.

        Args:
            reset_watermark: Also forget the last sync time, so the next login
                performs a full first sync.
        """
        service = self.service or RemoteDataService.from_config(self.config, logger=self.logger)
        try:
            cleared = service.clear_metadata()
            print(f"\n🔌 Disconnected {cleared} task(s) from the remote service.")
            if reset_watermark:
                service.watermark.reset()
                print("   Sync watermark reset; the next sync will be a first sync.")
            return True

        except Exception as exc:
            self.logger.error("Logout command failed: %s", exc)
            if self.verbose:
                import traceback
                traceback.print_exc()
            return False
        finally:
            if self.service is None:
                service.close()
