"""Apply command - merge a file of remote tasks and tags into local storage."""

import json
import logging
from typing import Any, Dict, List, Optional

from ..core.config import SyncConfig
from ..core.exceptions import MalformedPayloadError
from ..core.models import TaskContainer
from ..sync.service import RemoteDataService


def load_remote_payload(path: str) -> Dict[str, List[Any]]:
    """Read a remote payload file.

    The file holds either a list of task containers or an object with
    "tasks" and "tags" lists.
    """
    with open(path, 'r', encoding='utf-8') as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError(f"{path} is not valid JSON: {exc}") from exc

    if isinstance(data, list):
        return {"tasks": data, "tags": []}
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"{path} must contain a list or an object")

    tasks = data.get("tasks", [])
    tags = data.get("tags", [])
    if not isinstance(tasks, list) or not isinstance(tags, list):
        raise MalformedPayloadError(f"{path}: 'tasks' and 'tags' must be lists")
    return {"tasks": tasks, "tags": tags}


class ApplyCommand:
    """Command for applying remote changes received out of band."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 service: Optional[RemoteDataService] = None):
        self.config = config
        self.verbose = verbose
        self.service = service
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self, payload_path: str, dry_run: bool = False) -> bool:
        """
        Apply the remote payload at payload_path.

        Args:
            payload_path: JSON file with remote tasks and tags
            dry_run: Only report which tasks would be matched or created

        Returns:
            True if every record was applied (or would be, for a dry run)
        """
        try:
            payload = load_remote_payload(payload_path)
        except (OSError, MalformedPayloadError) as exc:
            print(f"❌ Could not read {payload_path}: {exc}")
            return False

        service = self.service or RemoteDataService.from_config(self.config, logger=self.logger)
        try:
            if dry_run:
                return self._preview(service, payload["tasks"])

            result = service.apply_remote_tags(payload["tags"])
            service.apply_remote_changes(payload["tasks"], result=result)
            advanced = service.finish_round(result)

            print(f"\n📥 Applied {len(result.applied)} task(s), "
                  f"{len(result.created)} new, {len(result.tags_saved)} tag(s)")
            for failure in result.failures:
                print(f"   ⚠️  remote {failure.remote_id}: {failure.error}")
            if advanced:
                print("✅ Sync watermark advanced.")
            else:
                print("⚠️  Some records failed; sync watermark left unchanged.")
            return result.succeeded

        except Exception as exc:
            self.logger.error("Apply command failed: %s", exc)
            if self.verbose:
                import traceback
                traceback.print_exc()
            return False
        finally:
            if self.service is None:
                service.close()

    def _preview(self, service: RemoteDataService, tasks: List[Any]) -> bool:
        ok = True
        print(f"\n🔍 Dry run: {len(tasks)} remote task(s)")
        for entry in tasks:
            try:
                container = TaskContainer.from_dict(entry)
            except MalformedPayloadError as exc:
                print(f"   ⚠️  invalid: {exc}")
                ok = False
                continue
            if service.find_local_match(container):
                print(f"   [update] remote {container.task.remote_id} -> local #{container.task.id}")
            else:
                print(f"   [create] remote {container.task.remote_id} {container.task.title}")
        return ok
