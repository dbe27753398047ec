"""Sync module: change selection, identity matching and metadata merging."""

from .watermark import WatermarkStore, NEVER_SYNCED
from .selector import ChangeSelector
from .matcher import IdentityMatcher
from .merge import MetadataMergeEngine
from .assembler import RecordAssembler
from .service import RemoteDataService, SyncRoundResult, RecordFailure

__all__ = [
    'WatermarkStore',
    'NEVER_SYNCED',
    'ChangeSelector',
    'IdentityMatcher',
    'MetadataMergeEngine',
    'RecordAssembler',
    'RemoteDataService',
    'SyncRoundResult',
    'RecordFailure',
]
