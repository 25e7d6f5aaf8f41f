"""Destination registry publishers, one per ecosystem."""

from .base import Publisher, PublishOutcome, PublishResult
from .gem import GemPushPublisher
from .npm import NpmPublishPublisher

__all__ = [
    "GemPushPublisher",
    "NpmPublishPublisher",
    "PublishOutcome",
    "PublishResult",
    "Publisher",
]
