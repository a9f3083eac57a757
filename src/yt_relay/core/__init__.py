"""Core / service layer — pure business logic and data transformations.

Rules
-----
* No ``print()`` calls.
* No filesystem or network I/O.
* No imports from ``cli``, ``api`` or ``infra``.
* All functions must be fully typed and deterministic.
"""

from yt_relay.core.metadata_service import MetadataService
from yt_relay.core.models import (
    ClassifiedFormat,
    FormatCatalog,
    FormatCategory,
    LiveStreamDescriptor,
    OutputType,
    RawFormatDescriptor,
    SelectionCriteria,
    VideoId,
    VideoInfo,
)
from yt_relay.core.protocols import ByteSink, ByteSource, InfoProvider, PlayableUrlResolver
from yt_relay.core.stream_proxy import StreamingProxy

__all__: list[str] = [
    "ByteSink",
    "ByteSource",
    "ClassifiedFormat",
    "FormatCatalog",
    "FormatCategory",
    "InfoProvider",
    "LiveStreamDescriptor",
    "MetadataService",
    "OutputType",
    "PlayableUrlResolver",
    "RawFormatDescriptor",
    "SelectionCriteria",
    "StreamingProxy",
    "VideoId",
    "VideoInfo",
]
