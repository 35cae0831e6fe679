"""Context object handed to every request flow."""

from dataclasses import dataclass, field
from typing import Optional

from minihttpd.bootstrap.config import ServerConfig
from minihttpd.domain.mime_types import MimeTypeResolver
from minihttpd.lifecycle.state import ServerLifecycle


@dataclass
class WorkerContext:
    """Read-only dependencies shared by the accept loop and its workers."""

    config: ServerConfig
    mime_types: MimeTypeResolver
    lifecycle: ServerLifecycle = field(default_factory=ServerLifecycle)

    @classmethod
    def from_config(
        cls, config: ServerConfig, lifecycle: Optional[ServerLifecycle] = None
    ) -> "WorkerContext":
        return cls(
            config=config,
            mime_types=MimeTypeResolver(
                config.mime_types_path, config.default_mime_type
            ),
            lifecycle=lifecycle or ServerLifecycle(),
        )
