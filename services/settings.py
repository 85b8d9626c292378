"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class InteropSettings:
    """Runtime configuration shared by the HTTP and command line surfaces."""

    data_dir: Path
    store_path: Path
    attachments_dir: Path
    log_level: str = "INFO"
    export_format: str = "jex"


def default_settings() -> InteropSettings:
    data_dir = Path(os.getenv("INTEROP_DATA_DIR", "~/.interop")).expanduser()
    return InteropSettings(
        data_dir=data_dir,
        store_path=Path(os.getenv("INTEROP_STORE_PATH", str(data_dir / "store.json"))).expanduser(),
        attachments_dir=Path(
            os.getenv("INTEROP_ATTACHMENTS_DIR", str(data_dir / "attachments"))
        ).expanduser(),
        log_level=os.getenv("INTEROP_LOG_LEVEL", "INFO").upper(),
        export_format=os.getenv("INTEROP_EXPORT_FORMAT", "jex"),
    )
