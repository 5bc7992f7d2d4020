"""Root logger setup for the manifold command line.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are attached here, once, by the CLI entry point. If the root logger already
has handlers (an embedding application or a test runner), nothing changes.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "manifold.log"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = DEFAULT_LOG_FILE,
) -> bool:
    """Attach a console handler and, unless ``log_file`` is None, an appending file handler.

    Returns:
        True if handlers were installed, False if the root logger was already configured
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        except OSError as e:
            root.warning("File logging disabled, cannot open %s: %s", log_path, e)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(level)
    return True
