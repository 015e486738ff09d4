import logging
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


def load_env_file(path: Optional[str] = None) -> bool:
    """Merge a local .env file into os.environ.

    Exported variables always win over the file, so a developer's .env can
    never shadow what the deployment sets.

    Args:
        path: Explicit .env path; defaults to the nearest .env from the CWD.

    Returns:
        True if a .env file was found and read.
    """
    dotenv_path = path or find_dotenv(usecwd=True)
    if not dotenv_path:
        logger.debug("[CONFIG] No .env file found")
        return False

    loaded = load_dotenv(dotenv_path, override=False)
    if loaded:
        logger.info("[CONFIG] Loaded %s (exported variables take precedence)", dotenv_path)
    return loaded
