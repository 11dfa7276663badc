"""
Environment Configuration

The process environment is read once, at the boundary, and handed to
agents as an explicit snapshot. Agents never call ``os.getenv`` for
tokens themselves.
"""

import os
from typing import Optional

from dotenv import load_dotenv


def load_environment(dotenv_path: Optional[str] = None) -> dict[str, str]:
    """
    Load ``.env`` (if present) and snapshot the environment.

    Values already set in the process environment win over ``.env``.

    Args:
        dotenv_path: Explicit ``.env`` location; searched upwards from cwd if omitted

    Returns:
        A copy of the environment
    """
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return dict(os.environ)
