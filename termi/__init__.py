__version__ = "0.3.0"

from .cli import main  # noqa: E402

__all__ = ["main", "__version__"]
