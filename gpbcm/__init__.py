# gpbcm/__init__.py

from . import config
from . import num
from . import errors
from . import kernel
from . import core
from . import dataloader
from .core import Model
from .config import __version__

__all__ = ["num", "kernel", "core", "dataloader", "Model", "__version__"]
