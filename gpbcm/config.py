# gpbcm/config.py
import os
import logging

# Read version from VERSION file
_version_file = os.path.join(os.path.dirname(__file__), "..", "VERSION")
try:
    with open(os.path.abspath(_version_file), "r") as f:
        __version__ = f.read().strip()
except FileNotFoundError:
    __version__ = "0.0.0"

class _GPBCMConfig:
    def __init__(self):
        self.version = __version__
        self.seed = 1234
        self.n_jobs = 1
        # relative jitter added to the diagonal of active-set Gram matrices
        self.jitter = 1e-8
        # logger lives in config
        self.logger = logging.getLogger("gpbcm")
        if not self.logger.handlers:
            h = logging.StreamHandler()
            h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            self.logger.addHandler(h)
        self.logger.setLevel(logging.INFO)

    def __str__(self):
        return (
            f"GPBCMConfig("
            f"version={self.version}, "
            f"seed={self.seed}, "
            f"n_jobs={self.n_jobs}, "
            f"jitter={self.jitter})"
        )

    def __repr__(self):
        return (
            f"<GPBCMConfig "
            f"version={self.version!r}, "
            f"seed={self.seed!r}, "
            f"n_jobs={self.n_jobs!r}, "
            f"jitter={self.jitter!r}>"
        )

    def update(self, **kwargs):
        for k, v in kwargs.items():
            if not hasattr(self, k):
                raise AttributeError(f"unknown configuration entry '{k}'")
            setattr(self, k, v)
        return self

_config = _GPBCMConfig()

def get_config():
    return _config

def set_seed(seed: int):
    """Set the configured seed and reseed the global gnp generator."""
    from gpbcm import num

    _config.seed = int(seed)
    num.set_seed(_config.seed)

def set_n_jobs(n_jobs: int):
    if n_jobs < 1:
        raise ValueError("n_jobs must be >= 1")
    _config.n_jobs = int(n_jobs)

def set_jitter(jitter: float):
    if jitter < 0.0:
        raise ValueError("jitter must be nonnegative")
    _config.jitter = float(jitter)

def get_logger():
    return _config.logger

def set_log_level(level):
    _config.logger.setLevel(level)
