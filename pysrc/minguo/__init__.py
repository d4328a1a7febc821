from __future__ import annotations

from ._pyminguo import *
from ._pyminguo import (  # for pickling and the docs
    __all__,
    __version__,
    _unpkl_date,
    _unpkl_dt,
)
