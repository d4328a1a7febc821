import os
import time
from contextlib import contextmanager
from unittest.mock import patch

# POSIX TZ strings don't need a timezone database to be installed.
# Taipei: UTC+8, no DST
TPE_TZ_POSIX = "CST-8"
# Amsterdam: UTC+1, with DST
AMS_TZ_POSIX = "CET-1CEST,M3.5.0,M10.5.0/3"


class AlwaysEqual:
    def __eq__(self, _):
        return True


class NeverEqual:
    def __eq__(self, _):
        return False


class AlwaysLarger:
    def __lt__(self, _):
        return False

    def __le__(self, _):
        return False

    def __gt__(self, _):
        return True

    def __ge__(self, _):
        return True


class AlwaysSmaller:
    def __lt__(self, _):
        return True

    def __le__(self, _):
        return True

    def __gt__(self, _):
        return False

    def __ge__(self, _):
        return False


@contextmanager
def system_tz(name):
    try:
        with patch.dict(os.environ, {"TZ": name}):
            time.tzset()
            yield
    finally:
        time.tzset()  # don't forget to reset the timezone after the patch!
