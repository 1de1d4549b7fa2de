import sys
from pathlib import Path

import fncli

from . import db
from .core.errors import CadenceError
from .lib.errors import exit_error
from .lib.log import setup_logging

_VERBOSE_FLAGS = {"-v", "--verbose"}


def main():
    user_args = sys.argv[1:]
    setup_logging(verbose=bool(_VERBOSE_FLAGS & set(user_args)))
    db.init()
    fncli.autodiscover(Path(__file__).parent, "cadence")

    argv = ["cadence", *(a for a in user_args if a not in _VERBOSE_FLAGS)]
    try:
        code = fncli.dispatch(argv)
    except CadenceError as e:
        exit_error(str(e))
    sys.exit(code)


if __name__ == "__main__":
    main()
